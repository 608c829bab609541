"""Error types for the chat server.

Domain errors carry a stable ``code`` and a user-facing ``message``; the
gateway turns them into acknowledgment strings. ``GenerationError`` never
reaches a client, the bot pipeline swaps it for its apology reply.
"""


class ChatError(Exception):
    code = "chat_error"
    message = "Something went wrong"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class NameTakenError(ChatError):
    code = "name_taken"
    message = "Username is taken in this room"


class AlreadyJoinedError(ChatError):
    code = "already_joined"
    message = "You have already joined a room"


class InvalidJoinError(ChatError):
    code = "invalid_join"
    message = "Username and room are required"


class UserNotFoundError(ChatError):
    code = "user_not_found"
    message = "User not found"


class GenerationError(ChatError):
    code = "generation_failed"
    message = "Text generation failed"


class InvalidMessageError(ChatError):
    code = "invalid_message"
    message = "Message text is required"
