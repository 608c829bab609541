import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 5000))

CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", None)
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

# Bot reply timing, in seconds
BOT_REPLY_DELAY = float(os.getenv("BOT_REPLY_DELAY", 0.5))
BOT_REPLY_TIMEOUT = float(os.getenv("BOT_REPLY_TIMEOUT", 15))
BOT_PROMPT_MAX_CHARS = int(os.getenv("BOT_PROMPT_MAX_CHARS", 500))

# Message authors that are not room members
ADMIN_NAME = "admin"
BOT_NAME = "bot"
