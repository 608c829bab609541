from pydantic import BaseModel
from typing import List


class User(BaseModel):
    id: str
    name: str
    room: str


class JoinRequest(BaseModel):
    name: str = ""
    room: str = ""


class SendMessageRequest(BaseModel):
    text: str


class ChatMessage(BaseModel):
    user: str
    text: str


class RoomData(BaseModel):
    room: str
    users: List[User]
