# chatauth/schemas/chat/chat.py
from typing import List, Literal

from pydantic import Field

from ..common.common import CamelModel


class ChatMessageIn(CamelModel):
    role: Literal["user", "assistant"]
    content: str = Field(..., min_length=1, max_length=8000)


class ChatRequest(CamelModel):
    messages: List[ChatMessageIn] = Field(..., min_length=1)


class ChatResponse(CamelModel):
    reply: str
