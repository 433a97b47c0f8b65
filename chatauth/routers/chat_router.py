from typing import Dict

from fastapi import APIRouter, Depends

from ..core.config import settings
from ..application.ports.chat_provider import ChatTurn
from ..application.ports.rate_limiter import RateLimitDecision
from ..application.services.chat_service import ChatService
from ..dependencies import chat_rate_limit, get_chat_service
from ..schemas.chat.chat import ChatRequest, ChatResponse

router = APIRouter(prefix=f"{settings.API_PREFIX}/chat", tags=["Chat"])


@router.post("", response_model=ChatResponse)
def send_message(
    body: ChatRequest,
    _limits: Dict[str, RateLimitDecision] = Depends(chat_rate_limit),
    chat: ChatService = Depends(get_chat_service),
):
    turns = [ChatTurn(role=m.role, content=m.content) for m in body.messages]
    return ChatResponse(reply=chat.reply(turns))
