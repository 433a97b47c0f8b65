import logging
from typing import List, Optional

import google.generativeai as genai

from ...core.config import settings
from ...application.ports.chat_provider import ChatProvider, ChatTurn
from ...exceptions import UpstreamDispatchError

logger = logging.getLogger(__name__)


class GeminiChatProvider(ChatProvider):
    def __init__(self, api_key: Optional[str] = None, model_name: Optional[str] = None, timeout_seconds: int = settings.LLM_TIMEOUT_SECONDS) -> None:
        genai.configure(api_key=api_key or settings.GEMINI_API_KEY)
        self.model = genai.GenerativeModel(model_name or settings.GEMINI_MODEL)
        self.timeout_seconds = timeout_seconds

    def complete(self, messages: List[ChatTurn]) -> str:
        # Gemini calls the assistant side "model"
        contents = [
            {"role": "model" if m.role == "assistant" else "user", "parts": [m.content]}
            for m in messages
        ]
        try:
            result = self.model.generate_content(
                contents,
                request_options={"timeout": self.timeout_seconds},
            )
            return getattr(result, "text", str(result))
        except Exception as e:
            logger.error(f"Gemini completion failed: {e}", exc_info=True)
            raise UpstreamDispatchError()
