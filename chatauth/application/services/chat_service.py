from dataclasses import dataclass
from typing import List

from ..ports.chat_provider import ChatProvider, ChatTurn
from ...exceptions import ValidationError


@dataclass
class ChatService:
    provider: ChatProvider
    max_turns: int = 50

    def reply(self, messages: List[ChatTurn]) -> str:
        if not messages:
            raise ValidationError("At least one message is required")
        if messages[-1].role != "user":
            raise ValidationError("The last message must come from the user")
        # Only the most recent turns are forwarded
        return self.provider.complete(messages[-self.max_turns:])
