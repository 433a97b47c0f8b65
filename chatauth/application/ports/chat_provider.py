from dataclasses import dataclass
from typing import List, Protocol


@dataclass
class ChatTurn:
    role: str
    content: str


class ChatProvider(Protocol):
    def complete(self, messages: List[ChatTurn]) -> str:
        ...
