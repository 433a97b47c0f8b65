from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol


@dataclass
class VerificationCodeDto:
    id: str
    phone: str
    code: str
    expires_at: datetime
    is_used: bool
    created_at: datetime
    user_id: Optional[str] = None


class VerificationCodeRepository(Protocol):
    def issue(self, phone: str) -> str:
        ...

    def create(self, phone: str, code: str, expires_at: datetime, user_id: Optional[str] = None) -> VerificationCodeDto:
        ...

    def claim(self, phone: str, code: str) -> None:
        """Mark the matching live code used; raises InvalidOrExpiredCodeError otherwise."""
        ...

    def recent_count(self, phone: str, window_minutes: int) -> int:
        ...

    def cleanup(self) -> int:
        ...
