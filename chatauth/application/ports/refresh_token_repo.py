from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol, Tuple

from .user_repo import UserDto


@dataclass
class RefreshTokenDto:
    id: str
    token: str
    user_id: str
    expires_at: datetime
    is_revoked: bool
    created_at: datetime


class RefreshTokenRepository(Protocol):
    def create(self, user_id: str, token: str, expires_at: datetime) -> RefreshTokenDto:
        ...

    def find_valid(self, token: str) -> Optional[Tuple[RefreshTokenDto, UserDto]]:
        ...

    def revoke(self, token: str) -> bool:
        ...

    def revoke_all_for_user(self, user_id: str) -> int:
        ...

    def count_active_for_user(self, user_id: str) -> int:
        ...

    def cleanup(self) -> int:
        ...
