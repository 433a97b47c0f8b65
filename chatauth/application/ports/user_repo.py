from dataclasses import dataclass
from typing import Optional, Protocol, Tuple
from datetime import datetime

from ...db.models.users.user import Role


@dataclass
class UserDto:
    id: str
    phone: str
    role: Role
    name: Optional[str] = None
    email: Optional[str] = None
    password_hash: Optional[str] = None
    is_suspended: bool = False
    suspended_at: Optional[datetime] = None
    suspended_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)


class UserRepository(Protocol):
    def get_by_phone(self, phone: str) -> Optional[UserDto]:
        ...

    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        ...

    def create_if_absent(self, phone: str) -> Tuple[UserDto, bool]:
        """Return the user for ``phone``, inserting a USER row if none exists.

        The boolean is True only for the call that created the row.
        """
        ...

    def create(self, phone: str, name: Optional[str] = None, email: Optional[str] = None, role: Role = Role.USER, password_hash: Optional[str] = None) -> UserDto:
        ...

    def set_password_hash(self, user_id: str, password_hash: str) -> None:
        ...

    def set_role(self, user_id: str, role: Role) -> None:
        ...

    def set_suspension(self, user_id: str, suspended: bool, reason: Optional[str] = None) -> None:
        ...

    def delete(self, user_id: str) -> bool:
        ...
