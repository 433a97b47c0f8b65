import secrets
import threading
from typing import Optional

from passlib.context import CryptContext

from ...application.ports.password_hasher import PasswordHasher


class BcryptPasswordHasher(PasswordHasher):
    def __init__(self, rounds: int = 12) -> None:
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)
        self._dummy_hash: Optional[str] = None
        self._lock = threading.Lock()

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        try:
            return self._context.verify(password, password_hash)
        except ValueError:
            # Unrecognised or corrupt stored hash
            return False

    def dummy_verify(self, password: str) -> None:
        """Spend one verification's worth of work when there is no stored hash to check."""
        with self._lock:
            if self._dummy_hash is None:
                self._dummy_hash = self.hash(secrets.token_urlsafe(16))
        self.verify(password, self._dummy_hash)
