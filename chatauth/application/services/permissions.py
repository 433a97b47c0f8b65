from typing import Iterable

from ...db.models.users.user import Role
from ...exceptions import ForbiddenError

MODERATOR_ROLES = (Role.ADMIN, Role.MODERATOR)
AUTHENTICATED_ROLES = (Role.ADMIN, Role.MODERATOR, Role.USER)


def check_role(user, allowed: Iterable[Role]) -> None:
    """Raise ForbiddenError unless ``user.role`` is one of ``allowed``."""
    allowed = tuple(allowed)
    if user.role not in allowed:
        raise ForbiddenError.for_roles(allowed)
