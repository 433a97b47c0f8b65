# Routers package
from . import auth_router
from . import users_router
from . import chat_router

__all__ = [
    "auth_router",
    "users_router",
    "chat_router",
]
