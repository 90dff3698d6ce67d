# routers/__init__.py

from .admin_users import router as admin_users_router
from .admin_publication import router as admin_publication_router
from .admin_actions import router as admin_actions_router
from .health import router as health_router

__all__ = [
    "admin_users_router",
    "admin_publication_router",
    "admin_actions_router",
    "health_router",
]
