"""API routers."""

from app.routers.auth import router as auth_router
from app.routers.businesses import router as businesses_router
from app.routers.features import router as features_router
from app.routers.invitations import router as invitations_router
from app.routers.members import router as members_router
from app.routers.permissions import router as permissions_router
from app.routers.users import router as users_router

__all__ = [
    "auth_router",
    "businesses_router",
    "features_router",
    "invitations_router",
    "members_router",
    "permissions_router",
    "users_router",
]
