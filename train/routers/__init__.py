"""API routers."""

from train.routers.groups import router as groups_router
from train.routers.users import router as users_router

__all__ = ["groups_router", "users_router"]
