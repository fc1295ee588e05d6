"""Road Report Engine - API Routers"""
from .reports import router as reports_router
from .users import router as users_router
from .scheduler import router as scheduler_router

__all__ = [
    "reports_router",
    "users_router",
    "scheduler_router",
]
