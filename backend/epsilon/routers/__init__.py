"""API routers."""
from .medicine import router as medicine_router
from .emergency_actions import router as emergency_actions_router
from .devices import router as devices_router
from .users import router as users_router
from .report import router as report_router
from .falls import router as falls_router
from .push import router as push_router

__all__ = [
    "medicine_router",
    "emergency_actions_router",
    "devices_router",
    "users_router",
    "report_router",
    "falls_router",
    "push_router",
]
