"""
Route package initialization.
"""
from .automation import router as automation_router
from .events import router as events_router
from .sheets import router as sheets_router

__all__ = ["automation_router", "events_router", "sheets_router"]
