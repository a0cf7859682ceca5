"""
Facebook Marketplace Poster Package
"""
from .models import (
    AutomationState,
    Credentials,
    DriverMode,
    ListingData,
    ListingResult,
    ListingRow,
    LoginResult,
    LoopPhase,
)
from .core import build_orchestrator, process_listing
from .hybrid import HybridOrchestrator, next_mode
from .queue_loop import QueueLoop
from .sheets import SheetsGateway
from .notifier import Notifier
from .export import save_run_report
from .utils import init_logger, now_iso

__version__ = "1.0.0"

__all__ = [
    "AutomationState",
    "Credentials",
    "DriverMode",
    "ListingData",
    "ListingResult",
    "ListingRow",
    "LoginResult",
    "LoopPhase",
    "build_orchestrator",
    "process_listing",
    "HybridOrchestrator",
    "next_mode",
    "QueueLoop",
    "SheetsGateway",
    "Notifier",
    "save_run_report",
    "init_logger",
    "now_iso"
]
