"""
Data models for the marketplace listing automation.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Dict, Optional, Any


class DriverMode(str, Enum):
    """Which driver produced a result."""
    REMOTE = "remote"
    DIRECT = "direct"


class LoopPhase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"
    COMPLETED = "completed"


# Row status values written to / read from the sheet
STATUS_PENDING = "Pending"
STATUS_READY = "Ready"
STATUS_PROCESS = "Process"
STATUS_PROCESSING = "Processing"
STATUS_COMPLETED = "Completed"
STATUS_FAILED = "Failed"
READY_STATUSES = (STATUS_PROCESS, STATUS_READY)

# Ordered sheet columns A..J
SHEET_COLUMNS = [
    "Item Name",
    "Description",
    "Price",
    "Category",
    "Condition",
    "Photos",
    "Location",
    "Status",
    "Listing URL",
    "Error Log",
]


@dataclass
class Credentials:
    email: str
    password: str

    def is_complete(self) -> bool:
        return bool(self.email) and bool(self.password)


@dataclass
class ListingData:
    """What the drivers need to fill the create-listing form."""
    title: str
    price: str
    description: str = ""
    category: str = ""
    condition: str = ""
    images: List[str] = field(default_factory=list)
    location: str = ""


@dataclass
class ListingRow:
    """One spreadsheet record representing a listing to be created."""

    row_number: Optional[int]
    item_name: str = ""
    description: str = ""
    price: str = ""
    category: str = ""
    condition: str = ""
    photos: List[str] = field(default_factory=list)
    location: str = ""
    status: str = STATUS_PENDING
    listing_url: str = ""
    error_log: str = ""

    def is_ready(self) -> bool:
        return self.status in READY_STATUSES

    def has_valid_row_number(self) -> bool:
        return isinstance(self.row_number, int) and not isinstance(self.row_number, bool) and self.row_number > 0

    def to_listing_data(self) -> ListingData:
        return ListingData(
            title=self.item_name,
            price=self.price,
            description=self.description,
            category=self.category,
            condition=self.condition,
            images=list(self.photos),
            location=self.location,
        )

    def summary(self) -> Dict[str, Any]:
        return {"row_number": self.row_number, "title": self.item_name}


@dataclass
class LoginResult:
    success: bool
    method: DriverMode
    message: str = ""
    debug_url: Optional[str] = None
    requires_manual_intervention: bool = False


@dataclass
class ListingResult:
    """Outcome of one create-listing attempt. Never persisted as such."""
    success: bool
    listing_url: Optional[str] = None
    error: Optional[str] = None
    method: Optional[DriverMode] = None


@dataclass
class AutomationState:
    """State of one Queue Loop. Owned by the loop, exposed as snapshots."""

    phase: LoopPhase = LoopPhase.IDLE
    is_running: bool = False
    is_paused: bool = False
    spreadsheet_id: Optional[str] = None
    current_item: Optional[ListingRow] = None
    processed_count: int = 0
    failed_count: int = 0
    start_time: Optional[datetime] = None
    last_processed_time: Optional[datetime] = None

    def reset_for_run(self, spreadsheet_id: str) -> None:
        self.phase = LoopPhase.RUNNING
        self.is_running = True
        self.is_paused = False
        self.spreadsheet_id = spreadsheet_id
        self.current_item = None
        self.processed_count = 0
        self.failed_count = 0
        self.start_time = datetime.now(timezone.utc)
        self.last_processed_time = None

    def finish(self, phase: LoopPhase) -> None:
        self.phase = phase
        self.is_running = False
        self.is_paused = False
        self.current_item = None

    def running_time_ms(self) -> int:
        if not self.start_time:
            return 0
        return int((datetime.now(timezone.utc) - self.start_time).total_seconds() * 1000)

    def stats(self) -> Dict[str, int]:
        return {
            "processed_count": self.processed_count,
            "failed_count": self.failed_count,
            "duration_ms": self.running_time_ms(),
        }

    def snapshot(self) -> Dict[str, Any]:
        """Read-only copy for external callers."""
        return {
            "phase": self.phase.value,
            "is_running": self.is_running,
            "is_paused": self.is_paused,
            "spreadsheet_id": self.spreadsheet_id,
            "current_item": self.current_item.summary() if self.current_item else None,
            "processed_count": self.processed_count,
            "failed_count": self.failed_count,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "last_processed_time": self.last_processed_time.isoformat() if self.last_processed_time else None,
            "running_time_ms": self.running_time_ms(),
        }
