"""
Pydantic models for API request/response serialization.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SpreadsheetRequest(BaseModel):
    """Body carrying the spreadsheet id; accepts spreadsheetId or spreadsheet_id."""
    model_config = ConfigDict(populate_by_name=True)

    spreadsheet_id: str = Field(..., alias="spreadsheetId", min_length=1)


class ItemSummary(BaseModel):
    row_number: Optional[int] = None
    title: str = ""


class StateOut(BaseModel):
    """Read-only snapshot of the queue loop."""
    phase: str
    is_running: bool
    is_paused: bool
    spreadsheet_id: Optional[str] = None
    current_item: Optional[ItemSummary] = None
    processed_count: int = 0
    failed_count: int = 0
    start_time: Optional[str] = None
    last_processed_time: Optional[str] = None
    running_time_ms: int = 0


class ControlResponse(BaseModel):
    success: bool
    message: str
    state: StateOut


class ProcessSheetResponse(ControlResponse):
    pending_count: int


class SheetValidation(BaseModel):
    success: bool
    valid: bool
    message: str


class PendingRow(BaseModel):
    row_number: Optional[int]
    item_name: str
    price: str
    category: str = ""
    condition: str = ""
    photos: List[str] = []
    location: str = ""
    status: str


class PendingResponse(BaseModel):
    success: bool
    total: int
    items: List[PendingRow]


class HistoryResponse(BaseModel):
    total: int
    items: List[Dict[str, Any]]
