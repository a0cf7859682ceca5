"""
Queue control route handlers.
"""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from poster.export import history_frame
from poster.queue_loop import QueueLoop

from ..models import ControlResponse, HistoryResponse, ProcessSheetResponse, SpreadsheetRequest, StateOut

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/automation", tags=["automation"])


def get_queue(request: Request) -> QueueLoop:
    return request.app.state.queue


def _response(message: str, state: dict) -> ControlResponse:
    return ControlResponse(success=True, message=message, state=StateOut(**state))


@router.post("/start", response_model=ControlResponse)
async def start_automation(body: SpreadsheetRequest, queue: QueueLoop = Depends(get_queue)):
    """Start the queue loop for a spreadsheet."""
    already = queue.state.is_running
    state = await queue.start(body.spreadsheet_id)
    return _response("Automation is already running" if already else "Automation started", state)


@router.post("/pause", response_model=ControlResponse)
async def pause_automation(queue: QueueLoop = Depends(get_queue)):
    return _response("Automation paused", await queue.pause())


@router.post("/resume", response_model=ControlResponse)
async def resume_automation(queue: QueueLoop = Depends(get_queue)):
    return _response("Automation resumed", await queue.resume())


@router.post("/stop", response_model=ControlResponse)
async def stop_automation(queue: QueueLoop = Depends(get_queue)):
    return _response("Automation stopped", await queue.stop())


@router.get("/status", response_model=StateOut)
async def automation_status(queue: QueueLoop = Depends(get_queue)):
    """Current state snapshot."""
    return StateOut(**queue.status())


@router.post("/process-sheet", response_model=ProcessSheetResponse)
async def process_sheet(body: SpreadsheetRequest, queue: QueueLoop = Depends(get_queue)):
    """Report pending rows and start the loop if it is idle."""
    result = await queue.process_once(body.spreadsheet_id)
    return ProcessSheetResponse(
        success=True,
        message=f"Found {result['pending_count']} pending items",
        state=StateOut(**result["state"]),
        pending_count=result["pending_count"],
    )


@router.get("/history", response_model=HistoryResponse)
async def automation_history(queue: QueueLoop = Depends(get_queue)):
    return HistoryResponse(total=len(queue.history), items=list(queue.history))


@router.get("/history/csv")
async def automation_history_csv(queue: QueueLoop = Depends(get_queue)):
    """Export the current run history as CSV."""
    df = history_frame(queue.history)
    csv_content = df.to_csv(index=False).encode("utf-8")
    return StreamingResponse(
        iter([csv_content]),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="poster_history.csv"'}
    )
