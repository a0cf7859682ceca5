"""
Spreadsheet route handlers.
"""
import logging

from fastapi import APIRouter, Depends, Request

from poster.sheets import SheetsGateway

from ..models import PendingResponse, PendingRow, SheetValidation, SpreadsheetRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/sheets", tags=["sheets"])


def get_gateway(request: Request) -> SheetsGateway:
    return request.app.state.gateway


@router.post("/validate", response_model=SheetValidation)
async def validate_sheet(body: SpreadsheetRequest, gateway: SheetsGateway = Depends(get_gateway)):
    """Check the header row against the expected columns."""
    valid = await gateway.validate_sheet_structure(body.spreadsheet_id)
    message = "Sheet structure is valid" if valid else "Sheet structure does not match the expected columns"
    return SheetValidation(success=True, valid=valid, message=message)


@router.post("/pending", response_model=PendingResponse)
async def pending_rows(body: SpreadsheetRequest, gateway: SheetsGateway = Depends(get_gateway)):
    rows = await gateway.get_pending_rows(body.spreadsheet_id)
    items = [
        PendingRow(
            row_number=r.row_number,
            item_name=r.item_name,
            price=r.price,
            category=r.category,
            condition=r.condition,
            photos=r.photos,
            location=r.location,
            status=r.status,
        )
        for r in rows
    ]
    return PendingResponse(success=True, total=len(items), items=items)
