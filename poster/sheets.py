"""
Google Sheets gateway: row storage keyed by row number.

Columns A..J follow SHEET_COLUMNS. The gspread client is synchronous, so every
call runs in a worker thread.
"""
import asyncio
import logging
import os
from typing import List, Optional

import gspread
from google.oauth2.service_account import Credentials as ServiceAccountCredentials

from .errors import SheetStructureError
from .models import (
    ListingRow,
    SHEET_COLUMNS,
    STATUS_FAILED,
    STATUS_PENDING,
)
from .utils import now_iso, split_photos, to_row_number

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive.readonly",
]

STATUS_COL = "H"
URL_COL = "I"
ERROR_COL = "J"


def parse_row(values: List[str], row_number) -> ListingRow:
    """Map one sheet row (list of cell strings) to a ListingRow."""
    cells = list(values) + [""] * (len(SHEET_COLUMNS) - len(values))
    return ListingRow(
        row_number=to_row_number(row_number),
        item_name=cells[0].strip(),
        description=cells[1],
        price=cells[2].strip(),
        category=cells[3].strip(),
        condition=cells[4].strip(),
        photos=split_photos(cells[5]),
        location=cells[6].strip(),
        status=cells[7].strip() or STATUS_PENDING,
        listing_url=cells[8].strip(),
        error_log=cells[9],
    )


def header_matches(headers: List[str]) -> bool:
    if len(headers) < len(SHEET_COLUMNS):
        return False
    return all(expected.lower() in (headers[i] or "").lower() for i, expected in enumerate(SHEET_COLUMNS))


def _check_row_number(row_number) -> int:
    n = to_row_number(row_number)
    if n is None:
        raise ValueError(f"Invalid row number: {row_number}")
    return n


class SheetsGateway:
    """Async facade over a gspread client."""

    def __init__(
        self,
        credentials_file: Optional[str] = "google-credentials.json",
        service_account_info: Optional[dict] = None,
        client: Optional[gspread.Client] = None,
    ):
        self.credentials_file = credentials_file
        self.service_account_info = service_account_info
        self._client = client

    def _authorize(self) -> gspread.Client:
        if self._client is not None:
            return self._client
        if self.credentials_file and os.path.exists(self.credentials_file):
            logger.info(f"Using Google credentials from {self.credentials_file}")
            creds = ServiceAccountCredentials.from_service_account_file(self.credentials_file, scopes=SCOPES)
        elif self.service_account_info:
            logger.info("Using Google credentials from environment variables")
            creds = ServiceAccountCredentials.from_service_account_info(self.service_account_info, scopes=SCOPES)
        else:
            raise FileNotFoundError("No Google service-account credentials configured")
        self._client = gspread.authorize(creds)
        return self._client

    def _worksheet(self, spreadsheet_id: str):
        return self._authorize().open_by_key(spreadsheet_id).sheet1

    async def _run(self, fn, *args, **kwargs):
        return await asyncio.to_thread(fn, *args, **kwargs)

    def _get_sync(self, spreadsheet_id: str, cell_range: str) -> List[List[str]]:
        return self._worksheet(spreadsheet_id).get(cell_range) or []

    def _update_sync(self, spreadsheet_id: str, cell_range: str, value: str) -> None:
        self._worksheet(spreadsheet_id).update(range_name=cell_range, values=[[value]], raw=True)

    async def get_sheet_data(self, spreadsheet_id: str, cell_range: str = "A:J") -> List[List[str]]:
        rows = await self._run(self._get_sync, spreadsheet_id, cell_range)
        logger.debug(f"Retrieved {len(rows)} rows from {spreadsheet_id} ({cell_range})")
        return [list(r) for r in rows]

    async def get_row(self, spreadsheet_id: str, row_number) -> ListingRow:
        n = _check_row_number(row_number)
        rows = await self.get_sheet_data(spreadsheet_id, f"A{n}:J{n}")
        return parse_row(rows[0] if rows else [], n)

    async def get_pending_rows(self, spreadsheet_id: str) -> List[ListingRow]:
        rows = await self.get_sheet_data(spreadsheet_id)
        pending = []
        # Row 1 is the header
        for idx, values in enumerate(rows[1:], start=2):
            row = parse_row(values, idx)
            if row.is_ready():
                pending.append(row)
        logger.info(f"Found {len(pending)} pending rows in {spreadsheet_id}")
        return pending

    async def update_row_status(self, spreadsheet_id: str, row_number, status: str, listing_url: str = "") -> None:
        n = _check_row_number(row_number)
        await self._run(self._update_sync, spreadsheet_id, f"{STATUS_COL}{n}", status)
        if listing_url:
            await self._run(self._update_sync, spreadsheet_id, f"{URL_COL}{n}", listing_url)
        logger.info(f"Updated row {n} status to: {status}")

    async def append_error_log(self, spreadsheet_id: str, row_number, message: str) -> str:
        """Append a timestamped entry to the Error Log cell; existing text is kept."""
        n = _check_row_number(row_number)
        cell = f"{ERROR_COL}{n}"
        current = await self.get_sheet_data(spreadsheet_id, cell)
        existing = current[0][0] if current and current[0] else ""

        entry = f"{now_iso()}: {message}"
        new_log = f"{existing}\n{entry}" if existing else entry
        await self._run(self._update_sync, spreadsheet_id, cell, new_log)
        logger.info(f"Appended error to row {n}: {message}")
        return new_log

    async def record_failure(self, spreadsheet_id: str, row_number, message: str) -> None:
        await self.update_row_status(spreadsheet_id, row_number, STATUS_FAILED)
        await self.append_error_log(spreadsheet_id, row_number, message)

    async def validate_sheet_structure(self, spreadsheet_id: str) -> bool:
        rows = await self.get_sheet_data(spreadsheet_id, "A1:J1")
        headers = rows[0] if rows else []
        if not header_matches(headers):
            logger.warning(f"Sheet structure validation failed: expected {SHEET_COLUMNS}, got {headers}")
            return False
        logger.info(f"Sheet structure validation passed for {spreadsheet_id}")
        return True

    async def ensure_sheet_structure(self, spreadsheet_id: str) -> None:
        if not await self.validate_sheet_structure(spreadsheet_id):
            raise SheetStructureError(f"Sheet header does not match expected columns: {SHEET_COLUMNS}")
