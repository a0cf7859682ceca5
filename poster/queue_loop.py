"""
Queue Loop: polls the sheet and lists one row at a time.

States: IDLE -> RUNNING -> {PAUSED <-> RUNNING} -> STOPPED/COMPLETED. An
unhandled error at loop level drops back to IDLE and is not restarted.
Stop is cooperative: it is only observed at the top of each iteration.
"""
import asyncio
import logging
import random
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Set, Tuple

from .browser import MARKETPLACE_URL
from .core import process_listing
from .errors import ControlError
from .hybrid import HybridOrchestrator
from .models import (
    AutomationState,
    Credentials,
    ListingResult,
    ListingRow,
    LoopPhase,
    STATUS_COMPLETED,
    STATUS_PROCESSING,
)
from .notifier import Notifier
from .utils import now_iso

logger = logging.getLogger(__name__)

DEFAULT_DELAY_RANGE = (30.0, 60.0)
PAUSE_POLL_SECONDS = 5.0


def _row_key(row: ListingRow) -> Tuple:
    if row.has_valid_row_number():
        return ("row", row.row_number)
    return ("anon", row.item_name, row.description, row.price)


class QueueLoop:
    """Owns the AutomationState and the orchestrator for one run at a time."""

    def __init__(
        self,
        gateway,
        orchestrator_factory: Callable[[], HybridOrchestrator],
        credentials: Credentials,
        notifier: Optional[Notifier] = None,
        delay_range: Tuple[float, float] = DEFAULT_DELAY_RANGE,
        pause_poll_seconds: float = PAUSE_POLL_SECONDS,
        sleep=asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        self.gateway = gateway
        self.orchestrator_factory = orchestrator_factory
        self.credentials = credentials
        self.notifier = notifier or Notifier()
        self.delay_range = delay_range
        self.pause_poll_seconds = pause_poll_seconds
        self._sleep = sleep
        self._rng = rng or random.Random()

        self.state = AutomationState()
        self.history: List[Dict] = []
        self._orchestrator: Optional[HybridOrchestrator] = None
        self._seen: Set[Tuple] = set()
        self._task: Optional[asyncio.Task] = None

    # -- control surface -------------------------------------------------

    def status(self) -> Dict:
        return self.state.snapshot()

    async def start(self, spreadsheet_id: str, background: bool = True) -> Dict:
        if not spreadsheet_id:
            raise ControlError("Spreadsheet ID is required")
        if self.state.is_running:
            logger.info("Automation is already running")
            return self.status()
        # A stopped run keeps its task until the row in flight and the delay finish
        if self._task is not None and not self._task.done():
            raise ControlError("Previous run is still stopping, try again shortly", self.status())

        self.state.reset_for_run(spreadsheet_id)
        self.history = []
        self._seen = set()
        await self.notifier.emit("started", spreadsheet_id=spreadsheet_id)
        logger.info(f">>> Automation started for {spreadsheet_id}")

        if background:
            self._task = asyncio.create_task(self.run(spreadsheet_id))
        return self.status()

    async def pause(self) -> Dict:
        if not self.state.is_running:
            raise ControlError("Automation is not running", self.status())
        if not self.state.is_paused:
            self.state.is_paused = True
            self.state.phase = LoopPhase.PAUSED
            await self.notifier.emit("paused")
            logger.info("Automation paused")
        return self.status()

    async def resume(self) -> Dict:
        if not self.state.is_running or not self.state.is_paused:
            raise ControlError("Automation is not paused", self.status())
        self.state.is_paused = False
        self.state.phase = LoopPhase.RUNNING
        await self.notifier.emit("resumed")
        logger.info("Automation resumed")
        return self.status()

    async def stop(self) -> Dict:
        if not self.state.is_running:
            raise ControlError("Automation is not running", self.status())
        stats = self.state.stats()
        self.state.finish(LoopPhase.STOPPED)
        await self.notifier.emit("stopped", stats=stats)
        logger.info("Automation stopped")
        return self.status()

    async def process_once(self, spreadsheet_id: str) -> Dict:
        """Report the pending count; start the loop only if it is idle."""
        if not spreadsheet_id:
            raise ControlError("Spreadsheet ID is required")
        pending = await self.gateway.get_pending_rows(spreadsheet_id)
        if pending and not self.state.is_running:
            await self.start(spreadsheet_id)
        logger.info(f"Sheet processing requested: {len(pending)} pending items")
        return {"pending_count": len(pending), "state": self.status()}

    async def run_to_completion(self, spreadsheet_id: str) -> Dict:
        await self.start(spreadsheet_id, background=False)
        await self.run(spreadsheet_id)
        return self.status()

    async def wait(self) -> None:
        if self._task is not None:
            await self._task

    async def shutdown(self) -> None:
        if self.state.is_running:
            self.state.finish(LoopPhase.STOPPED)
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        await self._close_orchestrator()

    # -- loop --------------------------------------------------------------

    async def run(self, spreadsheet_id: Optional[str] = None) -> None:
        sid = spreadsheet_id or self.state.spreadsheet_id
        try:
            while self.state.is_running:
                await self.run_iteration(sid)
        except Exception as e:
            logger.exception(f"Queue processing error: {e}")
            self.state.finish(LoopPhase.IDLE)
            await self.notifier.emit("error", error=str(e))
        finally:
            await self._close_orchestrator()

    async def run_iteration(self, spreadsheet_id: str) -> None:
        if not self.state.is_running:
            return
        if self.state.is_paused:
            await self._sleep(self.pause_poll_seconds)
            return

        rows = await self.gateway.get_pending_rows(spreadsheet_id)
        row = self._select_next(rows)
        if row is None:
            logger.info(">>> No more items to process, stopping automation")
            stats = self.state.stats()
            self.state.finish(LoopPhase.COMPLETED)
            await self.notifier.emit("completed", stats=stats)
            return

        await self._process_row(spreadsheet_id, row)

        if self.state.is_running:
            delay = self._rng.uniform(*self.delay_range)
            logger.info(f">>> Waiting {delay:.1f}s before processing next item")
            await self._sleep(delay)

    def _select_next(self, rows: List[ListingRow]) -> Optional[ListingRow]:
        for row in rows:
            key = _row_key(row)
            if key in self._seen:
                continue
            if not row.has_valid_row_number():
                logger.error(f"Invalid or missing row number, skipping item: {row.item_name!r} (row_number={row.row_number!r})")
                self._seen.add(key)
                continue
            self._seen.add(key)
            return row
        return None

    def _get_orchestrator(self) -> HybridOrchestrator:
        if self._orchestrator is None:
            self._orchestrator = self.orchestrator_factory()
        return self._orchestrator

    async def _close_orchestrator(self) -> None:
        if self._orchestrator is not None:
            orchestrator, self._orchestrator = self._orchestrator, None
            await orchestrator.close()

    async def _process_row(self, spreadsheet_id: str, row: ListingRow) -> None:
        n = row.row_number
        self.state.current_item = row
        logger.info(f">>> Processing row {n}: {row.item_name}")

        await self.gateway.update_row_status(spreadsheet_id, n, STATUS_PROCESSING)
        await self.notifier.emit("processing", item=row.summary())

        try:
            result = await process_listing(self._get_orchestrator(), row, self.credentials)
        except Exception as e:
            logger.exception(f"Error processing row {n}")
            result = ListingResult(success=False, error=str(e) or e.__class__.__name__)

        if result.success:
            listing_url = result.listing_url or MARKETPLACE_URL
            await self.gateway.update_row_status(spreadsheet_id, n, STATUS_COMPLETED, listing_url)
            self.state.processed_count += 1
            await self.notifier.emit("item-completed", item={**row.summary(), "listing_url": listing_url})
        else:
            error = result.error or "Unknown error occurred"
            await self.gateway.record_failure(spreadsheet_id, n, error)
            self.state.failed_count += 1
            await self.notifier.emit("item-failed", item={**row.summary(), "error": error})

        self.state.last_processed_time = datetime.now(timezone.utc)
        self.state.current_item = None
        self.history.append({
            "row_number": n,
            "item_name": row.item_name,
            "status": STATUS_COMPLETED if result.success else "Failed",
            "listing_url": result.listing_url if result.success else None,
            "error": None if result.success else result.error,
            "method": result.method.value if result.method else None,
            "finished_at": now_iso(),
        })
