"""
Per-row listing flow and driver wiring.
"""
import logging
from typing import Optional

from .browserbase import BrowserbaseClient
from .config import Config
from .direct_driver import DirectDriver
from .errors import AutomationError
from .hybrid import HybridOrchestrator
from .images import ImagePipeline
from .locators import load_selectors
from .models import Credentials, ListingResult, ListingRow
from .remote_driver import RemoteDriver
from .utils import parse_price

logger = logging.getLogger(__name__)


def build_orchestrator(
    cfg=Config,
    use_remote: Optional[bool] = None,
    headless: Optional[bool] = None,
    selectors_file: Optional[str] = None,
) -> HybridOrchestrator:
    """Wire both drivers from configuration. Each factory call builds a fresh driver."""
    selectors = load_selectors(selectors_file or cfg.SELECTORS_FILE)
    images = ImagePipeline(upload_dir=cfg.UPLOAD_DIR)
    prefer_remote = cfg.USE_REMOTE_BROWSER if use_remote is None else use_remote
    is_headless = cfg.HEADLESS if headless is None else headless

    def direct_factory() -> DirectDriver:
        return DirectDriver(
            headless=is_headless,
            slow_mo=cfg.BROWSER_SLOW_MO,
            timeout_ms=cfg.BROWSER_TIMEOUT,
            cookies_file=cfg.COOKIES_FILE,
            selectors=selectors,
            images=images,
            log_dir=cfg.LOG_DIR,
        )

    def remote_factory() -> RemoteDriver:
        client = BrowserbaseClient(
            api_key=cfg.BROWSERBASE_API_KEY,
            project_id=cfg.BROWSERBASE_PROJECT_ID,
            api_url=cfg.BROWSERBASE_API_URL,
            connect_url=cfg.BROWSERBASE_CONNECT_URL,
        )
        return RemoteDriver(client, selectors=selectors, images=images, log_dir=cfg.LOG_DIR)

    return HybridOrchestrator(
        direct_factory=direct_factory,
        remote_factory=remote_factory,
        prefer_remote=prefer_remote,
    )


def validate_row(row: ListingRow) -> Optional[str]:
    """Return an error message when the row cannot be listed."""
    if not row.item_name or not row.price:
        return "Missing required fields: Item Name and Price"
    if parse_price(row.price) is None:
        return f"Invalid price: {row.price}"
    return None


async def process_listing(orchestrator: HybridOrchestrator, row: ListingRow, credentials: Credentials) -> ListingResult:
    """
    Run one row through the orchestrator.

    Never raises for row-level problems: validation errors, automation errors and
    an unresolved login challenge all come back as a failed ListingResult.
    """
    problem = validate_row(row)
    if problem:
        logger.warning(f"Row {row.row_number} rejected: {problem}")
        return ListingResult(success=False, error=problem)

    data = row.to_listing_data()
    data.price = parse_price(row.price)

    try:
        if not orchestrator.initialized:
            await orchestrator.initialize()

        if not orchestrator.logged_in:
            login = await orchestrator.login(credentials)
            if not login.success:
                error = f"Login failed: {login.message}"
                if login.debug_url:
                    error += f" (manual intervention: {login.debug_url})"
                return ListingResult(success=False, error=error, method=login.method)

        await orchestrator.navigate_to_marketplace()
        return await orchestrator.create_listing(data)
    except AutomationError as e:
        logger.error(f"Row {row.row_number} failed: {e}")
        await _best_effort_screenshot(orchestrator, f"row-{row.row_number}-error")
        return ListingResult(success=False, error=str(e), method=e.mode)


async def _best_effort_screenshot(orchestrator: HybridOrchestrator, label: str) -> None:
    try:
        await orchestrator.screenshot(label)
    except Exception as e:
        logger.debug(f"Error screenshot skipped: {e}")
