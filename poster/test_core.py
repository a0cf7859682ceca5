"""
Tests for the per-row listing flow and driver wiring.
"""
import asyncio

from poster.core import build_orchestrator, process_listing, validate_row
from poster.direct_driver import DirectDriver, absolute_listing_url
from poster.errors import NavigationFailure
from poster.models import Credentials, DriverMode, ListingResult, ListingRow, LoginResult
from poster.remote_driver import RemoteDriver, classify_submission

CREDS = Credentials("seller@example.com", "secret")


class StubOrchestrator:
    def __init__(self, login_result=None, nav_error=None, logged_in=False):
        self.login_result = login_result or LoginResult(success=True, method=DriverMode.DIRECT)
        self.nav_error = nav_error
        self.initialized = False
        self.logged_in = logged_in
        self.calls = []
        self.listed = None

    async def initialize(self):
        self.calls.append("initialize")
        self.initialized = True

    async def login(self, credentials):
        self.calls.append("login")
        self.logged_in = self.login_result.success
        return self.login_result

    async def navigate_to_marketplace(self):
        self.calls.append("navigate")
        if self.nav_error:
            raise self.nav_error
        return {"success": True}

    async def create_listing(self, data):
        self.calls.append("create")
        self.listed = data
        return ListingResult(success=True, listing_url="https://www.facebook.com/marketplace/item/3", method=DriverMode.DIRECT)

    async def screenshot(self, label):
        self.calls.append(f"screenshot:{label}")
        raise RuntimeError("No active page for screenshot")


def desk(**kw):
    fields = dict(row_number=5, item_name="Desk", price="$1,050", status="Process")
    fields.update(kw)
    return ListingRow(**fields)


def test_validate_row():
    assert validate_row(desk()) is None
    assert validate_row(desk(item_name="")) == "Missing required fields: Item Name and Price"
    assert validate_row(desk(price="")) == "Missing required fields: Item Name and Price"
    assert validate_row(desk(price="ask me")) == "Invalid price: ask me"
    assert validate_row(desk(price="-50")) == "Invalid price: -50"


def test_process_listing_happy_path_normalizes_price():
    orch = StubOrchestrator()
    result = asyncio.run(process_listing(orch, desk(), CREDS))

    assert result.success
    assert orch.calls == ["initialize", "login", "navigate", "create"]
    assert orch.listed.price == "1050"
    assert orch.listed.title == "Desk"


def test_process_listing_skips_login_when_logged_in():
    orch = StubOrchestrator(logged_in=True)
    orch.initialized = True
    asyncio.run(process_listing(orch, desk(), CREDS))
    assert orch.calls == ["navigate", "create"]


def test_manual_intervention_becomes_failed_result():
    pending = LoginResult(
        success=False,
        method=DriverMode.REMOTE,
        message="Challenge not resolved",
        debug_url="https://debug.example/sess-1",
        requires_manual_intervention=True,
    )
    orch = StubOrchestrator(login_result=pending)
    result = asyncio.run(process_listing(orch, desk(), CREDS))

    assert not result.success
    assert "https://debug.example/sess-1" in result.error
    assert result.method is DriverMode.REMOTE
    assert "navigate" not in orch.calls


def test_automation_error_becomes_failed_result():
    """A screenshot failure while reporting does not mask the original error."""
    orch = StubOrchestrator(nav_error=NavigationFailure("All navigation strategies failed", DriverMode.DIRECT))
    result = asyncio.run(process_listing(orch, desk(), CREDS))

    assert not result.success
    assert result.error == "[direct] All navigation strategies failed"
    assert result.method is DriverMode.DIRECT
    assert orch.calls[-1] == "screenshot:row-5-error"


def test_invalid_row_never_touches_the_browser():
    orch = StubOrchestrator()
    result = asyncio.run(process_listing(orch, desk(price=""), CREDS))
    assert not result.success
    assert orch.calls == []


class WiringConfig:
    SELECTORS_FILE = None
    UPLOAD_DIR = "./uploads"
    USE_REMOTE_BROWSER = True
    HEADLESS = True
    BROWSER_SLOW_MO = 0
    BROWSER_TIMEOUT = 30000
    COOKIES_FILE = "cookies.json"
    LOG_DIR = "./logs"
    BROWSERBASE_API_KEY = "bb-key"
    BROWSERBASE_PROJECT_ID = "proj-1"
    BROWSERBASE_API_URL = "https://www.browserbase.com/v1"
    BROWSERBASE_CONNECT_URL = "wss://connect.browserbase.com"


def test_build_orchestrator_wiring():
    orch = build_orchestrator(cfg=WiringConfig)
    assert orch.mode is DriverMode.REMOTE
    assert isinstance(orch.remote_factory(), RemoteDriver)
    direct = orch.direct_factory()
    assert isinstance(direct, DirectDriver)
    assert direct.cookies_file == "cookies.json"

    assert build_orchestrator(cfg=WiringConfig, use_remote=False).mode is DriverMode.DIRECT


def test_classify_submission():
    assert classify_submission("https://www.facebook.com/marketplace/you/selling")
    assert not classify_submission("https://www.facebook.com/marketplace/create/item")
    assert not classify_submission("https://www.facebook.com/")
    assert not classify_submission("")


def test_absolute_listing_url():
    assert absolute_listing_url(None) == "https://www.facebook.com/marketplace"
    assert absolute_listing_url("/marketplace/item/1") == "https://www.facebook.com/marketplace/item/1"
    assert absolute_listing_url("https://www.facebook.com/marketplace/item/2").endswith("/item/2")
