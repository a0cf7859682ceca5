"""
Driver for a browser running in the remote cloud, reached over CDP.

Uses broad selector lists to tolerate UI drift and a challenge handler for
interstitials after login.
"""
import logging
import re
from typing import Optional

from playwright.async_api import async_playwright

from .browser import BrowserDriver, CREATE_ITEM_URL, LOGIN_URL, MARKETPLACE_URL
from .browserbase import BrowserbaseClient
from .challenge import ChallengeHandler, DEFAULT_MAX_ATTEMPTS, Indicator
from .errors import (
    AuthenticationFailure,
    FieldNotFound,
    ListingCreationFailure,
    NavigationFailure,
    SubmissionAmbiguous,
)
from .locators import CHALLENGE_BLOCKING, CHALLENGE_DISMISSIBLE, CHALLENGE_SUCCESS
from .models import DriverMode, ListingData, ListingResult, LoginResult

logger = logging.getLogger(__name__)

# Scan order for post-login indicators
CHALLENGE_SCAN_ORDER = (
    ("challenge.dismissible", CHALLENGE_DISMISSIBLE),
    ("challenge.blocking", CHALLENGE_BLOCKING),
    ("challenge.success", CHALLENGE_SUCCESS),
)
DISMISS_BUTTON_TEXT = re.compile(r"continue|skip|not now", re.I)


def classify_submission(url: str) -> bool:
    """A finished listing lands back on marketplace, away from the create flow."""
    return bool(url) and "marketplace" in url and "create" not in url


class RemoteDriver(BrowserDriver):
    mode = DriverMode.REMOTE

    def __init__(self, client: BrowserbaseClient, max_challenge_attempts: int = DEFAULT_MAX_ATTEMPTS, **kwargs):
        super().__init__(**kwargs)
        self.client = client
        self.max_challenge_attempts = max_challenge_attempts
        self.session_id: Optional[str] = None
        self.browser = None
        self._playwright = None

    async def connect(self) -> None:
        if not self.session_id:
            session = await self.client.create_session()
            self.session_id = session["id"]

        logger.info(">>> Connecting to Browserbase browser...")
        self._playwright = await async_playwright().start()
        self.browser = await self._playwright.chromium.connect_over_cdp(self.client.connect_url(self.session_id))
        context = self.browser.contexts[0] if self.browser.contexts else await self.browser.new_context()
        self.page = context.pages[0] if context.pages else await context.new_page()
        self.page.set_default_timeout(30_000)
        logger.info(">>> Connected to Browserbase browser")

    async def initialize(self) -> None:
        await self.connect()

    async def debug_url(self) -> Optional[str]:
        if not self.session_id:
            return None
        try:
            return await self.client.get_debug_url(self.session_id)
        except Exception as e:
            logger.error(f"Failed to get debug URL: {e}")
            return None

    async def _type_into(self, loc, value: str, delay: int) -> None:
        await loc.click(click_count=3)
        await loc.press_sequentially(str(value), delay=delay)

    async def _require(self, key: str, what: str):
        match = await self.find(key)
        if not match:
            raise AuthenticationFailure(f"Could not find {what}", self.mode)
        logger.info(f"Found {what} with selector: {match[1].describe()}")
        return match[0]

    # -- login -----------------------------------------------------------

    async def login(self, email: str, password: str) -> LoginResult:
        logger.info(">>> Starting remote Facebook login...")
        try:
            await self.page.goto(LOGIN_URL, wait_until="networkidle", timeout=30_000)
            await self.snap("login-page-loaded")

            email_input = await self._require("login.email", "email input field")
            await self._type_into(email_input, email, delay=100)

            password_input = await self._require("login.password", "password input field")
            await self._type_into(password_input, password, delay=100)
            await self.snap("credentials-entered")

            login_button = await self._require("login.submit", "login button")
            await login_button.click()
            logger.info("Login button clicked")

            await self.settle(3)
            await self.snap("after-login-click")

            handler = ChallengeHandler(
                scan=self._scan_challenge,
                dismiss=self._dismiss_challenge,
                verify=self._verify_login,
                max_attempts=self.max_challenge_attempts,
            )
            outcome = await handler.run()
        except Exception:
            await self.snap("login-error")
            raise

        if outcome.verified:
            self.logged_in = True
            logger.info(">>> Facebook login successful")
            return LoginResult(success=True, method=self.mode, message="Login completed successfully")

        logger.warning("Login verification failed - may need manual intervention")
        return LoginResult(
            success=False,
            method=self.mode,
            message="Login verification failed",
            debug_url=await self.debug_url(),
            requires_manual_intervention=True,
        )

    async def _scan_challenge(self) -> Optional[Indicator]:
        await self.settle(2)
        logger.debug(f"Current URL after login: {self.page.url}")
        found = None
        for key, kind in CHALLENGE_SCAN_ORDER:
            match = await self.find(key)
            if match:
                found = Indicator(kind=kind, selector=match[1].describe())
                break
        await self.snap("post-login-analysis")
        return found

    async def _dismiss_challenge(self, indicator: Indicator) -> bool:
        if "dialog" in indicator.selector:
            acted = await self._close_dialog()
        else:
            acted = await self._click_dismiss_button()

        if not acted:
            logger.info("Trying to close challenge with Escape key")
            await self.page.keyboard.press("Escape")
            await self.settle(1)
            acted = True
        return acted

    async def _click_dismiss_button(self) -> bool:
        buttons = self.page.locator("button").filter(has_text=DISMISS_BUTTON_TEXT)
        if await buttons.count() == 0:
            return False
        button = buttons.first
        logger.info(f"Clicking button: {(await button.text_content() or '').strip()}")
        await button.click()
        await self.settle(2)
        await self.snap("after-challenge-button")
        return True

    async def _close_dialog(self) -> bool:
        match = await self.find("challenge.dialog_close")
        if match:
            await match[0].click()
            logger.info(f"Clicked dialog close: {match[1].describe()}")
            await self.settle(2)
            await self.snap("after-dialog-close")
            return True

        dialog = await self.find("challenge.dialog")
        if dialog:
            box = await dialog[0].bounding_box()
            if box and box["x"] > 10 and box["y"] > 10:
                await self.page.mouse.click(box["x"] - 10, box["y"] - 10)
                logger.info("Clicked outside dialog to close")
                await self.settle(2)
                await self.snap("after-dialog-close")
                return True
        return False

    async def _verify_login(self) -> bool:
        logger.info("Verifying login success...")
        match = await self.find("login.success")
        await self.snap("login-verification")
        if match:
            logger.info(f"Login success confirmed with: {match[1].describe()}")
            return True
        return False

    # -- navigation --------------------------------------------------------

    async def _goto_marketplace(self) -> None:
        await self.page.goto(MARKETPLACE_URL, wait_until="networkidle", timeout=30_000)

    async def _click_marketplace_link(self) -> None:
        match = await self.find("marketplace.link")
        if not match:
            raise NavigationFailure("No marketplace link found", self.mode)
        await match[0].click()
        await self.settle(3)

    async def navigate_to_marketplace(self) -> dict:
        logger.info(">>> Navigating to Facebook Marketplace...")
        for strategy in (self._goto_marketplace, self._click_marketplace_link):
            try:
                await strategy()
                await self.settle(2)
            except Exception as e:
                logger.info(f"Navigation strategy {strategy.__name__} failed: {e}")
                continue
            if "marketplace" in self.page.url:
                await self.snap("marketplace-navigation")
                logger.info(">>> Successfully navigated to Marketplace")
                return {"success": True, "url": self.page.url}

        await self.snap("marketplace-error")
        raise NavigationFailure("Failed to navigate to Marketplace with all strategies", self.mode)

    # -- listing -------------------------------------------------------------

    async def _fill_field(self, key: str, field: str, value: str) -> None:
        match = await self.find(key)
        if not match:
            raise FieldNotFound(field, self.mode)
        logger.info(f"Filling {field} field using {match[1].describe()}")
        await self._type_into(match[0], value, delay=50)

    async def _select_category(self, category: str) -> bool:
        try:
            match = await self.find("listing.category")
            if match:
                await match[0].click()
                await self.settle(1)
                for strategy in self.strategies("listing.category_option"):
                    options = strategy.resolve(self.page)
                    for i in range(await options.count()):
                        option = options.nth(i)
                        text = ((await option.text_content()) or "").strip().lower()
                        if text and category.lower() in text:
                            await option.click()
                            logger.info(f"Selected category: {category}")
                            return True
            logger.info(f"Category selection not found or not required: {category}")
        except Exception as e:
            logger.error(f"Category selection error: {e}")
        return False

    async def _upload_images(self, images) -> bool:
        try:
            files = await self.images.process_images(images)
            if not files:
                logger.info("No usable images - skipping upload")
                return False
            match = await self.find("listing.images")
            if not match:
                logger.info("Image upload field not found - skipping images")
                return False

            loc, strategy = match
            if strategy.kind == "css" and strategy.value.startswith("input"):
                await loc.set_input_files(files)
            else:
                async with self.page.expect_file_chooser() as fc_info:
                    await loc.click()
                chooser = await fc_info.value
                await chooser.set_files(files)
            logger.info(f"Uploaded {len(files)} images")
            await self.settle(3)
            return True
        except Exception as e:
            logger.error(f"Image upload error: {e}")
            return False

    async def fill_form(self, data: ListingData) -> None:
        await self._fill_field("listing.title", "title", data.title)
        await self._fill_field("listing.price", "price", data.price)
        await self._fill_field("listing.description", "description", data.description)
        if data.category:
            await self._select_category(data.category)
        if data.location:
            await self._fill_field("listing.location", "location", data.location)
        if data.images:
            await self._upload_images(data.images)
        await self.snap("form-filled")

    async def submit(self) -> ListingResult:
        match = await self.find("listing.submit")
        if not match:
            raise ListingCreationFailure("Could not find submit button", self.mode)
        await match[0].click()
        logger.info("Submit button clicked")

        await self.settle(5)
        await self.snap("after-submit")

        url = self.page.url
        if not classify_submission(url):
            raise SubmissionAmbiguous(url, self.mode)
        logger.info(f">>> Listing submitted: {url}")
        return ListingResult(success=True, listing_url=url, method=self.mode)

    async def create_listing(self, data: ListingData) -> ListingResult:
        try:
            await self.page.goto(CREATE_ITEM_URL, wait_until="networkidle", timeout=30_000)
            await self.snap("create-listing-page")
            await self.fill_form(data)
            return await self.submit()
        except Exception:
            await self.snap("remote-listing-error")
            raise

    async def close(self) -> None:
        try:
            if self.page and not self.page.is_closed():
                await self.page.close()
            if self.browser:
                await self.browser.close()
            if self._playwright:
                await self._playwright.stop()
            logger.info("Browserbase session closed")
        except Exception as e:
            logger.error(f"Error closing Browserbase session: {e}")
        finally:
            self.page = None
            self.browser = None
            self._playwright = None
            self.logged_in = False

    def session_info(self) -> dict:
        return {
            "session_id": self.session_id,
            "has_active_browser": self.browser is not None,
            "has_active_page": self.page is not None,
        }
