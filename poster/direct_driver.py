"""
Driver for a locally launched headless Chromium with fixed selectors.
"""
import json
import logging
import os
from typing import Optional

from playwright.async_api import async_playwright, TimeoutError as PlaywrightTimeout

from .browser import (
    BrowserDriver,
    CREATE_URL,
    FACEBOOK_HOME,
    LOGIN_URL,
    MARKETPLACE_URL,
    USER_AGENT,
    VIEWPORT,
)
from .errors import AuthenticationFailure, ListingCreationFailure, NavigationFailure
from .models import Credentials, DriverMode, ListingData, ListingResult, LoginResult
from .utils import mask_email

logger = logging.getLogger(__name__)

# Fixed selectors
EMAIL_SEL = "#email"
PASSWORD_SEL = "#pass"
LOGIN_BUTTON_SEL = "#loginbutton"
CREATE_CONTAINER_SEL = "[data-testid='marketplace-create-listing']"
HOME_FEED_SEL = "[data-testid='marketplace_home_feed']"
FILE_INPUT_SEL = "input[type='file']"
MEDIA_PREVIEW_SEL = "[data-testid='marketplace-media-preview']"
TITLE_SEL = "input[name='title']"
PRICE_SEL = "input[name='price']"
DESCRIPTION_SEL = "textarea[name='description']"
CATEGORY_SEL = "[data-testid='marketplace-category-selector']"
CONDITION_SEL = "[data-testid='marketplace-condition-selector']"
LOCATION_SEL = "[data-testid='marketplace-location-selector']"
PUBLISH_SEL = "[data-testid='marketplace-publish-button']"
SUCCESS_DIALOG_SEL = "[data-testid='marketplace-success-dialog']"

# Incoming resource types aborted to cut page weight; outgoing uploads are unaffected
BLOCKED_RESOURCE_TYPES = ("image", "font", "media")


def absolute_listing_url(href: Optional[str]) -> str:
    """Normalize a success-dialog link; fall back to the marketplace root."""
    if not href:
        return MARKETPLACE_URL
    if href.startswith("http"):
        return href
    if href.startswith("/"):
        return FACEBOOK_HOME + href
    return f"{FACEBOOK_HOME}/{href}"


class DirectDriver(BrowserDriver):
    mode = DriverMode.DIRECT

    def __init__(
        self,
        headless: bool = True,
        slow_mo: int = 0,
        timeout_ms: int = 30_000,
        cookies_file: str = "facebook-cookies.json",
        **kwargs
    ):
        super().__init__(**kwargs)
        self.headless = headless
        self.slow_mo = slow_mo
        self.timeout_ms = timeout_ms
        self.cookies_file = cookies_file
        self.browser = None
        self.context = None
        self._playwright = None
        self._credentials: Optional[Credentials] = None

    async def initialize(self) -> None:
        logger.info(">>> Initializing local browser")
        launch_args = [
            "--disable-blink-features=AutomationControlled",
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-dev-shm-usage",
            "--disable-gpu",
        ]
        self._playwright = await async_playwright().start()
        self.browser = await self._playwright.chromium.launch(
            headless=self.headless,
            slow_mo=self.slow_mo,
            args=launch_args,
        )
        self.context = await self.browser.new_context(
            viewport=VIEWPORT,
            user_agent=USER_AGENT,
            locale="en-US",
        )
        self.context.set_default_timeout(self.timeout_ms)
        self.context.set_default_navigation_timeout(45_000)
        await self.context.route("**/*", self._block_heavy_resources)
        self.page = await self.context.new_page()
        logger.info(f">>> Local browser ready (headless={self.headless})")

    async def _block_heavy_resources(self, route) -> None:
        if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
            await route.abort()
        else:
            await route.continue_()

    # -- login -----------------------------------------------------------

    async def login(self, email: str, password: str) -> LoginResult:
        if not email or not password:
            raise AuthenticationFailure("Facebook credentials are missing", self.mode)
        self._credentials = Credentials(email=email, password=password)

        if await self._restore_cookies():
            return LoginResult(success=True, method=self.mode, message="Logged in using saved cookies")

        try:
            await self._form_login(email, password)
        except Exception:
            await self.snap("login-error")
            raise
        return LoginResult(success=True, method=self.mode, message="Logged in with login form")

    async def _restore_cookies(self) -> bool:
        if not os.path.exists(self.cookies_file):
            return False

        logger.info(">>> Found saved cookies, attempting cookie login")
        try:
            with open(self.cookies_file, "r", encoding="utf-8") as fh:
                cookies = json.load(fh)
            await self.context.add_cookies(cookies)
            await self.page.goto(FACEBOOK_HOME, wait_until="networkidle", timeout=30_000)
            await self.snap("cookie-login")
            if await self.check_login_status():
                logger.info(">>> Logged in using cookies")
                self.logged_in = True
                return True
        except Exception as e:
            logger.warning(f"Cookie login failed: {e}")
            return False

        logger.info("Cookie login failed, proceeding with form login")
        return False

    async def _form_login(self, email: str, password: str) -> None:
        logger.info(f">>> Performing form login as {mask_email(email)}")
        await self.page.goto(LOGIN_URL, wait_until="networkidle", timeout=30_000)
        for sel in (EMAIL_SEL, PASSWORD_SEL, LOGIN_BUTTON_SEL):
            await self.page.wait_for_selector(sel, timeout=15_000)

        await self.page.fill(EMAIL_SEL, email)
        await self.page.fill(PASSWORD_SEL, password)
        await self.snap("before-login-click")

        await self.page.click(LOGIN_BUTTON_SEL)
        try:
            await self.page.wait_for_load_state("networkidle", timeout=45_000)
        except PlaywrightTimeout:
            logger.warning("Navigation timeout, but continuing to check login status")
        await self.snap("after-login")

        error_message = await self._detect_login_error()
        if "/checkpoint/" in self.page.url:
            error_message = (
                "Facebook requires additional verification (checkpoint). "
                "Please complete verification manually and try again."
            )

        if await self.check_login_status():
            logger.info(">>> Logged in with login form")
            self.logged_in = True
            await self._save_cookies()
            return

        raise AuthenticationFailure(error_message or "Login failed - unable to detect successful login", self.mode)

    async def _detect_login_error(self) -> Optional[str]:
        match = await self.find("direct.login_errors")
        if not match:
            return None
        text = (await match[0].text_content()) or ""
        message = f"Login error detected: {text.strip()}"
        logger.error(message)
        return message

    async def check_login_status(self) -> bool:
        try:
            match = await self.find("direct.logged_in")
            if match:
                logger.debug(f"Login detected using selector: {match[1].describe()}")
                return True

            url = self.page.url
            if "facebook.com" in url and "/login" not in url and "/checkpoint" not in url:
                if not await self.find("direct.login_errors"):
                    logger.debug("Login detected via URL check")
                    return True
        except Exception as e:
            logger.error(f"Error checking login status: {e}")
        return False

    async def _save_cookies(self) -> None:
        try:
            cookies = await self.context.cookies()
            with open(self.cookies_file, "w", encoding="utf-8") as fh:
                json.dump(cookies, fh, indent=2)
            logger.info(f">>> Cookies saved to {self.cookies_file}")
        except (OSError, TypeError) as e:
            logger.warning(f"Failed to save cookies: {e}")

    # -- navigation --------------------------------------------------------

    async def navigate_to_marketplace(self) -> dict:
        logger.info(">>> Navigating to Marketplace create page")
        try:
            await self.page.goto(CREATE_URL, wait_until="networkidle", timeout=45_000)
            try:
                await self.page.wait_for_selector(CREATE_CONTAINER_SEL, timeout=30_000)
            except PlaywrightTimeout:
                logger.info("Direct navigation to create listing failed, trying Marketplace home")
                await self._navigate_via_sell_link()
        except Exception:
            await self.snap("marketplace-navigation-error")
            raise
        logger.info(">>> On Marketplace create page")
        return {"success": True, "url": self.page.url}

    async def _navigate_via_sell_link(self) -> None:
        await self.page.goto(MARKETPLACE_URL, wait_until="networkidle", timeout=30_000)
        await self.page.wait_for_selector(HOME_FEED_SEL, timeout=30_000)
        match = await self.find("direct.sell_link")
        if not match:
            raise NavigationFailure(
                'Could not find any "Create New Listing" or "Sell" button on the Marketplace page', self.mode
            )
        await match[0].click()
        await self.page.wait_for_load_state("networkidle")
        await self.page.wait_for_selector(CREATE_CONTAINER_SEL, timeout=30_000)

    # -- listing -------------------------------------------------------------

    async def upload_images(self, files) -> None:
        logger.info(f"Uploading {len(files)} images")
        if await self.page.locator(FILE_INPUT_SEL).count() == 0:
            raise ListingCreationFailure("File input not found", self.mode)
        await self.page.set_input_files(FILE_INPUT_SEL, files)
        await self.page.wait_for_selector(MEDIA_PREVIEW_SEL, timeout=30_000)

    async def _select_from_menu(self, trigger: str, value: str, label: str) -> bool:
        """Pick a dropdown item by case-insensitive substring; keep the default otherwise."""
        try:
            await self.page.click(trigger)
            await self.page.wait_for_selector("[role='menu']")
            items = self.page.locator("[role='menuitemradio']")
            for i in range(await items.count()):
                text = (await items.nth(i).text_content()) or ""
                if value.lower() in text.lower():
                    await items.nth(i).click()
                    return True
            logger.warning(f'{label} "{value}" not found, using default')
        except Exception as e:
            logger.error(f"Failed to select {label.lower()}: {e}")
        return False

    async def _set_location(self, location: str) -> bool:
        try:
            field = self.page.locator(LOCATION_SEL)
            await field.fill("")
            await field.press_sequentially(location)
            await self.page.wait_for_selector("[role='option']")
            await self.page.locator("[role='option']").first.click()
            return True
        except Exception as e:
            logger.error(f"Failed to set location: {e}")
            return False

    async def fill_form(self, data: ListingData) -> None:
        logger.info("Filling listing form")
        await self.page.fill(TITLE_SEL, data.title)
        await self.page.fill(PRICE_SEL, str(data.price))
        if data.category:
            await self._select_from_menu(CATEGORY_SEL, data.category, "Category")
        if data.condition:
            await self._select_from_menu(CONDITION_SEL, data.condition, "Condition")
        await self.page.fill(DESCRIPTION_SEL, data.description)
        if data.location:
            await self._set_location(data.location)

    async def submit(self) -> str:
        logger.info("Submitting listing")
        await self.page.click(PUBLISH_SEL)
        await self.page.wait_for_selector(SUCCESS_DIALOG_SEL, timeout=60_000)

        href = None
        link = self.page.locator(f"{SUCCESS_DIALOG_SEL} a")
        if await link.count() > 0:
            href = await link.first.get_attribute("href")
        return absolute_listing_url(href)

    async def create_listing(self, data: ListingData) -> ListingResult:
        logger.info(f">>> Creating marketplace listing: {data.title}")
        try:
            if not self.logged_in:
                if not self._credentials:
                    raise AuthenticationFailure("Not logged in and no credentials available", self.mode)
                await self.login(self._credentials.email, self._credentials.password)

            await self.navigate_to_marketplace()

            files = await self.images.process_images(data.images)
            if files:
                await self.upload_images(files)

            await self.fill_form(data)
            listing_url = await self.submit()
        except Exception:
            await self.snap("direct-listing-error")
            raise

        logger.info(f">>> Listing created: {listing_url}")
        return ListingResult(success=True, listing_url=listing_url, method=self.mode)

    async def close(self) -> None:
        try:
            if self.browser:
                await self.browser.close()
            if self._playwright:
                await self._playwright.stop()
            logger.info("Local browser closed")
        except Exception as e:
            logger.error(f"Error closing local browser: {e}")
        finally:
            self.browser = None
            self.context = None
            self.page = None
            self._playwright = None
            self.logged_in = False
