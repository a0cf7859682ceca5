"""
Pieces shared by the remote and direct drivers.
"""
import asyncio
import logging
import os
from typing import Dict, List, Optional, Tuple

from .images import ImagePipeline
from .locators import LocatorStrategy, first_match, load_selectors
from .utils import timestamp_slug

logger = logging.getLogger(__name__)

FACEBOOK_HOME = "https://www.facebook.com"
LOGIN_URL = f"{FACEBOOK_HOME}/login"
MARKETPLACE_URL = f"{FACEBOOK_HOME}/marketplace"
CREATE_URL = f"{MARKETPLACE_URL}/create"
CREATE_ITEM_URL = f"{CREATE_URL}/item"

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36"
)
VIEWPORT = {"width": 1280, "height": 900}


class BrowserDriver:
    """Base for drivers that own exactly one page."""

    mode = None

    def __init__(
        self,
        selectors: Optional[Dict[str, List[LocatorStrategy]]] = None,
        images: Optional[ImagePipeline] = None,
        log_dir: str = "./logs",
        settle_scale: float = 1.0,
    ):
        self.selectors = selectors or load_selectors()
        self.images = images or ImagePipeline()
        self.log_dir = log_dir
        self.settle_scale = settle_scale
        self.page = None
        self.logged_in = False

    def strategies(self, key: str) -> List[LocatorStrategy]:
        return self.selectors.get(key, [])

    async def find(self, key: str) -> Optional[Tuple[object, LocatorStrategy]]:
        return await first_match(self.page, self.strategies(key))

    async def settle(self, seconds: float) -> None:
        """Fixed settle delay after an action; scaled down in tests."""
        await asyncio.sleep(seconds * self.settle_scale)

    async def screenshot(self, label: str = "screenshot") -> str:
        if not self.page:
            raise RuntimeError("No active page for screenshot")
        os.makedirs(self.log_dir, exist_ok=True)
        path = os.path.join(self.log_dir, f"{label}-{timestamp_slug()}.png")
        await self.page.screenshot(path=path, full_page=True)
        logger.debug(f"Screenshot saved: {path}")
        return path

    async def snap(self, label: str) -> Optional[str]:
        """Debug screenshot inside a flow; failures never abort the flow."""
        try:
            return await self.screenshot(label)
        except Exception as e:
            logger.warning(f"Screenshot {label} failed: {e}")
            return None
