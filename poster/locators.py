"""
Ordered locator strategies and the default selector lists for both drivers.

The site's DOM changes often, so every lookup is a list of strategies tried in
order; the first one that resolves an element wins. Lists can be overridden
from a JSON file without touching code.
"""
import json
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

KINDS = ("css", "text", "role", "label", "placeholder")


@dataclass(frozen=True)
class LocatorStrategy:
    kind: str
    value: str
    name: Optional[str] = None

    def __post_init__(self):
        if self.kind not in KINDS:
            raise ValueError(f"Unknown locator kind: {self.kind}")

    def resolve(self, page):
        """Build a Playwright locator for this strategy."""
        if self.kind == "css":
            return page.locator(self.value)
        if self.kind == "text":
            return page.get_by_text(self.value)
        if self.kind == "role":
            if self.name:
                return page.get_by_role(self.value, name=self.name)
            return page.get_by_role(self.value)
        if self.kind == "label":
            return page.get_by_label(self.value)
        return page.get_by_placeholder(self.value)

    def describe(self) -> str:
        if self.kind == "css":
            return self.value
        if self.name:
            return f"{self.kind}={self.value}[{self.name}]"
        return f"{self.kind}={self.value}"


StrategySpec = Union[str, Dict[str, str], LocatorStrategy]


def css(*selectors: str) -> List[LocatorStrategy]:
    return [LocatorStrategy("css", s) for s in selectors]


def to_strategy(spec: StrategySpec) -> LocatorStrategy:
    """Plain strings are CSS; dicts give kind/value/name."""
    if isinstance(spec, LocatorStrategy):
        return spec
    if isinstance(spec, str):
        return LocatorStrategy("css", spec)
    if isinstance(spec, dict):
        return LocatorStrategy(spec.get("kind", "css"), spec["value"], spec.get("name"))
    raise TypeError(f"Unsupported locator spec: {spec!r}")


async def first_match(page, strategies: List[LocatorStrategy]) -> Optional[Tuple[object, LocatorStrategy]]:
    """Return (locator, strategy) for the first strategy that resolves an element."""
    for strategy in strategies:
        try:
            loc = strategy.resolve(page).first
            if await loc.count() > 0:
                logger.debug(f"Locator matched: {strategy.describe()}")
                return loc, strategy
        except Exception as e:
            logger.debug(f"Locator {strategy.describe()} errored: {e}")
            continue
    return None


# Challenge indicators carry a kind: dismissible, blocking or success
CHALLENGE_DISMISSIBLE = "dismissible"
CHALLENGE_BLOCKING = "blocking"
CHALLENGE_SUCCESS = "success"


DEFAULT_SELECTORS: Dict[str, List[LocatorStrategy]] = {
    # Remote login form
    "login.email": css(
        "#email",
        'input[name="email"]',
        'input[type="email"]',
        'input[placeholder*="email" i]',
        'input[aria-label*="email" i]',
    ),
    "login.password": css(
        "#pass",
        'input[name="pass"]',
        'input[type="password"]',
        'input[placeholder*="password" i]',
        'input[aria-label*="password" i]',
    ),
    "login.submit": css(
        'button[name="login"]',
        'button[type="submit"]',
        'input[type="submit"]',
        'button[data-testid="royal_login_button"]',
        'button:has-text("Log in")',
        'button:has-text("Log In")',
    ),
    # Login success (remote verifier)
    "login.success": css(
        '[data-testid="facebook_logo"]',
        'div[role="navigation"]',
        'a[href*="/marketplace"]',
        'a[href*="/profile"]',
        'div[aria-label*="Account"]',
        'img[alt*="profile"]',
        'div[role="main"]',
        'div[data-testid="newsfeed"]',
    ),
    # Post-login interstitials, in scan order
    "challenge.dismissible": css(
        'div[role="dialog"]',
        'button:has-text("Continue")',
        'button:has-text("Skip")',
        'button:has-text("Not Now")',
    ),
    "challenge.blocking": css(
        '[data-testid="checkpoint_title"]',
        'div:has-text("Security Check")',
        'div:has-text("Help us confirm")',
        'div:has-text("Please re-enter")',
        'input[name="approvals_code"]',
        'div:has-text("Two-Factor")',
        'div:has-text("Enter the 6-digit code")',
        'input[type="password"]:not([name="pass"])',
    ),
    "challenge.success": css(
        '[data-testid="facebook_logo"]',
        'div[role="navigation"]',
        'a[href*="/marketplace"]',
    ),
    "challenge.dialog_close": css(
        'button[aria-label="Close"]',
        'button[aria-label*="close" i]',
        'div[role="dialog"] button:has-text("Skip")',
        'div[role="dialog"] button:has-text("Not Now")',
        'div[role="dialog"] button:has-text("Maybe Later")',
        'div[role="dialog"] button:has-text("Cancel")',
        'div[role="dialog"] [data-testid*="close"]',
        'div[role="dialog"] svg[aria-label="Close"]',
    ),
    "challenge.dialog": css('div[role="dialog"]'),
    # Remote navigation
    "marketplace.link": css(
        'a[href*="/marketplace"]',
        'a[aria-label*="Marketplace"]',
        'div[data-testid*="marketplace"]',
    ),
    # Remote create-listing form
    "listing.title": css(
        'input[placeholder*="title" i]',
        'input[aria-label*="title" i]',
        'input[name*="title"]',
        'textarea[placeholder*="title" i]',
    ),
    "listing.price": css(
        'input[placeholder*="price" i]',
        'input[aria-label*="price" i]',
        'input[name*="price"]',
        'input[type="number"]',
    ),
    "listing.description": css(
        'textarea[placeholder*="description" i]',
        'textarea[aria-label*="description" i]',
        'textarea[name*="description"]',
        'div[contenteditable="true"]',
    ),
    "listing.location": css(
        'input[placeholder*="location" i]',
        'input[aria-label*="location" i]',
        'input[name*="location"]',
    ),
    "listing.category": css(
        'select[name*="category"]',
        'div[role="combobox"]',
        'button[aria-haspopup="listbox"]',
        'input[placeholder*="category" i]',
    ),
    "listing.category_option": css(
        'div[role="option"]',
        'li[role="option"]',
        "option",
    ),
    "listing.images": css(
        'input[type="file"]',
        'input[accept*="image"]',
        'button[aria-label*="photo" i]',
        'div[role="button"]:has-text("Add Photos")',
    ),
    "listing.submit": css(
        'button[type="submit"]',
        'button:has-text("Publish")',
        'button:has-text("Post")',
        'button:has-text("Create Listing")',
        'input[type="submit"]',
    ),
    # Direct driver: fixed selectors
    "direct.login_errors": css(
        '[data-testid="royal_login_error"]',
        ".login_error_box",
        '[role="alert"]',
        'div[id*="error"]',
        'div[data-testid="login_error"]',
    ),
    "direct.logged_in": css(
        '[data-testid="user-menu-button"]',
        '[aria-label*="Account"]',
        '[aria-label*="Profile"]',
        'div[role="button"][aria-label*="Account"]',
        'a[href*="/me"]',
        '[data-testid="blue_bar_profile_link"]',
        '[data-testid="nav-user-menu"]',
        'div[data-click="profile_icon"]',
        'a[href*="facebook.com/profile.php"]',
        'div[aria-label*="Your profile"]',
    ),
    "direct.sell_link": css(
        'a[href*="/marketplace/create"]',
        'a[aria-label*="Sell" i]',
    ),
}


def load_selectors(path: Optional[str] = None) -> Dict[str, List[LocatorStrategy]]:
    """
    Return the selector lists, with any lists from a JSON file replacing defaults.

    File shape: {"listing.title": ["input#title", {"kind": "label", "value": "Title"}]}
    """
    selectors = {k: list(v) for k, v in DEFAULT_SELECTORS.items()}
    if not path:
        return selectors

    with open(path, "r", encoding="utf-8") as fh:
        overrides = json.load(fh)
    if not isinstance(overrides, dict):
        raise ValueError(f"Selector file must hold a JSON object: {path}")

    for key, specs in overrides.items():
        if not isinstance(specs, list):
            raise ValueError(f"Selector list for {key} must be a JSON array")
        selectors[key] = [to_strategy(s) for s in specs]
        if key not in DEFAULT_SELECTORS:
            logger.warning(f"Selector file defines unknown key {key}")
    logger.info(f">>> Loaded {len(overrides)} selector overrides from {path}")
    return selectors
