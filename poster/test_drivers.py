"""
Form-fill and submit tests for both drivers against a fake page.
"""
import asyncio

import pytest
from PIL import Image

from poster.browserbase import BrowserbaseClient
from poster.direct_driver import (
    CATEGORY_SEL,
    CONDITION_SEL,
    DESCRIPTION_SEL,
    DirectDriver,
    PRICE_SEL,
    TITLE_SEL,
)
from poster.errors import FieldNotFound, ListingCreationFailure, SubmissionAmbiguous
from poster.images import ImagePipeline
from poster.locators import css
from poster.models import DriverMode, ListingData
from poster.remote_driver import RemoteDriver

MENU_ITEM = "[role='menuitemradio']"


class FakeLocator:
    def __init__(self, page, selector, index=None):
        self.page = page
        self.selector = selector
        self.index = index

    @property
    def first(self):
        return FakeLocator(self.page, self.selector, 0)

    def nth(self, i):
        return FakeLocator(self.page, self.selector, i)

    async def count(self):
        return len(self.page.elements.get(self.selector, []))

    async def text_content(self):
        return self.page.elements[self.selector][self.index or 0]

    async def click(self, **kwargs):
        self.page.actions.append(("click", self.selector, self.index))

    async def press_sequentially(self, value, delay=None):
        self.page.actions.append(("type", self.selector, value))

    async def fill(self, value):
        self.page.actions.append(("fill", self.selector, value))

    async def set_input_files(self, files):
        self.page.actions.append(("files", self.selector, list(files)))


class FakePage:
    """Selectors map to element texts; every interaction is recorded in order."""

    def __init__(self, elements, url="https://www.facebook.com/marketplace/create/item"):
        self.elements = elements
        self.url = url
        self.actions = []

    def locator(self, selector):
        return FakeLocator(self, selector)

    def get_by_text(self, value):
        return FakeLocator(self, f"text={value}")

    def get_by_role(self, role, name=None):
        return FakeLocator(self, f"role={role}[{name}]")

    def get_by_label(self, value):
        return FakeLocator(self, f"label={value}")

    def get_by_placeholder(self, value):
        return FakeLocator(self, f"placeholder={value}")

    async def click(self, selector):
        self.actions.append(("click", selector, None))

    async def fill(self, selector, value):
        self.actions.append(("fill", selector, value))

    async def wait_for_selector(self, selector, timeout=None):
        if selector not in self.elements:
            raise TimeoutError(f"Timeout waiting for {selector}")

    async def screenshot(self, path, full_page=True):
        self.actions.append(("screenshot", path, None))

    def typed(self):
        return {sel: value for kind, sel, value in self.actions if kind in ("type", "fill")}


REMOTE_SELECTORS = {
    "listing.title": css("#title"),
    "listing.price": css("#price"),
    "listing.description": css("#description"),
    "listing.category": css("#category"),
    "listing.location": css("#location"),
    "listing.images": css("input[type='file']"),
    "listing.submit": css("#publish"),
}

FORM = {"#title": [""], "#price": [""], "#description": [""]}


def remote_driver(tmp_path, page):
    driver = RemoteDriver(
        BrowserbaseClient("bb-key", "proj-1"),
        selectors=REMOTE_SELECTORS,
        images=ImagePipeline(upload_dir=str(tmp_path)),
        log_dir=str(tmp_path / "logs"),
        settle_scale=0,
    )
    driver.page = page
    return driver


def desk(**kw):
    fields = dict(title="Desk", price="50", description="Oak desk")
    fields.update(kw)
    return ListingData(**fields)


@pytest.mark.parametrize("missing", ["title", "price", "description"])
def test_remote_required_field_missing_fails_the_fill(tmp_path, missing):
    elements = {k: v for k, v in FORM.items() if k != f"#{missing}"}
    page = FakePage(elements)
    driver = remote_driver(tmp_path, page)

    with pytest.raises(FieldNotFound) as exc_info:
        asyncio.run(driver.fill_form(desk()))

    assert exc_info.value.field == missing
    assert exc_info.value.mode is DriverMode.REMOTE
    assert f"#{missing}" not in page.typed()


def test_remote_optional_fields_are_skipped_when_missing(tmp_path):
    """No category picker and no upload field: the fill still completes."""
    Image.new("RGB", (400, 400), color=(10, 120, 10)).save(tmp_path / "desk.jpg")
    page = FakePage(dict(FORM))
    driver = remote_driver(tmp_path, page)

    asyncio.run(driver.fill_form(desk(category="Furniture", images=["desk.jpg"])))

    assert page.typed() == {"#title": "Desk", "#price": "50", "#description": "Oak desk"}
    assert not any(kind == "files" for kind, _, _ in page.actions)
    assert not any(sel == "#category" for _, sel, _ in page.actions)


def test_remote_uploads_processed_images(tmp_path):
    Image.new("RGB", (400, 400), color=(10, 120, 10)).save(tmp_path / "desk.jpg")
    page = FakePage(dict(FORM, **{"input[type='file']": [""]}))
    driver = remote_driver(tmp_path, page)

    asyncio.run(driver.fill_form(desk(images=["desk.jpg", "missing.jpg"])))

    uploads = [value for kind, _, value in page.actions if kind == "files"]
    assert len(uploads) == 1
    assert [p.rsplit("/", 1)[-1] for p in uploads[0]] == ["desk_processed.jpg"]


def test_remote_submit_on_create_url_is_ambiguous(tmp_path):
    page = FakePage({"#publish": ["Publish"]}, url="https://www.facebook.com/marketplace/create/item")
    driver = remote_driver(tmp_path, page)

    with pytest.raises(SubmissionAmbiguous) as exc_info:
        asyncio.run(driver.submit())
    assert exc_info.value.url.endswith("/create/item")
    assert ("click", "#publish", 0) in page.actions


def test_remote_submit_success(tmp_path):
    page = FakePage({"#publish": ["Publish"]}, url="https://www.facebook.com/marketplace/you/selling")
    result = asyncio.run(remote_driver(tmp_path, page).submit())

    assert result.success
    assert result.listing_url == "https://www.facebook.com/marketplace/you/selling"
    assert result.method is DriverMode.REMOTE


def test_remote_submit_without_button(tmp_path):
    with pytest.raises(ListingCreationFailure):
        asyncio.run(remote_driver(tmp_path, FakePage({})).submit())


def direct_driver(tmp_path, page):
    driver = DirectDriver(
        images=ImagePipeline(upload_dir=str(tmp_path)),
        log_dir=str(tmp_path / "logs"),
        settle_scale=0,
    )
    driver.page = page
    return driver


MENU = {"[role='menu']": [""], MENU_ITEM: ["Used - Like New", "Used - Good"]}


def test_direct_menu_without_match_keeps_default(tmp_path):
    page = FakePage(dict(MENU))
    picked = asyncio.run(direct_driver(tmp_path, page)._select_from_menu(CONDITION_SEL, "Refurbished", "Condition"))

    assert picked is False
    assert ("click", CONDITION_SEL, None) in page.actions
    assert not any(sel == MENU_ITEM for _, sel, _ in page.actions)


def test_direct_menu_picks_case_insensitive_match(tmp_path):
    page = FakePage(dict(MENU))
    picked = asyncio.run(direct_driver(tmp_path, page)._select_from_menu(CONDITION_SEL, "used - good", "Condition"))

    assert picked is True
    assert ("click", MENU_ITEM, 1) in page.actions


def test_direct_fill_form_survives_missing_menus(tmp_path):
    """A menu that never opens is logged; the remaining fields are still filled."""
    page = FakePage({})
    asyncio.run(direct_driver(tmp_path, page).fill_form(desk(category="Furniture", condition="New")))

    typed = page.typed()
    assert typed[TITLE_SEL] == "Desk"
    assert typed[PRICE_SEL] == "50"
    assert typed[DESCRIPTION_SEL] == "Oak desk"
    assert ("click", CATEGORY_SEL, None) in page.actions
