"""
Hybrid orchestrator: prefers the remote driver and permanently downgrades to the
direct driver after the first remote failure.
"""
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Type

from .errors import (
    AuthenticationFailure,
    AutomationError,
    InitializationFailure,
    ListingCreationFailure,
    NavigationFailure,
)
from .models import Credentials, DriverMode, ListingData, ListingResult, LoginResult
from .utils import now_iso

logger = logging.getLogger(__name__)

DriverFactory = Callable[[], Any]


def next_mode(current: DriverMode) -> DriverMode:
    """Mode to use after a failure in `current`. Never returns REMOTE."""
    return DriverMode.DIRECT


def as_error(error_cls: Type[AutomationError], exc: Exception, mode: DriverMode) -> AutomationError:
    if isinstance(exc, error_cls):
        if exc.mode is None:
            exc.mode = mode
        return exc
    return error_cls(getattr(exc, "message", None) or str(exc) or exc.__class__.__name__, mode)


@dataclass
class DriverSession:
    """The single active driver and the mode it runs in."""
    mode: DriverMode
    driver: Any

    @property
    def logged_in(self) -> bool:
        return bool(getattr(self.driver, "logged_in", False))


class HybridOrchestrator:
    """One interface over both drivers; owns at most one DriverSession."""

    def __init__(
        self,
        direct_factory: DriverFactory,
        remote_factory: Optional[DriverFactory] = None,
        prefer_remote: bool = True,
    ):
        self.direct_factory = direct_factory
        self.remote_factory = remote_factory
        self.mode = DriverMode.REMOTE if (prefer_remote and remote_factory) else DriverMode.DIRECT
        self.session: Optional[DriverSession] = None
        self._credentials: Optional[Credentials] = None
        self.downgraded = False

    @property
    def initialized(self) -> bool:
        return self.session is not None

    @property
    def logged_in(self) -> bool:
        return self.session is not None and self.session.logged_in

    def _downgrade(self) -> None:
        new_mode = next_mode(self.mode)
        if new_mode is not self.mode:
            self.downgraded = True
        self.mode = new_mode

    async def _open(self, mode: DriverMode) -> None:
        factory = self.remote_factory if mode is DriverMode.REMOTE else self.direct_factory
        driver = factory()
        try:
            await driver.initialize()
        except Exception:
            await driver.close()
            raise
        self.session = DriverSession(mode=mode, driver=driver)
        logger.info(f">>> {mode.value} driver initialized")

    async def initialize(self) -> dict:
        if self.mode is DriverMode.REMOTE:
            try:
                await self._open(DriverMode.REMOTE)
                return {"success": True, "mode": self.mode.value}
            except Exception as e:
                logger.error(f"Remote driver initialization failed: {e}")
                logger.info("Attempting fallback to direct driver...")
                self._downgrade()

        try:
            await self._open(DriverMode.DIRECT)
        except Exception as e:
            raise InitializationFailure(f"No driver could be initialized: {e}", self.mode) from e
        return {"success": True, "mode": self.mode.value}

    async def switch_to_direct(self) -> None:
        """Tear down the current session and bring up the direct driver."""
        logger.info(">>> Switching to direct driver...")
        self._downgrade()
        old, self.session = self.session, None
        if old is not None:
            await old.driver.close()
        try:
            await self._open(DriverMode.DIRECT)
        except Exception as e:
            raise InitializationFailure(f"Direct driver could not be initialized: {e}", self.mode) from e

    async def _attempt(
        self,
        step: str,
        error_cls: Type[AutomationError],
        call: Callable[[Any], Awaitable[Any]],
    ):
        """Run `call` on the active driver; on a remote failure downgrade and retry once."""
        if self.session is None:
            await self.initialize()

        try:
            return await call(self.session.driver)
        except Exception as exc:
            if self.mode is not DriverMode.REMOTE:
                raise as_error(error_cls, exc, self.mode) from exc
            logger.warning(f"Remote {step} failed ({exc}), attempting fallback...")

        await self.switch_to_direct()
        try:
            if step != "login" and self._credentials:
                await self.session.driver.login(self._credentials.email, self._credentials.password)
            return await call(self.session.driver)
        except Exception as exc:
            raise as_error(error_cls, exc, self.mode) from exc

    async def login(self, credentials: Credentials) -> LoginResult:
        self._credentials = credentials

        async def call(driver) -> LoginResult:
            result = await driver.login(credentials.email, credentials.password)
            if not result.success and not result.requires_manual_intervention:
                raise AuthenticationFailure(result.message or "Login failed", driver.mode)
            return result

        result = await self._attempt("login", AuthenticationFailure, call)
        if result.requires_manual_intervention:
            logger.warning(f"Login requires manual intervention: {result.debug_url}")
        return result

    async def navigate_to_marketplace(self) -> dict:
        async def call(driver) -> dict:
            return await driver.navigate_to_marketplace()

        return await self._attempt("navigation", NavigationFailure, call)

    async def create_listing(self, data: ListingData) -> ListingResult:
        async def call(driver) -> ListingResult:
            result = await driver.create_listing(data)
            if not result.success:
                raise ListingCreationFailure(result.error or "Listing creation failed", driver.mode)
            return result

        return await self._attempt("listing creation", ListingCreationFailure, call)

    async def screenshot(self, label: str) -> Optional[str]:
        if self.session is None:
            return None
        return await self.session.driver.screenshot(label)

    async def debug_info(self) -> dict:
        info = {"mode": self.mode.value, "downgraded": self.downgraded, "timestamp": now_iso()}
        if self.session is not None and self.session.mode is DriverMode.REMOTE:
            driver = self.session.driver
            info["remote"] = driver.session_info()
            info["debug_url"] = await driver.debug_url()
        return info

    async def close(self) -> None:
        if self.session is None:
            return
        session, self.session = self.session, None
        await session.driver.close()
        logger.info("Hybrid automation closed")
