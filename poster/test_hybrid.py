"""
Tests for the hybrid orchestrator and its one-way downgrade.
"""
import asyncio

import pytest

from poster.errors import (
    AuthenticationFailure,
    InitializationFailure,
    ListingCreationFailure,
    NavigationFailure,
)
from poster.hybrid import HybridOrchestrator, next_mode
from poster.models import Credentials, DriverMode, ListingData, ListingResult, LoginResult

CREDS = Credentials("seller@example.com", "secret")
DESK = ListingData(title="Desk", price="50")


class FakeDriver:
    """Driver stand-in; `fail` names the steps that raise."""

    def __init__(self, mode, fail=(), login_result=None, log=None):
        self.mode = mode
        self.fail = set(fail)
        self.login_result = login_result
        self.log = log if log is not None else []
        self.logged_in = False
        self.closed = False

    def _step(self, name):
        self.log.append((self.mode.value, name))
        if name in self.fail:
            raise RuntimeError(f"{self.mode.value} {name} broke")

    async def initialize(self):
        self._step("initialize")

    async def login(self, email, password):
        self._step("login")
        if self.login_result is not None:
            return self.login_result
        self.logged_in = True
        return LoginResult(success=True, method=self.mode, message="ok")

    async def navigate_to_marketplace(self):
        self._step("navigate")
        return {"success": True, "method": self.mode.value}

    async def create_listing(self, data):
        self._step("create")
        return ListingResult(
            success=True,
            listing_url="https://www.facebook.com/marketplace/item/1",
            method=self.mode,
        )

    async def screenshot(self, label):
        return f"/tmp/{label}.png"

    def session_info(self):
        return {"session_id": "bb-1"}

    async def debug_url(self):
        return "https://debug.example/bb-1"

    async def close(self):
        self.closed = True


def make(remote_fail=(), direct_fail=(), remote_login=None, prefer_remote=True):
    log = []
    built = {"remote": [], "direct": []}

    def remote_factory():
        d = FakeDriver(DriverMode.REMOTE, remote_fail, remote_login, log)
        built["remote"].append(d)
        return d

    def direct_factory():
        d = FakeDriver(DriverMode.DIRECT, direct_fail, None, log)
        built["direct"].append(d)
        return d

    orch = HybridOrchestrator(direct_factory, remote_factory, prefer_remote=prefer_remote)
    return orch, log, built


def test_next_mode_never_returns_remote():
    assert next_mode(DriverMode.REMOTE) is DriverMode.DIRECT
    assert next_mode(DriverMode.DIRECT) is DriverMode.DIRECT


def test_remote_happy_path_stays_remote():
    orch, log, built = make()

    async def flow():
        await orch.initialize()
        await orch.login(CREDS)
        await orch.navigate_to_marketplace()
        return await orch.create_listing(DESK)

    result = asyncio.run(flow())
    assert result.success
    assert result.method is DriverMode.REMOTE
    assert orch.mode is DriverMode.REMOTE
    assert not orch.downgraded
    assert built["direct"] == []


def test_remote_initialize_failure_falls_back_to_direct():
    orch, _, built = make(remote_fail={"initialize"})
    info = asyncio.run(orch.initialize())

    assert info == {"success": True, "mode": "direct"}
    assert orch.mode is DriverMode.DIRECT
    assert orch.downgraded
    assert built["remote"][0].closed


def test_both_drivers_failing_raises_initialization_failure():
    orch, _, _ = make(remote_fail={"initialize"}, direct_fail={"initialize"})
    with pytest.raises(InitializationFailure):
        asyncio.run(orch.initialize())


def test_remote_navigation_failure_downgrades_and_relogs_in():
    """The direct retry logs in with the stored credentials before navigating."""
    orch, log, built = make(remote_fail={"navigate"})

    async def flow():
        await orch.initialize()
        await orch.login(CREDS)
        return await orch.navigate_to_marketplace()

    info = asyncio.run(flow())
    assert info["method"] == "direct"
    assert orch.mode is DriverMode.DIRECT
    assert built["remote"][0].closed
    assert log[-3:] == [("direct", "initialize"), ("direct", "login"), ("direct", "navigate")]


def test_downgrade_is_monotonic():
    orch, log, built = make(remote_fail={"create"})

    async def flow():
        await orch.initialize()
        await orch.login(CREDS)
        await orch.navigate_to_marketplace()
        first = await orch.create_listing(DESK)
        await orch.navigate_to_marketplace()
        second = await orch.create_listing(DESK)
        return first, second

    first, second = asyncio.run(flow())
    assert first.method is DriverMode.DIRECT
    assert second.method is DriverMode.DIRECT
    assert orch.mode is DriverMode.DIRECT
    assert len(built["remote"]) == 1
    # No remote calls after the downgrade
    downgrade_at = log.index(("direct", "initialize"))
    assert all(mode == "direct" for mode, _ in log[downgrade_at:])


def test_direct_failure_is_not_retried():
    orch, _, built = make(direct_fail={"navigate"}, prefer_remote=False)

    async def flow():
        await orch.initialize()
        await orch.login(CREDS)
        await orch.navigate_to_marketplace()

    with pytest.raises(NavigationFailure) as exc_info:
        asyncio.run(flow())
    assert exc_info.value.mode is DriverMode.DIRECT
    assert len(built["direct"]) == 1
    assert built["remote"] == []


def test_failure_after_downgrade_raises_typed_error():
    orch, _, _ = make(remote_fail={"create"}, direct_fail={"create"})

    async def flow():
        await orch.initialize()
        await orch.login(CREDS)
        await orch.create_listing(DESK)

    with pytest.raises(ListingCreationFailure) as exc_info:
        asyncio.run(flow())
    assert "[direct]" in str(exc_info.value)


def test_manual_intervention_login_does_not_downgrade():
    pending = LoginResult(
        success=False,
        method=DriverMode.REMOTE,
        message="Challenge not resolved",
        debug_url="https://debug.example/bb-1",
        requires_manual_intervention=True,
    )
    orch, _, built = make(remote_login=pending)

    async def flow():
        await orch.initialize()
        return await orch.login(CREDS)

    result = asyncio.run(flow())
    assert result.requires_manual_intervention
    assert result.debug_url == "https://debug.example/bb-1"
    assert orch.mode is DriverMode.REMOTE
    assert built["direct"] == []


def test_rejected_remote_login_downgrades():
    rejected = LoginResult(success=False, method=DriverMode.REMOTE, message="bad password")
    orch, _, _ = make(remote_login=rejected)

    async def flow():
        await orch.initialize()
        return await orch.login(CREDS)

    result = asyncio.run(flow())
    assert result.success
    assert result.method is DriverMode.DIRECT
    assert orch.logged_in


def test_login_failure_on_direct_is_authentication_failure():
    orch, _, _ = make(direct_fail={"login"}, prefer_remote=False)
    with pytest.raises(AuthenticationFailure):
        asyncio.run(orch.login(CREDS))


def test_debug_info_and_close():
    orch, _, built = make()

    async def flow():
        await orch.initialize()
        info = await orch.debug_info()
        shot = await orch.screenshot("after-init")
        await orch.close()
        return info, shot

    info, shot = asyncio.run(flow())
    assert info["mode"] == "remote"
    assert info["debug_url"] == "https://debug.example/bb-1"
    assert info["remote"] == {"session_id": "bb-1"}
    assert shot == "/tmp/after-init.png"
    assert built["remote"][0].closed
    assert not orch.initialized
