"""
Post-login challenge handling as a bounded state machine.

SCANNING looks for an interstitial. A dismissible one moves to DISMISSING while
attempts remain; anything else (nothing found, a success marker, a blocking
checkpoint, or an exhausted budget) moves to VERIFYING, which ends in VERIFIED
or MANUAL_INTERVENTION. Each DISMISSING pass consumes one attempt, so at most
max_attempts + 1 scans happen.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from .locators import CHALLENGE_DISMISSIBLE

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5


class ChallengeState(str, Enum):
    SCANNING = "scanning"
    DISMISSING = "dismissing"
    VERIFYING = "verifying"
    VERIFIED = "verified"
    MANUAL_INTERVENTION = "manual_intervention"


TERMINAL_STATES = (ChallengeState.VERIFIED, ChallengeState.MANUAL_INTERVENTION)


@dataclass(frozen=True)
class Indicator:
    """A challenge marker found on the page."""
    kind: str
    selector: str


@dataclass
class ChallengeOutcome:
    state: ChallengeState
    attempts_used: int
    last_indicator: Optional[Indicator] = None

    @property
    def verified(self) -> bool:
        return self.state is ChallengeState.VERIFIED


def next_challenge_state(
    state: ChallengeState,
    indicator: Optional[Indicator] = None,
    attempts_left: int = 0,
    verified: Optional[bool] = None,
) -> ChallengeState:
    """Pure transition function."""
    if state is ChallengeState.SCANNING:
        if indicator is not None and indicator.kind == CHALLENGE_DISMISSIBLE and attempts_left > 0:
            return ChallengeState.DISMISSING
        return ChallengeState.VERIFYING
    if state is ChallengeState.DISMISSING:
        return ChallengeState.SCANNING
    if state is ChallengeState.VERIFYING:
        return ChallengeState.VERIFIED if verified else ChallengeState.MANUAL_INTERVENTION
    return state


class ChallengeHandler:
    """Drives the state machine with page-specific scan/dismiss/verify callables."""

    def __init__(
        self,
        scan: Callable[[], Awaitable[Optional[Indicator]]],
        dismiss: Callable[[Indicator], Awaitable[bool]],
        verify: Callable[[], Awaitable[bool]],
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        if max_attempts < 0:
            raise ValueError("max_attempts must be >= 0")
        self.scan = scan
        self.dismiss = dismiss
        self.verify = verify
        self.max_attempts = max_attempts

    async def run(self) -> ChallengeOutcome:
        state = ChallengeState.SCANNING
        attempts_left = self.max_attempts
        indicator: Optional[Indicator] = None

        while state not in TERMINAL_STATES:
            if state is ChallengeState.SCANNING:
                indicator = await self.scan()
                if indicator:
                    logger.info(f"Found challenge indicator: {indicator.selector} ({indicator.kind})")
                state = next_challenge_state(state, indicator=indicator, attempts_left=attempts_left)
                if state is ChallengeState.VERIFYING and indicator and indicator.kind == CHALLENGE_DISMISSIBLE:
                    logger.warning("Max attempts reached for post-login challenges")
            elif state is ChallengeState.DISMISSING:
                acted = await self.dismiss(indicator)
                attempts_left -= 1
                logger.debug(f"Dismissal {'acted' if acted else 'found nothing to do'}, {attempts_left} attempts left")
                state = next_challenge_state(state)
            else:
                ok = await self.verify()
                state = next_challenge_state(state, verified=ok)

        return ChallengeOutcome(
            state=state,
            attempts_used=self.max_attempts - attempts_left,
            last_indicator=indicator,
        )
