"""Bounded poll loop for long-running provider operations.

Stack create/update/delete and CloudFront invalidations are modeled as a
probe called at a fixed interval for a bounded number of attempts. The probe
classifies each observation; the loop returns a typed result instead of
raising, so callers decide what a failure or timeout means for them.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from stackctl.utils.logger import get_logger

logger = get_logger(__name__)


class WaitState(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    PENDING = "pending"


@dataclass(frozen=True)
class WaitResult:
    state: WaitState
    status: Optional[str]
    attempts: int
    reason: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state is WaitState.SUCCESS


# A probe returns the classified state plus the raw provider status and reason.
Probe = Callable[[], Tuple[WaitState, Optional[str], Optional[str]]]


def poll_until(
    probe: Probe,
    *,
    delay: float,
    max_attempts: int,
    description: str = "operation",
    sleep: Callable[[float], None] = time.sleep,
) -> WaitResult:
    """Call `probe` until it reports a terminal state or attempts run out."""
    last_status: Optional[str] = None
    last_reason: Optional[str] = None
    attempts = max(1, max_attempts)
    for attempt in range(1, attempts + 1):
        state, last_status, last_reason = probe()
        if state is not WaitState.PENDING:
            logger.debug(f"{description} reached {state.value} ({last_status}) after {attempt} attempt(s)")
            return WaitResult(state=state, status=last_status, attempts=attempt, reason=last_reason)
        logger.debug(f"{description} still {last_status}; attempt {attempt}/{attempts}")
        if attempt < attempts:
            sleep(delay)
    return WaitResult(state=WaitState.TIMED_OUT, status=last_status, attempts=attempts, reason=last_reason)
