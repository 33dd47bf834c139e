"""Runtime settings resolved from process environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Tuple

from .types import EnvironmentConfig


def _int_or_none(raw: Optional[str]) -> Optional[int]:
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        return None


@dataclass(frozen=True)
class RuntimeSettings:
    log_level: str = "INFO"
    log_format: str = "text"
    base_dir: Path = Path(".")
    aws_profile: Optional[str] = None
    wait_delay_seconds: Optional[int] = None
    wait_max_attempts: Optional[int] = None

    @staticmethod
    def load() -> "RuntimeSettings":
        return RuntimeSettings(
            log_level=os.environ.get("STACKCTL_LOG_LEVEL", "INFO").upper(),
            log_format=os.environ.get("STACKCTL_LOG_FORMAT", "text").lower(),
            base_dir=Path(os.environ.get("STACKCTL_BASE_DIR") or os.getcwd()),
            aws_profile=os.environ.get("AWS_PROFILE") or None,
            wait_delay_seconds=_int_or_none(os.environ.get("STACKCTL_WAIT_DELAY")),
            wait_max_attempts=_int_or_none(os.environ.get("STACKCTL_WAIT_MAX_ATTEMPTS")),
        )

    def stack_wait(self, config: EnvironmentConfig) -> Tuple[int, int]:
        """Return (delay, max_attempts) for stack waits, env overrides first."""
        return (
            _pick(self.wait_delay_seconds, config.get("stack_wait_delay_seconds", 30)),
            _pick(self.wait_max_attempts, config.get("stack_wait_max_attempts", 120)),
        )

    def invalidation_wait(self, config: EnvironmentConfig) -> Tuple[int, int]:
        return (
            _pick(self.wait_delay_seconds, config.get("invalidation_wait_delay_seconds", 20)),
            _pick(self.wait_max_attempts, config.get("invalidation_wait_max_attempts", 30)),
        )


def _pick(override: Optional[int], default: Any) -> int:
    return override if override is not None else int(default)
