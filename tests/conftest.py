import os
import sys
from pathlib import Path
from typing import Callable, Iterator, List, Optional

import pytest

# Ensure project root is on sys.path so `stackctl` and `tests.fixtures.*` resolve at collection time
_repo_root = Path(__file__).resolve().parents[1]
_repo_root_str = str(_repo_root)
if _repo_root_str not in sys.path:
    sys.path.insert(0, _repo_root_str)

from stackctl.config import RuntimeSettings  # noqa: E402
from stackctl.models import Environment  # noqa: E402
from stackctl.resolver import resolve_environment  # noqa: E402
from tests.fixtures.data_builders import write_parameter_file, write_template  # noqa: E402


@pytest.fixture(autouse=True)
def aws_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Ensure default AWS region is set for moto/boto3 clients and clear cross-test env leaks.

    Also removes stackctl overrides so a developer shell cannot change wait
    bounds or the base directory under test.
    """
    monkeypatch.setenv("AWS_REGION", os.environ.get("AWS_REGION", "us-east-1"))
    monkeypatch.setenv("AWS_DEFAULT_REGION", os.environ.get("AWS_DEFAULT_REGION", "us-east-1"))
    # Provide dummy credentials so botocore signing doesn't fail under moto
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.delenv("AWS_PROFILE", raising=False)

    for name in (
        "STACKCTL_BASE_DIR",
        "STACKCTL_WAIT_DELAY",
        "STACKCTL_WAIT_MAX_ATTEMPTS",
        "STACKCTL_LOG_LEVEL",
        "STACKCTL_LOG_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def fast_settings() -> RuntimeSettings:
    """Settings with no sleeping and a short wait bound."""
    return RuntimeSettings(wait_delay_seconds=0, wait_max_attempts=5)


@pytest.fixture
def no_sleep() -> Callable[[float], None]:
    def _sleep(_seconds: float) -> None:
        return None

    return _sleep


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A working directory with parameter files for every environment and a template."""
    for env in ("dev", "staging", "prod"):
        write_parameter_file(tmp_path, env)
    write_template(tmp_path)
    return tmp_path


@pytest.fixture
def make_env(project_dir: Path) -> Callable[..., Environment]:
    """Resolve an environment against the temporary project directory."""

    def _make(
        environment: str = "staging",
        project_name: Optional[str] = None,
        region: Optional[str] = None,
        **kwargs,
    ) -> Environment:
        return resolve_environment(environment, project_name, region, base_dir=project_dir, **kwargs)

    return _make


@pytest.fixture
def answers() -> Callable[..., Callable[[str], str]]:
    """Build a prompt callable that replays answers and records the prompts it saw."""

    def _factory(*replies: str) -> Callable[[str], str]:
        queue: List[str] = list(replies)
        seen: List[str] = []

        def _prompt(text: str) -> str:
            seen.append(text)
            return queue.pop(0) if queue else ""

        _prompt.seen = seen  # type: ignore[attr-defined]
        return _prompt

    return _factory
