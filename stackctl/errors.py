"""Error taxonomy for stackctl operations.

Every error carries the process exit code the CLI should return. Errors are
raised where they are detected and only translated to exit codes at the CLI
boundary.
"""

from __future__ import annotations

from typing import Optional

from botocore.exceptions import ClientError


class StackctlError(Exception):
    """Base class for all orchestrator failures."""

    exit_code = 1

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UsageError(StackctlError):
    """Invalid environment token, argument count or output format."""


class DependencyMissing(StackctlError):
    """AWS credentials or client tooling are not available."""


class PreconditionFailed(StackctlError):
    """A parameter file, template or target stack is missing."""


class ProviderError(StackctlError):
    """The provider rejected a create/update/delete/invalidate call."""

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code

    @classmethod
    def from_client_error(cls, action: str, exc: ClientError) -> "ProviderError":
        error = exc.response.get("Error", {})
        code = error.get("Code")
        detail = error.get("Message") or str(exc)
        return cls(f"{action} failed: {detail}", code=code)


class WaitTimeout(StackctlError):
    """A terminal state was not reached within the wait bound."""


def error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


def error_message(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Message", ""))
