"""CloudFormation stack queries and terminal-state classification."""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from botocore.exceptions import ClientError

from stackctl.clients import AwsClients
from stackctl.errors import PreconditionFailed, ProviderError, error_code, error_message
from stackctl.waiter import WaitState

# Stacks created through a change set that was never executed sit here. They
# can be neither created over nor updated, only deleted.
REVIEW_IN_PROGRESS = "REVIEW_IN_PROGRESS"

_FAILED_CREATE = {"CREATE_FAILED", "ROLLBACK_COMPLETE", "ROLLBACK_FAILED", "DELETE_COMPLETE", "DELETE_FAILED"}
_FAILED_UPDATE = {"UPDATE_FAILED", "UPDATE_ROLLBACK_COMPLETE", "UPDATE_ROLLBACK_FAILED"}


def is_missing_stack_error(exc: ClientError) -> bool:
    return error_code(exc) == "ValidationError" and "does not exist" in error_message(exc)


def describe_stack(clients: AwsClients, stack_name: str) -> Optional[Dict[str, Any]]:
    """Return the stack description, or None when the stack does not exist."""
    try:
        resp = clients.cloudformation.describe_stacks(StackName=stack_name)
    except ClientError as exc:
        if is_missing_stack_error(exc):
            return None
        raise ProviderError.from_client_error(f"Describe stack {stack_name}", exc) from exc
    stacks = resp.get("Stacks") or []
    return stacks[0] if stacks else None


def require_stack(clients: AwsClients, stack_name: str, region: str) -> Dict[str, Any]:
    stack = describe_stack(clients, stack_name)
    if stack is None:
        raise PreconditionFailed(f"Stack '{stack_name}' does not exist in region '{region}'")
    return stack


def root_output_value(stack: Dict[str, Any], key: str) -> Optional[str]:
    """Look up one output of a described stack; missing or 'None' values count as absent."""
    for output in stack.get("Outputs") or []:
        if output.get("OutputKey") == key:
            value = output.get("OutputValue")
            if value and value != "None":
                return str(value)
    return None


def _status_of(clients: AwsClients, stack_name: str) -> Tuple[Optional[str], Optional[str]]:
    stack = describe_stack(clients, stack_name)
    if stack is None:
        return None, None
    return stack.get("StackStatus"), stack.get("StackStatusReason")


def classify_create(status: Optional[str]) -> WaitState:
    if status == "CREATE_COMPLETE":
        return WaitState.SUCCESS
    if status is None or status in _FAILED_CREATE:
        return WaitState.FAILED
    return WaitState.PENDING


def classify_update(status: Optional[str]) -> WaitState:
    if status == "UPDATE_COMPLETE":
        return WaitState.SUCCESS
    if status is None or status in _FAILED_UPDATE:
        return WaitState.FAILED
    return WaitState.PENDING


def classify_delete(status: Optional[str]) -> WaitState:
    if status is None or status == "DELETE_COMPLETE":
        return WaitState.SUCCESS
    if status == "DELETE_FAILED":
        return WaitState.FAILED
    return WaitState.PENDING


def stack_probe(clients: AwsClients, stack_name: str, classify):
    """Build a waiter probe that classifies the current stack status."""

    def _probe() -> Tuple[WaitState, Optional[str], Optional[str]]:
        status, reason = _status_of(clients, stack_name)
        return classify(status), status, reason

    return _probe
