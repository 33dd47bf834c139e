"""Output aggregation across a root stack and its nested stacks.

Nested stacks are discovered by name: every stack in a completed state whose
name contains the root stack name (other than the root itself). Their output
keys are namespaced with a prefix derived from the nested stack name, e.g.
`my-app-dev-DatabaseStack-1A2B3C` under root `my-app-dev` yields
`DatabaseStack_<OutputKey>`.

Collision policy: when two stacks produce the same (prefixed) key the later
one wins. Every overwrite is logged as a warning naming both owners.
"""

from __future__ import annotations

import re
from typing import List

from botocore.exceptions import ClientError

from stackctl.clients import AwsClients
from stackctl.errors import ProviderError
from stackctl.models import ROOT_OWNER, MergedOutputTable, StackOutput
from stackctl.stacks import describe_stack
from stackctl.utils.logger import get_logger

logger = get_logger(__name__)

NESTED_STATUS_FILTER = ["CREATE_COMPLETE", "UPDATE_COMPLETE"]

_GENERATED_SUFFIX = re.compile(r"-[A-Z0-9]*$")


def get_stack_outputs(clients: AwsClients, stack_name: str, owner: str = ROOT_OWNER) -> List[StackOutput]:
    """Return a stack's outputs in provider order; unreadable stacks yield no outputs."""
    try:
        stack = describe_stack(clients, stack_name)
    except ProviderError as exc:
        logger.warning(f"Could not read outputs of {stack_name}: {exc.message}")
        return []
    if stack is None:
        return []
    return [StackOutput.from_provider(o, owner_stack=owner) for o in stack.get("Outputs") or []]


def list_nested_stacks(clients: AwsClients, root_stack: str) -> List[str]:
    """List completed stacks whose name contains the root name, in listing order."""
    names: List[str] = []
    try:
        paginator = clients.cloudformation.get_paginator("list_stacks")
        for page in paginator.paginate(StackStatusFilter=NESTED_STATUS_FILTER):
            for summary in page.get("StackSummaries", []):
                name = summary.get("StackName", "")
                if root_stack in name and name != root_stack and name not in names:
                    names.append(name)
    except ClientError as exc:
        raise ProviderError.from_client_error("List stacks", exc) from exc
    return names


def nested_prefix(root_stack: str, nested_stack: str) -> str:
    """Strip the root stack name and the trailing provider-generated suffix."""
    stripped = nested_stack.replace(f"{root_stack}-", "", 1)
    return _GENERATED_SUFFIX.sub("", stripped)


def collect_outputs(clients: AwsClients, stack_name: str) -> MergedOutputTable:
    """Merge root and nested stack outputs into one ordered table."""
    table = MergedOutputTable()
    log = get_logger(__name__, stack_name=stack_name)

    for output in get_stack_outputs(clients, stack_name):
        _merge(table, output.key, output, log)

    for nested in list_nested_stacks(clients, stack_name):
        outputs = get_stack_outputs(clients, nested, owner=nested)
        if not outputs:
            continue
        log.info(f"Processing nested stack: {nested}")
        prefix = nested_prefix(stack_name, nested)
        for output in outputs:
            _merge(table, f"{prefix}_{output.key}", output, log)

    return table


def _merge(table: MergedOutputTable, key: str, output: StackOutput, log) -> None:
    previous = table.set(key, output.value, output.description, owner=output.owner_stack)
    if previous is not None:
        log.warning(f"Output key {key} from {previous} overwritten by {output.owner_stack}")
