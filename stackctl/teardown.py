"""Teardown controller: confirmed, best-effort cleanup followed by stack deletion.

Order of operations once the operator re-typed the stack name:

1. empty the well-known storage buckets named in the root stack outputs;
2. for non-dev environments, delete the bootstrapped secret and parameter;
3. delete the stack and wait for it to disappear.

Teardown is not transactional. A bucket that cannot be emptied only produces
a warning and deletion still proceeds; CloudFormation itself fails loudly on
non-empty buckets. A failure after step 1 leaves the environment partially torn
down with no compensation.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from botocore.exceptions import ClientError

from stackctl.bootstrap import delete_bootstrap
from stackctl.clients import AwsClients
from stackctl.config import RuntimeSettings, get_environment_config
from stackctl.errors import ProviderError
from stackctl.models import Environment, Outcome
from stackctl.stacks import classify_delete, require_stack, root_output_value, stack_probe
from stackctl.utils.logger import get_logger
from stackctl.waiter import WaitState, poll_until

DELETE_BATCH_SIZE = 1000

DESTRUCTIVE_RESOURCES = (
    "S3 buckets (and all their contents)",
    "CloudFront distributions",
    "VPC and networking resources",
    "RDS databases",
    "ECS resources",
    "API Gateway resources",
    "IAM roles and policies",
)


@dataclass
class TeardownResult:
    stack_name: str
    outcome: Outcome
    emptied_buckets: List[str] = field(default_factory=list)
    skipped_buckets: List[str] = field(default_factory=list)
    status: Optional[str] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome.ok


def bucket_reachable(clients: AwsClients, bucket: str) -> bool:
    try:
        clients.s3.head_bucket(Bucket=bucket)
    except ClientError:
        return False
    return True


def empty_bucket(clients: AwsClients, bucket: str) -> int:
    """Delete every object version and delete marker in `bucket`. Returns the count.

    Quiet batch deletes only report failures; any reported key raises ProviderError.
    """
    s3 = clients.s3
    paginator = s3.get_paginator("list_object_versions")
    pending: List[Dict[str, Any]] = []
    total = 0

    def _flush() -> None:
        if not pending:
            return
        resp = s3.delete_objects(Bucket=bucket, Delete={"Objects": list(pending), "Quiet": True})
        pending.clear()
        errors = resp.get("Errors") or []
        if errors:
            first = errors[0]
            raise ProviderError(
                f"Failed to delete {len(errors)} object(s) from {bucket}: "
                f"{first.get('Key')}: {first.get('Message') or first.get('Code')}",
                code=first.get("Code"),
            )

    for page in paginator.paginate(Bucket=bucket):
        for obj in page.get("Versions", []) + page.get("DeleteMarkers", []):
            pending.append({"Key": obj["Key"], "VersionId": obj["VersionId"]})
            total += 1
            if len(pending) >= DELETE_BATCH_SIZE:
                _flush()
    _flush()
    return total


def empty_storage(env: Environment, clients: AwsClients, stack: Dict[str, Any], result: TeardownResult) -> None:
    log = get_logger(__name__, environment=env.name, stack_name=env.stack_name)
    log.info("Emptying S3 buckets (if any)")
    for key in get_environment_config(env.name).get("storage_output_keys", []):
        bucket = root_output_value(stack, key)
        if not bucket:
            continue
        log.info(f"Emptying bucket: {bucket}")
        if not bucket_reachable(clients, bucket):
            log.warning(f"Bucket not accessible or does not exist: {bucket}")
            result.skipped_buckets.append(bucket)
            continue
        try:
            removed = empty_bucket(clients, bucket)
        except (ClientError, ProviderError) as exc:
            log.warning(f"Failed to empty bucket {bucket}: {exc}; continuing with deletion")
            result.skipped_buckets.append(bucket)
            continue
        log.info(f"Bucket emptied: {bucket} ({removed} object(s))")
        result.emptied_buckets.append(bucket)


def delete_stack(
    env: Environment,
    clients: AwsClients,
    confirm: Callable[[str], str],
    *,
    settings: Optional[RuntimeSettings] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> TeardownResult:
    """Tear the stack down once the operator re-types the stack name exactly.

    `confirm` receives the prompt text and returns what the operator typed.
    """
    settings = settings or RuntimeSettings.load()
    log = get_logger(__name__, environment=env.name, stack_name=env.stack_name)
    stack = require_stack(clients, env.stack_name, env.region)

    log.warning("This action will DELETE all resources created by the CloudFormation stack:")
    for resource in DESTRUCTIVE_RESOURCES:
        log.warning(f"- {resource}")
    log.warning("This action CANNOT be undone!")

    confirmation = confirm(f"Type the stack name '{env.stack_name}' to confirm deletion: ")
    if (confirmation or "") != env.stack_name:
        log.info("Deletion cancelled.")
        return TeardownResult(stack_name=env.stack_name, outcome=Outcome.CANCELLED)

    result = TeardownResult(stack_name=env.stack_name, outcome=Outcome.SUCCESS)
    empty_storage(env, clients, stack, result)

    if not env.is_dev:
        log.info("Removing bootstrapped secret and parameter")
        delete_bootstrap(env, clients)

    log.info(f"Deleting CloudFormation stack: {env.stack_name}")
    try:
        clients.cloudformation.delete_stack(StackName=env.stack_name)
    except ClientError as exc:
        raise ProviderError.from_client_error(f"Delete stack {env.stack_name}", exc) from exc

    log.info("Stack deletion initiated; waiting for deletion to complete...")
    delay, attempts = settings.stack_wait(get_environment_config(env.name))
    wait = poll_until(
        stack_probe(clients, env.stack_name, classify_delete),
        delay=delay,
        max_attempts=attempts,
        description=f"delete {env.stack_name}",
        sleep=sleep,
    )
    result.status = wait.status
    result.reason = wait.reason
    if wait.state is WaitState.SUCCESS:
        log.info("Stack deletion completed successfully!")
        log.info(f"Environment {env.name} has been deleted.")
        return result

    result.outcome = Outcome.TIMED_OUT if wait.state is WaitState.TIMED_OUT else Outcome.FAILED
    log.error("Stack deletion failed or timed out. Check the AWS CloudFormation console for details.")
    log.error("You may need to manually delete resources that failed to delete.")
    return result
