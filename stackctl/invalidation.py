"""CloudFront cache invalidation for a deployed environment.

dev and staging share the staging distribution; prod uses the production
distribution. The distribution id is read from the root stack outputs.
"""

from __future__ import annotations

import time
import uuid
from typing import Callable, Iterable, Optional, Tuple

from botocore.exceptions import ClientError

from stackctl.clients import AwsClients
from stackctl.config import RuntimeSettings, get_environment_config
from stackctl.errors import PreconditionFailed, ProviderError, WaitTimeout
from stackctl.models import Environment, InvalidationRequest
from stackctl.stacks import require_stack, root_output_value
from stackctl.utils.logger import get_logger
from stackctl.waiter import WaitState, poll_until

COMPLETED = "Completed"


def distribution_output_key(environment: str) -> str:
    return str(get_environment_config(environment)["distribution_output_key"])


def resolve_distribution_id(env: Environment, clients: AwsClients) -> str:
    stack = require_stack(clients, env.stack_name, env.region)
    key = distribution_output_key(env.name)
    distribution_id = root_output_value(stack, key)
    if not distribution_id:
        raise PreconditionFailed(
            f"Could not find CloudFront distribution ID ({key}) for {env.name} environment. "
            "Make sure the stack has been deployed and the environment has a CloudFront distribution."
        )
    return distribution_id


def submit_invalidation(clients: AwsClients, request: InvalidationRequest) -> InvalidationRequest:
    try:
        resp = clients.cloudfront.create_invalidation(
            DistributionId=request.distribution_id,
            InvalidationBatch={
                "Paths": {"Quantity": len(request.paths), "Items": list(request.paths)},
                "CallerReference": f"stackctl-{int(time.time())}-{uuid.uuid4().hex[:8]}",
            },
        )
    except ClientError as exc:
        raise ProviderError.from_client_error(f"Create invalidation on {request.distribution_id}", exc) from exc
    invalidation = resp.get("Invalidation", {})
    return request.model_copy(update={"invalidation_id": invalidation.get("Id"), "status": invalidation.get("Status")})


def _invalidation_probe(clients: AwsClients, request: InvalidationRequest):
    def _probe() -> Tuple[WaitState, Optional[str], Optional[str]]:
        try:
            resp = clients.cloudfront.get_invalidation(
                DistributionId=request.distribution_id, Id=request.invalidation_id
            )
        except ClientError as exc:
            raise ProviderError.from_client_error(f"Get invalidation {request.invalidation_id}", exc) from exc
        status = resp.get("Invalidation", {}).get("Status")
        return (WaitState.SUCCESS if status == COMPLETED else WaitState.PENDING), status, None

    return _probe


def invalidate_cache(
    env: Environment,
    clients: AwsClients,
    paths: Optional[Iterable[str]] = None,
    *,
    settings: Optional[RuntimeSettings] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> InvalidationRequest:
    """Invalidate `paths` (default everything) and block until the invalidation completes."""
    settings = settings or RuntimeSettings.load()
    log = get_logger(__name__, environment=env.name, stack_name=env.stack_name)

    distribution_id = resolve_distribution_id(env, clients)
    log.info(f"Found CloudFront distribution ID: {distribution_id}")

    request = InvalidationRequest(distribution_id=distribution_id, paths=list(paths) if paths else None)
    log.info(f"Creating invalidation for paths: {' '.join(request.paths)}")
    request = submit_invalidation(clients, request)
    log.info(f"Invalidation created with ID: {request.invalidation_id}")

    if request.completed:
        return request

    log.info("Waiting for invalidation to complete...")
    delay, attempts = settings.invalidation_wait(get_environment_config(env.name))
    wait = poll_until(
        _invalidation_probe(clients, request),
        delay=delay,
        max_attempts=attempts,
        description=f"invalidation {request.invalidation_id}",
        sleep=sleep,
    )
    if not wait.succeeded:
        raise WaitTimeout(
            f"Invalidation {request.invalidation_id} on {distribution_id} did not complete "
            f"after {wait.attempts} checks (last status: {wait.status})"
        )
    log.info(f"Invalidation completed successfully for {env.name} environment")
    return request.model_copy(update={"status": wait.status})
