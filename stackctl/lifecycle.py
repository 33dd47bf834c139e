"""Stack lifecycle controller: create-or-update a stack and wait for it.

State machine per stack name:

    ABSENT  -> create_stack -> CREATE_IN_PROGRESS -> CREATE_COMPLETE | failed | timed out
    PRESENT -> update_stack -> UPDATE_IN_PROGRESS -> UPDATE_COMPLETE | failed | timed out
    PRESENT -> update_stack -> "No updates are to be performed" -> no-op success
    REVIEW_IN_PROGRESS -> PreconditionFailed, nothing submitted

The template is validated before either branch; a validation failure aborts
before anything is mutated. Existence is re-queried on every run, so two
concurrent deploys of a new stack can both choose "create"; CloudFormation
rejects the second one with AlreadyExistsException, surfaced as a ProviderError.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from botocore.exceptions import ClientError

from stackctl.bootstrap import ensure_bootstrap
from stackctl.clients import AwsClients
from stackctl.config import RuntimeSettings, get_environment_config
from stackctl.errors import PreconditionFailed, ProviderError, error_message
from stackctl.models import Environment, Outcome, ParameterFile
from stackctl.naming import storage_bucket_name
from stackctl.resolver import load_parameter_file
from stackctl.stacks import REVIEW_IN_PROGRESS, classify_create, classify_update, describe_stack, stack_probe
from stackctl.utils.logger import get_logger
from stackctl.waiter import WaitResult, WaitState, poll_until

NO_UPDATES_MESSAGE = "No updates are to be performed"

CREATE = "create"
UPDATE = "update"


@dataclass(frozen=True)
class DeployResult:
    stack_name: str
    action: str
    outcome: Outcome
    status: Optional[str] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome.ok


def _outcome_of(wait: WaitResult) -> Outcome:
    if wait.state is WaitState.SUCCESS:
        return Outcome.SUCCESS
    if wait.state is WaitState.TIMED_OUT:
        return Outcome.TIMED_OUT
    return Outcome.FAILED


def _tags(env: Environment) -> List[Dict[str, str]]:
    tags = dict(get_environment_config(env.name).get("tags", {}))
    tags.setdefault("Project", env.project_name)
    return [{"Key": k, "Value": v} for k, v in tags.items()]


def validate_template(env: Environment, clients: AwsClients) -> None:
    log = get_logger(__name__, environment=env.name, stack_name=env.stack_name)
    log.info("Validating CloudFormation template...")
    try:
        clients.cloudformation.validate_template(**env.template_kwargs())
    except ClientError as exc:
        raise ProviderError.from_client_error("Template validation", exc) from exc
    log.info("Template validation successful")


def _stack_kwargs(env: Environment, parameters: ParameterFile) -> Dict[str, object]:
    capabilities = list(get_environment_config(env.name).get("capabilities", ["CAPABILITY_NAMED_IAM"]))
    return {
        "StackName": env.stack_name,
        "Parameters": parameters.to_cloudformation(),
        "Capabilities": capabilities,
        "Tags": _tags(env),
        **env.template_kwargs(),
    }


def submit_create(env: Environment, clients: AwsClients, parameters: ParameterFile) -> None:
    try:
        clients.cloudformation.create_stack(**_stack_kwargs(env, parameters))
    except ClientError as exc:
        raise ProviderError.from_client_error(f"Create stack {env.stack_name}", exc) from exc


def submit_update(env: Environment, clients: AwsClients, parameters: ParameterFile) -> bool:
    """Submit an update. Returns False when CloudFormation reports nothing to change."""
    try:
        clients.cloudformation.update_stack(**_stack_kwargs(env, parameters))
    except ClientError as exc:
        if NO_UPDATES_MESSAGE in error_message(exc):
            return False
        raise ProviderError.from_client_error(f"Update stack {env.stack_name}", exc) from exc
    return True


def deploy_stack(
    env: Environment,
    clients: AwsClients,
    *,
    settings: Optional[RuntimeSettings] = None,
    parameters: Optional[ParameterFile] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> DeployResult:
    """Validate, then create or update the stack and block until it settles."""
    settings = settings or RuntimeSettings.load()
    log = get_logger(__name__, environment=env.name, stack_name=env.stack_name)
    params = parameters if parameters is not None else load_parameter_file(env.parameter_file)

    validate_template(env, clients)
    delay, attempts = settings.stack_wait(get_environment_config(env.name))

    existing = describe_stack(clients, env.stack_name)
    if existing is not None and existing.get("StackStatus") == REVIEW_IN_PROGRESS:
        raise PreconditionFailed(
            f"Stack '{env.stack_name}' is in {REVIEW_IN_PROGRESS} from an unexecuted change set; "
            "execute or delete it before deploying"
        )

    if existing is None:
        log.info(f"Creating new stack: {env.stack_name}")
        submit_create(env, clients, params)
        log.info("Stack creation initiated; waiting for CREATE_COMPLETE...")
        wait = poll_until(
            stack_probe(clients, env.stack_name, classify_create),
            delay=delay,
            max_attempts=attempts,
            description=f"create {env.stack_name}",
            sleep=sleep,
        )
        action = CREATE
    else:
        log.info(f"Updating existing stack: {env.stack_name}")
        if not submit_update(env, clients, params):
            log.info("No updates are needed for the stack")
            return DeployResult(stack_name=env.stack_name, action=UPDATE, outcome=Outcome.NO_CHANGES)
        log.info("Stack update initiated; waiting for UPDATE_COMPLETE...")
        wait = poll_until(
            stack_probe(clients, env.stack_name, classify_update),
            delay=delay,
            max_attempts=attempts,
            description=f"update {env.stack_name}",
            sleep=sleep,
        )
        action = UPDATE

    result = DeployResult(
        stack_name=env.stack_name,
        action=action,
        outcome=_outcome_of(wait),
        status=wait.status,
        reason=wait.reason,
    )
    if result.outcome is Outcome.SUCCESS:
        log.info(f"Stack {action} completed successfully!")
    else:
        log.error(
            f"Stack {action} {result.outcome.value} (status={wait.status}, reason={wait.reason}). "
            "Check the AWS CloudFormation console for details."
        )
    return result


def log_environment_summary(env: Environment, account_id: Optional[str] = None) -> None:
    log = get_logger(__name__, environment=env.name, stack_name=env.stack_name)
    log.info("=== AWS CloudFormation Deployment ===")
    log.info(f"Environment: {env.name}")
    log.info(f"Project Name: {env.project_name}")
    log.info(f"Stack Name: {env.stack_name}")
    log.info(f"Region: {env.region}")
    log.info(f"Parameter File: {env.parameter_file}")
    log.info(f"Template: {env.template_url or env.template_path}")
    if account_id:
        roles = get_environment_config(env.name).get("storage_roles", [])
        for role in roles:
            log.info(
                f"Expected {role} bucket: "
                f"{storage_bucket_name(env.project_name, env.name, role, account_id, env.region)}"
            )


def run_deploy(
    env: Environment,
    clients: AwsClients,
    *,
    confirm: Callable[[str], bool],
    settings: Optional[RuntimeSettings] = None,
    account_id: Optional[str] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> DeployResult:
    """Full deploy path: summary, bootstrap, parameter preview, confirmation, deploy."""
    log = get_logger(__name__, environment=env.name, stack_name=env.stack_name)
    parameters = load_parameter_file(env.parameter_file)
    log_environment_summary(env, account_id)

    if not env.is_dev:
        log.info("Checking database credentials and container image parameter")
    ensure_bootstrap(env, clients)

    log.info("=== Configuration Preview ===")
    log.info("Parameters:")
    for line in parameters.preview_lines():
        log.info(line)

    if not confirm("Continue with deployment? (y/N): "):
        log.info("Deployment cancelled.")
        return DeployResult(stack_name=env.stack_name, action="none", outcome=Outcome.CANCELLED)

    return deploy_stack(env, clients, settings=settings, parameters=parameters, sleep=sleep)
