"""Idempotent bootstrap of the database secret and container image parameter.

Both entries are existence-gated: an entry that already exists is never
overwritten. There is no lock, so two bootstraps racing on the same stack name
can both see "absent"; the loser's create is rejected by the provider and
treated as "already exists".
"""

from __future__ import annotations

import base64
import secrets
from typing import Optional

from botocore.exceptions import ClientError

from stackctl.clients import AwsClients
from stackctl.config import get_environment_config
from stackctl.errors import ProviderError, error_code
from stackctl.models import BootstrapRecord, Environment, ParameterRecord, SecretRecord
from stackctl.naming import container_image_parameter, secret_name
from stackctl.utils.logger import get_logger

_SECRET_NOT_FOUND = {"ResourceNotFoundException"}
_SECRET_EXISTS = {"ResourceExistsException"}
_PARAM_NOT_FOUND = {"ParameterNotFound"}
_PARAM_EXISTS = {"ParameterAlreadyExists"}


def generate_password(num_bytes: int = 16) -> str:
    return base64.b64encode(secrets.token_bytes(num_bytes)).decode("ascii")


def secret_exists(clients: AwsClients, name: str) -> bool:
    try:
        clients.secretsmanager.describe_secret(SecretId=name)
    except ClientError as exc:
        if error_code(exc) in _SECRET_NOT_FOUND:
            return False
        raise ProviderError.from_client_error(f"Describe secret {name}", exc) from exc
    return True


def parameter_exists(clients: AwsClients, name: str) -> bool:
    try:
        clients.ssm.get_parameter(Name=name)
    except ClientError as exc:
        if error_code(exc) in _PARAM_NOT_FOUND:
            return False
        raise ProviderError.from_client_error(f"Get parameter {name}", exc) from exc
    return True


def ensure_secret(clients: AwsClients, stack_name: str, username: str, password: Optional[str] = None) -> bool:
    """Create the DB credentials secret if absent. Returns True when created."""
    name = secret_name(stack_name)
    log = get_logger(__name__, stack_name=stack_name)
    if secret_exists(clients, name):
        log.info(f"Database credentials secret already exists: {name}")
        return False

    record = SecretRecord(name=name, username=username, password=password or generate_password())
    log.info(f"Creating database credentials secret: {name}")
    try:
        clients.secretsmanager.create_secret(
            Name=record.name,
            Description=f"Database credentials for {stack_name}",
            SecretString=record.secret_string(),
        )
    except ClientError as exc:
        if error_code(exc) in _SECRET_EXISTS:
            log.warning(f"Secret {name} was created concurrently; keeping the existing value")
            return False
        raise ProviderError.from_client_error(f"Create secret {name}", exc) from exc
    return True


def ensure_parameter(clients: AwsClients, stack_name: str, value: str) -> bool:
    """Create the container image parameter if absent. Returns True when created."""
    record = ParameterRecord(name=container_image_parameter(stack_name), value=value)
    log = get_logger(__name__, stack_name=stack_name)
    if parameter_exists(clients, record.name):
        log.info(f"Container image parameter already exists: {record.name}")
        return False

    log.info(f"Creating SSM parameter for container image: {record.name}")
    try:
        clients.ssm.put_parameter(
            Name=record.name,
            Type="String",
            Value=record.value,
            Description=f"Container image for {stack_name}",
            Overwrite=False,
        )
    except ClientError as exc:
        if error_code(exc) in _PARAM_EXISTS:
            log.warning(f"Parameter {record.name} was created concurrently; keeping the existing value")
            return False
        raise ProviderError.from_client_error(f"Put parameter {record.name}", exc) from exc
    return True


def ensure_bootstrap(env: Environment, clients: AwsClients) -> Optional[BootstrapRecord]:
    """Bootstrap prerequisites for non-dev environments; dev returns None."""
    config = get_environment_config(env.name)
    if env.is_dev or not config.get("bootstrap_enabled", True):
        return None

    secret_created = ensure_secret(clients, env.stack_name, str(config.get("db_username", "dbadmin")))
    parameter_created = ensure_parameter(
        clients, env.stack_name, str(config.get("container_image", "public.ecr.aws/nginx/nginx:latest"))
    )
    return BootstrapRecord(
        stack_name=env.stack_name,
        secret_name=secret_name(env.stack_name),
        parameter_name=container_image_parameter(env.stack_name),
        secret_created=secret_created,
        parameter_created=parameter_created,
    )


def delete_bootstrap(env: Environment, clients: AwsClients) -> None:
    """Remove the bootstrapped secret and parameter; "not found" counts as done."""
    if env.is_dev:
        return
    log = get_logger(__name__, environment=env.name, stack_name=env.stack_name)

    name = secret_name(env.stack_name)
    try:
        clients.secretsmanager.delete_secret(SecretId=name, ForceDeleteWithoutRecovery=True)
        log.info(f"Deleted secret: {name}")
    except ClientError as exc:
        if error_code(exc) not in _SECRET_NOT_FOUND:
            raise ProviderError.from_client_error(f"Delete secret {name}", exc) from exc
        log.info(f"No secret found: {name}")

    param = container_image_parameter(env.stack_name)
    try:
        clients.ssm.delete_parameter(Name=param)
        log.info(f"Deleted parameter: {param}")
    except ClientError as exc:
        if error_code(exc) not in _PARAM_NOT_FOUND:
            raise ProviderError.from_client_error(f"Delete parameter {param}", exc) from exc
        log.info(f"No parameter found: {param}")
