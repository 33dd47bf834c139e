"""Resource naming convention shared by deploy, bootstrap and teardown."""

from __future__ import annotations

REPOSITORY_SUFFIX = "backend"


def secret_name(stack_name: str) -> str:
    return f"{stack_name}-db-credentials"


def container_image_parameter(stack_name: str) -> str:
    return f"/app/{stack_name}/container-image"


def storage_bucket_name(project: str, environment: str, role: str, account_id: str, region: str) -> str:
    """Bucket names follow {project}-{environment}-{role}-{accountId}-{region}."""
    return f"{project}-{environment}-{role}-{account_id}-{region}"


def repository_name(stack_name: str) -> str:
    """Drop the trailing -<suffix> segment of the stack name and append the repository suffix."""
    base, sep, _ = stack_name.rpartition("-")
    project = base if sep else stack_name
    return f"{project}-{REPOSITORY_SUFFIX}"
