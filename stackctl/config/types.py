"""Typed configuration contracts for environment-specific settings."""

from __future__ import annotations

from typing import Dict, List, NotRequired, Required, TypedDict


class EnvironmentConfig(TypedDict, total=False):
    """Strongly-typed environment configuration contract."""

    default_region: Required[str]
    project_name_prefix: NotRequired[str]

    parameter_file: NotRequired[str]
    template_dir: NotRequired[str]
    template_file: NotRequired[str]

    bootstrap_enabled: NotRequired[bool]
    db_username: NotRequired[str]
    container_image: NotRequired[str]

    distribution_output_key: NotRequired[str]
    storage_output_keys: NotRequired[List[str]]
    storage_roles: NotRequired[List[str]]

    stack_wait_delay_seconds: NotRequired[int]
    stack_wait_max_attempts: NotRequired[int]
    invalidation_wait_delay_seconds: NotRequired[int]
    invalidation_wait_max_attempts: NotRequired[int]

    capabilities: NotRequired[List[str]]
    tags: NotRequired[Dict[str, str]]
