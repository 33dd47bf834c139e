"""Configuration subpackage: per-environment defaults and runtime settings."""

from .environments import ENVIRONMENTS, get_environment_config
from .settings import RuntimeSettings
from .types import EnvironmentConfig

__all__ = [
    "ENVIRONMENTS",
    "EnvironmentConfig",
    "RuntimeSettings",
    "get_environment_config",
]
