"""Per-environment defaults keyed by environment token."""

from typing import Dict

from ..types import EnvironmentConfig
from .dev import dev_config
from .prod import prod_config
from .staging import staging_config

_CONFIGS: Dict[str, EnvironmentConfig] = {
    "dev": dev_config,
    "staging": staging_config,
    "prod": prod_config,
}

# Order matters: it is the order shown in usage errors.
ENVIRONMENTS = tuple(_CONFIGS)


def get_environment_config(environment: str) -> EnvironmentConfig:
    """Return the defaults for `environment`; unknown tokens raise ValueError."""
    try:
        return _CONFIGS[environment]
    except KeyError:
        raise ValueError(f"Unknown environment: {environment}. Expected one of: {', '.join(ENVIRONMENTS)}") from None
