"""Environment resolution: validate the token, apply defaults, locate artifacts.

Resolution never talks to AWS. An unknown environment or a missing parameter
file/template stops the run before any provider call.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from stackctl.config import ENVIRONMENTS, get_environment_config
from stackctl.errors import PreconditionFailed, UsageError
from stackctl.models import Environment, ParameterFile

_REMOTE_PREFIXES = ("https://", "http://")


def validate_environment(token: Optional[str]) -> str:
    value = (token or "").strip()
    if value not in ENVIRONMENTS:
        raise UsageError(f"Invalid environment '{token}'. Must be: {', '.join(ENVIRONMENTS)}")
    return value


def default_project_name(environment: str) -> str:
    prefix = get_environment_config(environment).get("project_name_prefix", "my-app")
    return f"{prefix}-{environment}"


def _is_remote(location: str) -> bool:
    return location.startswith(_REMOTE_PREFIXES)


def resolve_environment(
    environment: Optional[str],
    project_name: Optional[str] = None,
    region: Optional[str] = None,
    *,
    templates_location: Optional[str] = None,
    base_dir: Union[str, Path, None] = None,
    stack_name: Optional[str] = None,
    require_artifacts: bool = True,
) -> Environment:
    """Resolve an environment token into an immutable `Environment`.

    `require_artifacts=False` is used by delete/invalidate, which only need the
    stack name and region.
    """
    name = validate_environment(environment)
    config = get_environment_config(name)
    root = Path(base_dir) if base_dir is not None else Path.cwd()

    project = (project_name or "").strip() or default_project_name(name)
    resolved_region = (region or "").strip() or str(config["default_region"])
    parameter_file = root / str(config.get("parameter_file", f"parameters/environment/{name}.json"))
    template_file = str(config.get("template_file", "main.yaml"))

    template_path: Optional[Path] = None
    template_url: Optional[str] = None
    if templates_location and _is_remote(templates_location):
        template_url = f"{templates_location.rstrip('/')}/{template_file}"
    else:
        template_dir = Path(templates_location or str(config.get("template_dir", "templates")))
        if not template_dir.is_absolute():
            template_dir = root / template_dir
        template_path = template_dir / template_file

    if require_artifacts:
        if not parameter_file.is_file():
            raise PreconditionFailed(
                f"Environment parameter file not found: {parameter_file}. "
                "Create parameters/environment/<env>.json for dev, staging and prod."
            )
        if template_path is not None and not template_path.is_file():
            raise PreconditionFailed(f"Template file not found: {template_path}")

    return Environment(
        name=name,
        project_name=project,
        region=resolved_region,
        stack_name=(stack_name or "").strip() or project,
        parameter_file=parameter_file,
        template_path=template_path,
        template_url=template_url,
    )


def load_parameter_file(path: Path) -> ParameterFile:
    """Load the ordered ParameterKey/ParameterValue list for an environment."""
    try:
        return ParameterFile.model_validate_json(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise PreconditionFailed(f"Environment parameter file not found: {path}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise PreconditionFailed(f"Cannot read parameter file {path}: {exc}") from exc
    except ValidationError as exc:
        raise PreconditionFailed(f"Invalid parameter file {path}: {exc.error_count()} error(s)") from exc
