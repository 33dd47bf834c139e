"""Typed data model for stackctl using Pydantic v2.

These models describe the values that flow between the resolver, the
controllers and the output pipeline. Provider payloads (CloudFormation
outputs, parameter files) are validated into them at the boundary.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator

from stackctl.errors import PreconditionFailed

ROOT_OWNER = "root"


class Environment(BaseModel):
    """A resolved target environment. Immutable for the rest of the run."""

    model_config = ConfigDict(frozen=True)

    name: str
    project_name: str
    region: str
    stack_name: str
    parameter_file: Path
    template_path: Optional[Path] = None
    template_url: Optional[str] = None

    @property
    def is_dev(self) -> bool:
        return self.name == "dev"

    def template_kwargs(self) -> Dict[str, str]:
        """Return the TemplateBody/TemplateURL argument for CloudFormation calls."""
        if self.template_url:
            return {"TemplateURL": self.template_url}
        if self.template_path is None:
            raise ValueError("environment has no template location")
        try:
            return {"TemplateBody": self.template_path.read_text(encoding="utf-8")}
        except (OSError, UnicodeDecodeError) as exc:
            raise PreconditionFailed(f"Cannot read template {self.template_path}: {exc}") from exc


class ParameterEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    key: str = Field(alias="ParameterKey")
    value: Optional[str] = Field(default=None, alias="ParameterValue")

    @field_validator("value", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> Optional[str]:  # type: ignore[override]
        if v is None:
            return None
        return str(v)


class ParameterFile(RootModel[List[ParameterEntry]]):
    """Ordered list of template inputs, consumed verbatim by deploy."""

    def __iter__(self) -> Iterator[ParameterEntry]:  # type: ignore[override]
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)

    def to_cloudformation(self) -> List[Dict[str, Any]]:
        return [entry.model_dump(by_alias=True, exclude_none=True) for entry in self.root]

    def preview_lines(self) -> List[str]:
        return [f"  {entry.key}: {entry.value}" for entry in self.root]


class StackOutput(BaseModel):
    key: str = Field(alias="OutputKey")
    value: str = Field(default="", alias="OutputValue")
    description: str = Field(default="", alias="Description")
    owner_stack: str = ROOT_OWNER

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_provider(cls, payload: Dict[str, Any], owner_stack: str = ROOT_OWNER) -> "StackOutput":
        return cls.model_validate({**payload, "owner_stack": owner_stack})


class MergedOutputTable:
    """Insertion-ordered key/value table with a parallel description table."""

    def __init__(self) -> None:
        self.values: Dict[str, str] = {}
        self.descriptions: Dict[str, str] = {}
        self.owners: Dict[str, str] = {}

    def set(self, key: str, value: str, description: str = "", owner: str = ROOT_OWNER) -> Optional[str]:
        """Store an entry; return the previous owner when the key was already present."""
        previous = self.owners.get(key)
        self.values[key] = value
        self.descriptions[key] = description
        self.owners[key] = owner
        return previous

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.values.get(key, default)

    def description(self, key: str) -> str:
        return self.descriptions.get(key, "")

    def items(self) -> List[Tuple[str, str]]:
        return list(self.values.items())

    def __contains__(self, key: object) -> bool:
        return key in self.values

    def __len__(self) -> int:
        return len(self.values)


class SecretRecord(BaseModel):
    name: str
    username: str
    password: str = Field(repr=False)

    def secret_string(self) -> str:
        return self.model_dump_json(include={"username", "password"})


class ParameterRecord(BaseModel):
    name: str
    value: str


class BootstrapRecord(BaseModel):
    """What bootstrap found or created for one stack name."""

    stack_name: str
    secret_name: str
    parameter_name: str
    secret_created: bool = False
    parameter_created: bool = False


class InvalidationRequest(BaseModel):
    distribution_id: str
    paths: List[str] = Field(default_factory=lambda: ["/*"])
    invalidation_id: Optional[str] = None
    status: Optional[str] = None

    @field_validator("paths", mode="before")
    @classmethod
    def _coerce_paths(cls, v: Any) -> List[str]:  # type: ignore[override]
        if v is None:
            return ["/*"]
        if isinstance(v, str):
            v = [v]
        paths = [str(p).strip() for p in v if str(p).strip()]
        return paths or ["/*"]

    @property
    def completed(self) -> bool:
        return self.status == "Completed"


class Outcome(str, Enum):
    SUCCESS = "success"
    NO_CHANGES = "no_changes"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"

    @property
    def ok(self) -> bool:
        return self in (Outcome.SUCCESS, Outcome.NO_CHANGES, Outcome.CANCELLED)
