"""Core data models for Pixell Loader."""

from __future__ import annotations

import os
import socket
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, validator

if TYPE_CHECKING:
    from pixell_loader.core.exceptions import DeploymentError


class ArtifactKind(str, Enum):
    """Kind of deployable artifact."""

    SINGLE_MODULE = "single_module"
    PACKAGE = "package"


class DeploymentStage(str, Enum):
    """Pipeline stage that produced a failure."""

    TRANSFER = "transfer"
    EXPANSION = "expansion"
    PLANNING = "planning"
    PATH_REGISTRATION = "path_registration"
    CONFIG_LOAD = "config_load"
    APPLICATION_START = "application_start"
    ACTIVATION = "activation"


class Artifact(BaseModel):
    """A local module image or release package selected for deployment."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Local filesystem path")
    kind: ArtifactKind = Field(..., description="Single module or package")


class Target(BaseModel):
    """Handle to the execution context code is deployed into."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Target identity used in logs and errors")
    url: Optional[HttpUrl] = Field(None, description="Agent address; None for the local process")

    @classmethod
    def local(cls) -> "Target":
        """The invoking process's own identity."""
        return cls(name=f"{os.getpid()}@{socket.gethostname()}")

    @property
    def is_local(self) -> bool:
        return self.url is None

    def __str__(self) -> str:
        return self.name


class ApplicationSpec(BaseModel):
    """One application declared by a release manifest."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Application name (importable package)")
    version: Optional[str] = Field(None, description="Application version")
    description: Optional[str] = Field(None, description="Application description")


class Manifest(BaseModel):
    """Release manifest (release.yaml)."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Release name")
    version: str = Field(..., description="Release version")
    applications: Tuple[ApplicationSpec, ...] = Field(..., description="Applications in declaration order")
    config: Dict[str, Dict[str, Any]] = Field(default_factory=dict, description="Runtime configuration per application")

    @validator("version", pre=True)
    def coerce_version(cls, v: Any) -> Any:
        """YAML reads `version: 1.0` as a float."""
        if isinstance(v, (int, float)):
            return str(v)
        return v

    @validator("applications", pre=True)
    def normalize_applications(cls, v: Any) -> Any:
        """Accept bare names as well as mappings."""
        if isinstance(v, list):
            return [{"name": item} if isinstance(item, str) else item for item in v]
        return v

    @validator("applications")
    def unique_applications(cls, v: Tuple[ApplicationSpec, ...]) -> Tuple[ApplicationSpec, ...]:
        seen = set()
        for app in v:
            if app.name in seen:
                raise ValueError(f"Duplicate application in manifest: {app.name}")
            seen.add(app.name)
        return v

    @validator("config", pre=True)
    def default_config(cls, v: Any) -> Any:
        return v if v is not None else {}

    @property
    def application_names(self) -> List[str]:
        return [app.name for app in self.applications]


@dataclass(frozen=True)
class LoadPlan:
    """Ordered, validated applications to start."""

    applications: Tuple[str, ...] = ()

    def __iter__(self) -> Iterator[str]:
        return iter(self.applications)

    def __len__(self) -> int:
        return len(self.applications)


@dataclass(frozen=True)
class ActivationOutcome:
    """Terminal result of one deployment invocation."""

    target: str
    modules: List[str] = field(default_factory=list)
    applications: List[str] = field(default_factory=list)
    error: Optional["DeploymentError"] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def stage(self) -> Optional[DeploymentStage]:
        return self.error.stage if self.error is not None else None

    @property
    def module(self) -> Optional[str]:
        return self.modules[0] if self.modules else None

    def unwrap(self) -> "ActivationOutcome":
        """Return self on success, raise the carried error otherwise."""
        if self.error is not None:
            raise self.error
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "target": self.target,
            "modules": list(self.modules),
            "applications": list(self.applications),
            "error": self.error.to_dict() if self.error is not None else None,
        }
