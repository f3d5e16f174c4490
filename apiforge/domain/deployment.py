"""Deployment attempt records and target-platform configuration."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from apiforge.core.errors import InvalidTransitionError
from apiforge.domain.spec import coerce_choice


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Platform(str, Enum):
    VERCEL = "vercel"
    AWS = "aws"
    HEROKU = "heroku"
    AZURE = "azure"
    GCP = "gcp"
    DIGITAL_OCEAN = "digital-ocean"
    DOCKER = "docker"


class DeploymentStatus(str, Enum):
    PENDING = "pending"
    DEPLOYING = "deploying"
    DEPLOYED = "deployed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (DeploymentStatus.DEPLOYED, DeploymentStatus.FAILED)


class DeploymentConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    platform: Platform
    project_name: str = Field(validation_alias="projectName")
    settings: Dict[str, Any] = Field(default_factory=dict)
    environment_variables: Dict[str, str] = Field(
        default_factory=dict, validation_alias="environmentVariables"
    )

    @field_validator("platform", mode="before")
    @classmethod
    def _coerce_platform(cls, v):
        return coerce_choice(Platform, v)

    @field_validator("project_name")
    @classmethod
    def _project_name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("project name must not be empty")
        return v


class DeploymentRecord(BaseModel):
    """One deployment attempt.

    Records are immutable values; the ``mark_*`` methods return the next
    state. ``url`` is present exactly when deployed and ``error`` exactly when
    failed. Deployed and failed are terminal.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"deploy-{uuid.uuid4()}")
    project_name: str
    platform: Platform
    status: DeploymentStatus = DeploymentStatus.PENDING
    url: Optional[str] = None
    error: Optional[str] = None
    logs: Tuple[str, ...] = ()
    platform_details: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _check_outcome_fields(self):
        if (self.url is not None) != (self.status == DeploymentStatus.DEPLOYED):
            raise ValueError("url must be set exactly when status is deployed")
        if (self.error is not None) != (self.status == DeploymentStatus.FAILED):
            raise ValueError("error must be set exactly when status is failed")
        return self

    def _advance(self, status: DeploymentStatus, **changes) -> "DeploymentRecord":
        if self.status.is_terminal:
            raise InvalidTransitionError(
                f"deployment {self.id} is already {self.status.value}; cannot move to {status.value}"
            )
        data = self.model_dump()
        data.update(changes, status=status, updated_at=utcnow())
        return DeploymentRecord.model_validate(data)

    def with_log(self, line: str) -> "DeploymentRecord":
        if self.status.is_terminal:
            raise InvalidTransitionError(f"deployment {self.id} is already {self.status.value}")
        return self.model_copy(update={"logs": self.logs + (line,), "updated_at": utcnow()})

    def mark_deploying(self) -> "DeploymentRecord":
        return self._advance(DeploymentStatus.DEPLOYING)

    def mark_deployed(self, url: str, **platform_details) -> "DeploymentRecord":
        details = dict(self.platform_details)
        details.update(platform_details)
        return self._advance(DeploymentStatus.DEPLOYED, url=url, platform_details=details)

    def mark_failed(self, error: str) -> "DeploymentRecord":
        return self._advance(DeploymentStatus.FAILED, error=error)
