"""The Project aggregate and its list/query shapes."""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from apiforge.domain.bundle import OutputBundle
from apiforge.domain.deployment import DeploymentRecord, DeploymentStatus, utcnow
from apiforge.domain.spec import Specification


class VersionSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: int = Field(ge=1)
    created_at: datetime = Field(default_factory=utcnow)
    description: str = ""
    specification: Specification
    output_bundle: Optional[OutputBundle] = None


class Project(BaseModel):
    """A project owns its specification, version ledger, latest output and
    deployment history. Only ProjectStore operations mutate it."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    description: str = ""
    tags: List[str] = Field(default_factory=list)
    is_public: bool = False
    version: int = Field(default=1, ge=1)
    specification: Specification
    version_ledger: List[VersionSnapshot] = Field(default_factory=list)
    current_output: Optional[OutputBundle] = None
    deployment_history: List[DeploymentRecord] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def last_deployment(self) -> Optional[DeploymentRecord]:
        return self.deployment_history[-1] if self.deployment_history else None

    def touch(self) -> None:
        # strictly increasing: storage compares updated_at to detect concurrent writes
        self.updated_at = max(utcnow(), self.updated_at + timedelta(microseconds=1))

    def summary(self) -> "ProjectSummary":
        last = self.last_deployment
        return ProjectSummary(
            id=self.id,
            name=self.name,
            description=self.description,
            tags=list(self.tags),
            framework=self.specification.framework.value if self.specification.framework else None,
            database=self.specification.database.value if self.specification.database else None,
            version=self.version,
            has_output=self.current_output is not None,
            last_deployment_status=last.status if last else None,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class ProjectSummary(BaseModel):
    id: str
    name: str
    description: str
    tags: List[str]
    framework: Optional[str] = None
    database: Optional[str] = None
    version: int
    has_output: bool
    last_deployment_status: Optional[DeploymentStatus] = None
    created_at: datetime
    updated_at: datetime


class SortField(str, Enum):
    NAME = "name"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class ProjectFilter(BaseModel):
    search: Optional[str] = None
    tags: Tuple[str, ...] = ()
    framework: Optional[str] = None
    database: Optional[str] = None
    sort_by: SortField = SortField.UPDATED_AT
    sort_direction: SortDirection = SortDirection.DESC
    limit: Optional[int] = Field(default=None, ge=1)
    offset: int = Field(default=0, ge=0)
