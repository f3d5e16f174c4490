"""Flat persistence shape of a Project.

The repository only sees ``ProjectRecord``; the nested parts of the aggregate
travel as JSON text and are (de)serialized here.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from pydantic import TypeAdapter

from apiforge.domain.bundle import OutputBundle
from apiforge.domain.deployment import DeploymentRecord
from apiforge.domain.project import Project, VersionSnapshot
from apiforge.domain.spec import Specification

_LEDGER = TypeAdapter(List[VersionSnapshot])
_HISTORY = TypeAdapter(List[DeploymentRecord])


def _aware(value: datetime) -> datetime:
    # sqlite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class Revision:
    """The stored state a writer started from; conditional writes compare against it."""
    version: int
    updated_at: datetime


@dataclass(frozen=True)
class ProjectRecord:
    id: str
    name: str
    description: str
    is_public: bool
    version: int
    specification: str
    version_ledger: str
    deployment_history: str
    created_at: datetime
    updated_at: datetime
    tags: Tuple[str, ...] = field(default_factory=tuple)
    framework: Optional[str] = None
    database: Optional[str] = None
    current_output: Optional[str] = None

    @property
    def revision(self) -> Revision:
        return Revision(self.version, _aware(self.updated_at))


def project_to_record(project: Project) -> ProjectRecord:
    spec = project.specification
    return ProjectRecord(
        id=project.id,
        name=project.name,
        description=project.description,
        tags=tuple(project.tags),
        is_public=project.is_public,
        version=project.version,
        framework=spec.framework.value if spec.framework else None,
        database=spec.database.value if spec.database else None,
        specification=spec.model_dump_json(),
        version_ledger=_LEDGER.dump_json(project.version_ledger).decode("utf-8"),
        current_output=project.current_output.model_dump_json() if project.current_output else None,
        deployment_history=_HISTORY.dump_json(project.deployment_history).decode("utf-8"),
        created_at=project.created_at,
        updated_at=project.updated_at,
    )


def project_from_record(record: ProjectRecord) -> Project:
    return Project(
        id=record.id,
        name=record.name,
        description=record.description,
        tags=list(record.tags),
        is_public=record.is_public,
        version=record.version,
        specification=Specification.model_validate_json(record.specification),
        version_ledger=_LEDGER.validate_json(record.version_ledger),
        current_output=(
            OutputBundle.model_validate_json(record.current_output) if record.current_output else None
        ),
        deployment_history=_HISTORY.validate_json(record.deployment_history),
        created_at=_aware(record.created_at),
        updated_at=_aware(record.updated_at),
    )


def project_revision(project: Project) -> Revision:
    return Revision(project.version, _aware(project.updated_at))
