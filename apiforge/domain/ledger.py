"""Append-only version history of a project's specification."""
from __future__ import annotations

from typing import Optional, Tuple

from apiforge.core.errors import LedgerIntegrityError, NotFoundError, ValidationError
from apiforge.domain.project import Project, VersionSnapshot
from apiforge.domain.spec import Specification, validate_specification


def replace_specification(
    project: Project,
    new_spec: Specification,
    description: Optional[str] = None,
) -> VersionSnapshot:
    """Swap in ``new_spec``, archiving the current state as a snapshot.

    The snapshot carries the pre-replacement specification and output bundle
    and takes the project's current version number; the project then moves to
    the next version with no output. On a validation failure the project is
    left untouched.
    """
    violations = validate_specification(new_spec)
    if violations:
        raise ValidationError(violations)

    expected = len(project.version_ledger) + 1
    if project.version != expected:
        raise LedgerIntegrityError(
            f"project {project.id} ledger is inconsistent: version {project.version}, "
            f"{len(project.version_ledger)} snapshots"
        )

    snapshot = VersionSnapshot(
        version=project.version,
        description=description or f"Specification before version {project.version + 1}",
        specification=project.specification,
        output_bundle=project.current_output,
    )
    project.version_ledger.append(snapshot)
    project.specification = new_spec
    project.current_output = None
    project.version += 1
    project.touch()
    return snapshot


def list_versions(project: Project) -> Tuple[VersionSnapshot, ...]:
    """Snapshots oldest first."""
    return tuple(project.version_ledger)


def get_version(project: Project, version: int) -> VersionSnapshot:
    for snapshot in project.version_ledger:
        if snapshot.version == version:
            return snapshot
    raise NotFoundError(f"project {project.id} has no version {version}")
