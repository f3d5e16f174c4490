"""Persistence collaborator of the project store."""
from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from apiforge.core.errors import ConflictError
from apiforge.domain.project import ProjectFilter, SortDirection
from apiforge.store.records import ProjectRecord, Revision


class ProjectRepository(ABC):
    """Async storage of ProjectRecords. Each write is atomic.

    ``upsert`` with an ``expected`` revision is a compare-and-swap: it only
    writes when the stored record still has that version and updated_at, and
    raises ConflictError otherwise (including when the record is gone).
    """

    @abstractmethod
    async def get(self, project_id: str) -> Optional[ProjectRecord]:
        ...

    @abstractmethod
    async def upsert(self, record: ProjectRecord, expected: Optional[Revision] = None) -> None:
        ...

    @abstractmethod
    async def delete(self, project_id: str) -> bool:
        ...

    @abstractmethod
    async def list(self, project_filter: ProjectFilter) -> List[ProjectRecord]:
        ...


def matches(record: ProjectRecord, project_filter: ProjectFilter) -> bool:
    if project_filter.search:
        needle = project_filter.search.lower()
        if needle not in record.name.lower() and needle not in (record.description or "").lower():
            return False
    if project_filter.tags and not set(project_filter.tags).issubset(record.tags):
        return False
    if project_filter.framework and record.framework != project_filter.framework:
        return False
    if project_filter.database and record.database != project_filter.database:
        return False
    return True


def paginate(records: List[ProjectRecord], project_filter: ProjectFilter) -> List[ProjectRecord]:
    start = project_filter.offset
    if project_filter.limit is None:
        return records[start:]
    return records[start:start + project_filter.limit]


def apply_filter(records: Iterable[ProjectRecord], project_filter: ProjectFilter) -> List[ProjectRecord]:
    """Filter, sort (ties broken by id) and page ``records``."""
    selected = [r for r in records if matches(r, project_filter)]
    field = project_filter.sort_by.value
    key = (lambda r: (r.name.lower(), r.id)) if field == "name" else (lambda r: (getattr(r, field), r.id))
    selected.sort(key=key, reverse=project_filter.sort_direction == SortDirection.DESC)
    return paginate(selected, project_filter)


class InMemoryProjectRepository(ProjectRepository):
    def __init__(self):
        self._records: Dict[str, ProjectRecord] = {}

    async def get(self, project_id: str) -> Optional[ProjectRecord]:
        await asyncio.sleep(0)
        return self._records.get(project_id)

    async def upsert(self, record: ProjectRecord, expected: Optional[Revision] = None) -> None:
        await asyncio.sleep(0)
        if expected is not None:
            current = self._records.get(record.id)
            if current is None or current.revision != expected:
                raise ConflictError(f"Project {record.id} was changed or deleted by another writer")
        self._records[record.id] = record

    async def delete(self, project_id: str) -> bool:
        await asyncio.sleep(0)
        return self._records.pop(project_id, None) is not None

    async def list(self, project_filter: ProjectFilter) -> List[ProjectRecord]:
        await asyncio.sleep(0)
        return apply_filter(self._records.values(), project_filter)
