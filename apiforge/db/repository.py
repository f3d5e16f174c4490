"""SQLAlchemy-backed ProjectRepository."""
from __future__ import annotations
import asyncio
import logging
from typing import Callable, List, Optional, TypeVar

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from apiforge.core.errors import ConflictError, StoreUnavailableError
from apiforge.db.models import ProjectRow
from apiforge.domain.project import ProjectFilter, SortDirection, SortField
from apiforge.store.records import ProjectRecord, Revision
from apiforge.store.repository import ProjectRepository, matches, paginate

log = logging.getLogger(__name__)

T = TypeVar("T")

_COLUMNS = (
    "id", "name", "description", "is_public", "version", "framework", "database",
    "specification", "version_ledger", "current_output", "deployment_history",
    "created_at", "updated_at",
)


def _to_record(row: ProjectRow) -> ProjectRecord:
    values = {c: getattr(row, c) for c in _COLUMNS}
    return ProjectRecord(tags=tuple(row.tags or ()), **values)


class SqlProjectRepository(ProjectRepository):
    """Runs a blocking session per call in a worker thread.

    Every write commits in its own transaction; any SQLAlchemy failure rolls
    back and surfaces as StoreUnavailableError. Conditional writes are a
    single UPDATE guarded by the expected version and updated_at.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    async def _run(self, fn: Callable[[Session], T]) -> T:
        return await asyncio.to_thread(self._in_session, fn)

    def _in_session(self, fn: Callable[[Session], T]) -> T:
        db = self.session_factory()
        try:
            result = fn(db)
            db.commit()
            return result
        except ConflictError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            log.error("Database operation failed: %s", e, extra={"operation": "repository"})
            raise StoreUnavailableError(f"Project storage unavailable: {e}") from e
        finally:
            db.close()

    async def get(self, project_id: str) -> Optional[ProjectRecord]:
        def op(db: Session) -> Optional[ProjectRecord]:
            row = db.get(ProjectRow, project_id)
            return _to_record(row) if row else None
        return await self._run(op)

    async def upsert(self, record: ProjectRecord, expected: Optional[Revision] = None) -> None:
        values = {c: getattr(record, c) for c in _COLUMNS[1:]}
        values["tags"] = list(record.tags)

        def op(db: Session) -> None:
            if expected is not None:
                result = db.execute(
                    update(ProjectRow)
                    .where(
                        ProjectRow.id == record.id,
                        ProjectRow.version == expected.version,
                        ProjectRow.updated_at == expected.updated_at,
                    )
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    raise ConflictError(f"Project {record.id} was changed or deleted by another writer")
                return
            row = db.get(ProjectRow, record.id)
            if row is None:
                row = ProjectRow(id=record.id)
                db.add(row)
            for column, value in values.items():
                setattr(row, column, value)
        await self._run(op)

    async def delete(self, project_id: str) -> bool:
        def op(db: Session) -> bool:
            row = db.get(ProjectRow, project_id)
            if row is None:
                return False
            db.delete(row)
            return True
        return await self._run(op)

    async def list(self, project_filter: ProjectFilter) -> List[ProjectRecord]:
        def op(db: Session) -> List[ProjectRecord]:
            stmt = select(ProjectRow)
            if project_filter.search:
                needle = f"%{project_filter.search.lower()}%"
                stmt = stmt.where(or_(
                    func.lower(ProjectRow.name).like(needle),
                    func.lower(ProjectRow.description).like(needle),
                ))
            if project_filter.framework:
                stmt = stmt.where(ProjectRow.framework == project_filter.framework)
            if project_filter.database:
                stmt = stmt.where(ProjectRow.database == project_filter.database)

            if project_filter.sort_by == SortField.NAME:
                column = func.lower(ProjectRow.name)
            else:
                column = getattr(ProjectRow, project_filter.sort_by.value)
            if project_filter.sort_direction == SortDirection.DESC:
                stmt = stmt.order_by(column.desc(), ProjectRow.id.desc())
            else:
                stmt = stmt.order_by(column.asc(), ProjectRow.id.asc())

            # tags live in a JSON column, so tag filtering and paging happen here
            if project_filter.tags:
                records = [_to_record(r) for r in db.scalars(stmt)]
                return paginate([r for r in records if matches(r, project_filter)], project_filter)
            if project_filter.offset:
                stmt = stmt.offset(project_filter.offset)
            if project_filter.limit is not None:
                stmt = stmt.limit(project_filter.limit)
            return [_to_record(r) for r in db.scalars(stmt)]
        return await self._run(op)
