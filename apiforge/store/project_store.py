from __future__ import annotations
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Callable, Dict, List, Optional, Sequence

from apiforge.core.errors import ApiForgeError, ConflictError, NoOutputError, NotFoundError, ValidationError
from apiforge.core.progress import ProgressSink
from apiforge.deploy.orchestrator import DeploymentOrchestrator
from apiforge.domain import ledger
from apiforge.domain.bundle import OutputBundle
from apiforge.domain.deployment import DeploymentConfig, DeploymentRecord
from apiforge.domain.project import Project, ProjectFilter, ProjectSummary, VersionSnapshot
from apiforge.domain.spec import Specification, default_specification, validate_specification
from apiforge.generators.engine import GenerationEngine
from apiforge.store.records import project_from_record, project_revision, project_to_record
from apiforge.store.repository import ProjectRepository

log = logging.getLogger(__name__)


class ProjectStore:
    """Owns every Project aggregate.

    Mutations load the project, work on a deep copy and persist it with a
    single conditional upsert, all under the project's lock. The lock only
    serializes this process; the conditional write catches writers in other
    processes (Celery workers), in which case the change is re-applied to the
    fresh state. Reads are not locked.
    """

    max_write_attempts = 3

    def __init__(
        self,
        repository: ProjectRepository,
        engine: Optional[GenerationEngine] = None,
        orchestrator: Optional[DeploymentOrchestrator] = None,
    ):
        self.repository = repository
        self.engine = engine or GenerationEngine()
        self.orchestrator = orchestrator or DeploymentOrchestrator()
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock(self, project_id: str) -> asyncio.Lock:
        lock = self._locks.get(project_id)
        if lock is None:
            lock = self._locks[project_id] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def _operation(self, name: str, project_id: str = "-"):
        extra = {"project_id": project_id, "operation": name}
        try:
            yield extra
        except ApiForgeError as e:
            log.warning("%s failed: %s", name, e, extra=extra)
            raise
        except asyncio.CancelledError:
            log.warning("%s cancelled", name, extra=extra)
            raise
        except Exception:
            log.exception("%s failed", name, extra=extra)
            raise

    async def _load(self, project_id: str) -> Project:
        record = await self.repository.get(project_id)
        if record is None:
            # no lock is kept for ids that do not exist
            self._locks.pop(project_id, None)
            raise NotFoundError(f"Project {project_id} not found")
        return project_from_record(record)

    async def _mutate(
        self,
        project_id: str,
        apply: Callable[[Project], None],
        pinned_version: Optional[int] = None,
    ) -> Project:
        """Apply ``apply`` to a copy of the stored project and write it back conditionally.

        When another writer got in first the change is re-applied to the new
        state; with ``pinned_version`` a version change is a ConflictError instead.
        """
        for attempt in range(1, self.max_write_attempts + 1):
            current = await self._load(project_id)
            if pinned_version is not None and current.version != pinned_version:
                raise ConflictError(
                    f"Project {project_id} moved to version {current.version} "
                    f"while version {pinned_version} was in progress"
                )
            project = current.model_copy(deep=True)
            apply(project)
            project.touch()
            try:
                await self.repository.upsert(project_to_record(project), expected=project_revision(current))
                return project
            except ConflictError:
                if attempt == self.max_write_attempts:
                    raise
                log.warning("Concurrent write to project; retrying (%d/%d)", attempt, self.max_write_attempts,
                            extra={"project_id": project_id, "operation": "save"})

    # Projects

    async def create_project(
        self,
        name: str,
        description: str = "",
        initial_spec: Optional[Specification] = None,
        tags: Optional[Sequence[str]] = None,
        is_public: bool = False,
    ) -> Project:
        async with self._operation("create_project") as extra:
            if not name or not name.strip():
                raise ValidationError(["project name must not be empty"])
            spec = initial_spec or default_specification(name, description)
            violations = validate_specification(spec)
            if violations:
                raise ValidationError(violations)
            project = Project(
                name=name,
                description=description,
                tags=list(tags or []),
                is_public=is_public,
                specification=spec,
            )
            await self.repository.upsert(project_to_record(project))
            log.info("Project created", extra={**extra, "project_id": project.id})
            return project

    async def get_project(self, project_id: str) -> Project:
        async with self._operation("get_project", project_id):
            return await self._load(project_id)

    async def list_projects(self, project_filter: Optional[ProjectFilter] = None) -> List[ProjectSummary]:
        async with self._operation("list_projects"):
            records = await self.repository.list(project_filter or ProjectFilter())
            return [project_from_record(r).summary() for r in records]

    async def update_project(
        self,
        project_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
        is_public: Optional[bool] = None,
    ) -> Project:
        async with self._operation("update_project", project_id), self._lock(project_id):
            if name is not None and not name.strip():
                raise ValidationError(["project name must not be empty"])

            def apply(project: Project) -> None:
                if name is not None:
                    project.name = name
                if description is not None:
                    project.description = description
                if tags is not None:
                    project.tags = list(tags)
                if is_public is not None:
                    project.is_public = is_public

            return await self._mutate(project_id, apply)

    async def delete_project(self, project_id: str) -> None:
        async with self._operation("delete_project", project_id) as extra, self._lock(project_id):
            try:
                if not await self.repository.delete(project_id):
                    raise NotFoundError(f"Project {project_id} not found")
            finally:
                self._locks.pop(project_id, None)
            log.info("Project deleted", extra=extra)

    # Specification and versions

    async def update_specification(
        self,
        project_id: str,
        new_spec: Specification,
        description: Optional[str] = None,
    ) -> Project:
        async with self._operation("update_specification", project_id) as extra, self._lock(project_id):
            project = await self._mutate(
                project_id, lambda p: ledger.replace_specification(p, new_spec, description)
            )
            log.info("Specification replaced; now at version %d", project.version, extra=extra)
            return project

    async def list_versions(self, project_id: str) -> List[VersionSnapshot]:
        async with self._operation("list_versions", project_id):
            return list(ledger.list_versions(await self._load(project_id)))

    async def get_version(self, project_id: str, version: int) -> VersionSnapshot:
        async with self._operation("get_version", project_id):
            return ledger.get_version(await self._load(project_id), version)

    async def restore_version(self, project_id: str, version: int) -> Project:
        async with self._operation("restore_version", project_id) as extra, self._lock(project_id):
            def apply(project: Project) -> None:
                snapshot = ledger.get_version(project, version)
                ledger.replace_specification(project, snapshot.specification, f"Restored from version {version}")

            project = await self._mutate(project_id, apply)
            log.info("Restored version %d as version %d", version, project.version, extra=extra)
            return project

    # Pipelines

    async def generate_for_project(
        self,
        project_id: str,
        progress: Optional[ProgressSink] = None,
    ) -> OutputBundle:
        async with self._operation("generate", project_id) as extra, self._lock(project_id):
            project = await self._load(project_id)
            log.info("Generating version %d", project.version, extra=extra)
            bundle = await self.engine.generate(project.specification, progress)

            def apply(latest: Project) -> None:
                latest.current_output = bundle

            # output of version N must not land on a project that moved on to N+1
            await self._mutate(project_id, apply, pinned_version=project.version)
            return bundle

    async def get_output(self, project_id: str) -> OutputBundle:
        async with self._operation("get_output", project_id):
            project = await self._load(project_id)
            if project.current_output is None:
                raise NoOutputError(f"Project {project_id} has no generated output for version {project.version}")
            return project.current_output

    async def deploy_project(
        self,
        project_id: str,
        config: DeploymentConfig,
        progress: Optional[ProgressSink] = None,
    ) -> DeploymentRecord:
        async with self._operation("deploy", project_id) as extra, self._lock(project_id):
            project = await self._load(project_id)
            if project.current_output is None:
                raise NoOutputError(f"Project {project_id} must be generated before it is deployed")
            record = await self.orchestrator.deploy(project.current_output, config, progress)

            def apply(latest: Project) -> None:
                latest.deployment_history.append(record)

            # the attempt happened, so it joins the history even if the spec moved on meanwhile
            await self._mutate(project_id, apply)
            log.info("Deployment %s finished as %s", record.id, record.status.value, extra=extra)
            return record

    async def list_deployments(self, project_id: str) -> List[DeploymentRecord]:
        async with self._operation("list_deployments", project_id):
            return list((await self._load(project_id)).deployment_history)

    async def get_deployment(self, project_id: str, deployment_id: str) -> DeploymentRecord:
        async with self._operation("get_deployment", project_id):
            for record in (await self._load(project_id)).deployment_history:
                if record.id == deployment_id:
                    return record
            raise NotFoundError(f"Deployment {deployment_id} not found in project {project_id}")

    def get_deployment_status(self, deployment_id: str) -> DeploymentRecord:
        return self.orchestrator.get_status(deployment_id)
