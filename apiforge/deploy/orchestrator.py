from __future__ import annotations
import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from apiforge.core.errors import EmptyBundleError, NotFoundError
from apiforge.core.progress import ProgressReporter, ProgressSink
from apiforge.domain.bundle import OutputBundle
from apiforge.domain.deployment import DeploymentConfig, DeploymentRecord
from apiforge.deploy.platforms import PlatformAdapter, PlatformRegistry

log = logging.getLogger(__name__)

Step = Tuple[str, int, Callable[[], Awaitable]]


def _error_text(e: BaseException) -> str:
    return str(e) or e.__class__.__name__


class DeploymentOrchestrator:
    """Runs deployment attempts through ``pending -> deploying -> deployed | failed``.

    Every attempt gets its own record; the in-process registry keeps the
    latest state of each, including attempts still in flight. Beyond
    ``max_records`` the oldest finished attempts are forgotten; the project
    history keeps them.
    """

    def __init__(
        self,
        registry: Optional[PlatformRegistry] = None,
        step_delay: float = 0.1,
        ticks_per_step: int = 5,
        max_records: int = 1000,
    ):
        self.registry = registry or PlatformRegistry.default()
        self.step_delay = step_delay
        self.ticks_per_step = max(1, ticks_per_step)
        self.max_records = max_records
        self._records: Dict[str, DeploymentRecord] = {}

    def get_status(self, deployment_id: str) -> DeploymentRecord:
        record = self._records.get(deployment_id)
        if record is None:
            raise NotFoundError(f"Deployment {deployment_id} not found")
        return record

    def _save(self, record: DeploymentRecord) -> DeploymentRecord:
        self._records[record.id] = record
        if record.status.is_terminal:
            self._prune()
        return record

    def _prune(self) -> None:
        excess = len(self._records) - self.max_records
        if excess <= 0:
            return
        finished = [i for i, r in self._records.items() if r.status.is_terminal]
        for deployment_id in finished[:excess]:
            del self._records[deployment_id]

    def _steps(self, adapter: PlatformAdapter, bundle: OutputBundle, config: DeploymentConfig) -> List[Step]:
        return [
            ("Preparing deployment package", 10, lambda: adapter.prepare(bundle, config)),
            ("Setting up environment variables", 30, lambda: adapter.configure_environment(config)),
            (f"Deploying to {config.platform.value}", 40, lambda: adapter.upload(bundle, config)),
            ("Building application", 70, lambda: adapter.build(config)),
            ("Finalizing deployment", 90, lambda: adapter.finalize(config)),
        ]

    async def _tick(self, reporter: ProgressReporter, start: int, target: int, label: str) -> None:
        for i in range(1, self.ticks_per_step + 1):
            reporter.report(start + (target - start) * i / self.ticks_per_step, label)
            await asyncio.sleep(self.step_delay)

    async def deploy(
        self,
        bundle: OutputBundle,
        config: DeploymentConfig,
        progress: Optional[ProgressSink] = None,
    ) -> DeploymentRecord:
        if bundle.is_empty:
            raise EmptyBundleError("Cannot deploy an empty output bundle")

        adapter = self.registry.get(config.platform)
        record = self._save(DeploymentRecord(project_name=config.project_name, platform=config.platform))
        extra = {"operation": "deploy", "project_id": config.project_name}
        reporter = ProgressReporter(progress)
        try:
            reporter.report(0, "Starting deployment")
            record = self._save(record.mark_deploying())
            log.info("Deployment %s started on %s", record.id, config.platform.value, extra=extra)

            details: Dict = {}
            current = 0
            for label, target, run in self._steps(adapter, bundle, config):
                await self._tick(reporter, current, target, label)
                current = target
                try:
                    outcome = await run()
                except Exception as e:
                    record = self._save(record.with_log(f"{label}: failed").mark_failed(_error_text(e)))
                    log.error("Deployment %s failed at '%s': %s", record.id, label, record.error, extra=extra)
                    return record
                if isinstance(outcome, dict):
                    details = outcome
                    outcome = "Deployment finalized"
                record = self._save(record.with_log(f"{label}: {outcome}"))

            details = dict(details)
            url = details.pop("url", None)
            if not url:
                record = self._save(record.mark_failed("Platform did not report a deployment URL"))
                log.error("Deployment %s failed: no URL", record.id, extra=extra)
                return record
            record = self._save(record.mark_deployed(url, **details))
            reporter.complete("Deployment completed")
            log.info("Deployment %s completed at %s", record.id, url, extra=extra)
            return record
        except asyncio.CancelledError:
            latest = self._records[record.id]
            if not latest.status.is_terminal:
                self._save(latest.mark_failed("Deployment cancelled"))
            log.warning("Deployment %s cancelled", record.id, extra=extra)
            raise
        finally:
            reporter.close()
