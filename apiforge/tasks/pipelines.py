from __future__ import annotations
import asyncio
import logging
from typing import Any, Dict
from apiforge.core.errors import ApiForgeError
from apiforge.core.progress import ProgressEvent
from apiforge.domain.deployment import DeploymentConfig
from apiforge.store.factory import build_store
from apiforge.tasks.celery_app import celery_app

log = logging.getLogger(__name__)


def _progress_logger(project_id: str, operation: str):
    def sink(event: ProgressEvent) -> None:
        log.info("%d%% %s", event.percent, event.label, extra={"project_id": project_id, "operation": operation})
    return sink


@celery_app.task(name="generate_project")
def generate_project(project_id: str) -> Dict[str, Any]:
    extra = {"project_id": project_id, "operation": "generate"}
    log.info("Starting generation", extra=extra)
    store = build_store()
    try:
        bundle = asyncio.run(store.generate_for_project(project_id, _progress_logger(project_id, "generate")))
    except ApiForgeError as e:
        log.error("Generation failed: %s", e, extra=extra)
        return {"project_id": project_id, "status": "failed", "error": str(e)}
    except Exception as e:
        log.exception("Generation failed", extra=extra)
        return {"project_id": project_id, "status": "failed", "error": str(e) or e.__class__.__name__}
    log.info("Generation completed successfully", extra=extra)
    return {
        "project_id": project_id,
        "status": "generated",
        "files": len(bundle.files),
        "spec_fingerprint": bundle.spec_fingerprint,
    }


@celery_app.task(name="deploy_project")
def deploy_project(project_id: str, config: Dict[str, Any]) -> Dict[str, Any]:
    extra = {"project_id": project_id, "operation": "deploy"}
    log.info("Starting deployment", extra=extra)
    store = build_store()
    try:
        record = asyncio.run(store.deploy_project(
            project_id,
            DeploymentConfig.model_validate(config),
            _progress_logger(project_id, "deploy"),
        ))
    except ApiForgeError as e:
        log.error("Deployment failed: %s", e, extra=extra)
        return {"project_id": project_id, "status": "failed", "error": str(e)}
    except Exception as e:
        log.exception("Deployment failed", extra=extra)
        return {"project_id": project_id, "status": "failed", "error": str(e) or e.__class__.__name__}
    log.info("Deployment finished as %s", record.status.value, extra=extra)
    return record.model_dump(mode="json")
