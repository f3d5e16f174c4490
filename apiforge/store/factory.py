from typing import Optional
from sqlalchemy.orm import sessionmaker
from apiforge.core.config import settings
from apiforge.db.repository import SqlProjectRepository
from apiforge.db.session import SessionLocal
from apiforge.deploy.orchestrator import DeploymentOrchestrator
from apiforge.generators.engine import GenerationEngine
from apiforge.store.project_store import ProjectStore


def build_store(session_factory: Optional[sessionmaker] = None) -> ProjectStore:
    """ProjectStore wired to the SQL repository and the configured pipeline pacing."""
    return ProjectStore(
        repository=SqlProjectRepository(session_factory or SessionLocal),
        engine=GenerationEngine(step_delay=settings.generation_step_delay),
        orchestrator=DeploymentOrchestrator(
            step_delay=settings.deployment_step_delay,
            ticks_per_step=settings.deployment_ticks_per_step,
            max_records=settings.deployment_max_records,
        ),
    )
