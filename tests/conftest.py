import copy
import pytest
from apiforge.deploy.orchestrator import DeploymentOrchestrator
from apiforge.domain.spec import parse_specification
from apiforge.generators.engine import GenerationEngine
from apiforge.store.project_store import ProjectStore
from apiforge.store.repository import InMemoryProjectRepository


BLOG_SPEC = {
    "name": "Blog",
    "description": "A small blogging API",
    "framework": "Express",
    "database": "MongoDB",
    "entities": [
        {
            "name": "Post",
            "fields": [
                {"name": "title", "type": "string", "required": True},
                {"name": "body", "type": "string"},
            ],
        }
    ],
}


class EventCollector:
    """Progress sink that records every event."""

    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)

    @property
    def percents(self):
        return [e.percent for e in self.events]


@pytest.fixture
def blog_payload():
    return copy.deepcopy(BLOG_SPEC)


@pytest.fixture
def blog_spec(blog_payload):
    return parse_specification(blog_payload)


@pytest.fixture
def store():
    return ProjectStore(
        repository=InMemoryProjectRepository(),
        engine=GenerationEngine(),
        orchestrator=DeploymentOrchestrator(step_delay=0, ticks_per_step=2),
    )


@pytest.fixture
def collector():
    return EventCollector()
