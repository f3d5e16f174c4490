"""Tests for the SQLAlchemy project repository against a temporary sqlite file."""
import asyncio
from dataclasses import replace
import pytest
from sqlalchemy.orm import sessionmaker
from apiforge.core.errors import ConflictError, StoreUnavailableError
from apiforge.db.models import ProjectRow
from apiforge.db.repository import SqlProjectRepository
from apiforge.db.session import Base, make_engine
from apiforge.deploy.orchestrator import DeploymentOrchestrator
from apiforge.domain.deployment import DeploymentConfig
from apiforge.domain.project import ProjectFilter, SortDirection, SortField
from apiforge.domain.spec import parse_specification
from apiforge.generators.engine import GenerationEngine
from apiforge.store.project_store import ProjectStore


@pytest.fixture
def session_factory(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'projects.db'}")
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def sql_store(session_factory):
    return ProjectStore(
        repository=SqlProjectRepository(session_factory),
        orchestrator=DeploymentOrchestrator(step_delay=0, ticks_per_step=1),
    )


def test_project_round_trip(sql_store, blog_spec):
    async def scenario():
        project = await sql_store.create_project("Blog", "posts", initial_spec=blog_spec, tags=["cms"])
        await sql_store.generate_for_project(project.id)
        await sql_store.deploy_project(project.id, DeploymentConfig(platform="heroku", project_name="Blog"))
        return project.id, await sql_store.get_project(project.id)

    project_id, loaded = asyncio.run(scenario())

    assert loaded.id == project_id
    assert loaded.tags == ["cms"]
    assert loaded.specification == blog_spec
    assert loaded.current_output is not None
    assert "src/models/post.model.js" in loaded.current_output.paths
    assert loaded.deployment_history[0].url == "https://blog.herokuapp.com"
    assert loaded.created_at.tzinfo is not None


def test_version_ledger_survives_storage(sql_store, blog_spec):
    async def scenario():
        project = await sql_store.create_project("Blog", initial_spec=blog_spec)
        revised = blog_spec.model_copy(update={"description": "v2"})
        await sql_store.update_specification(project.id, revised)
        return await sql_store.get_project(project.id)

    loaded = asyncio.run(scenario())
    assert loaded.version == 2
    assert loaded.version_ledger[0].specification == blog_spec


def test_list_filters_in_sql(sql_store, blog_spec):
    async def scenario():
        await sql_store.create_project("Zeta", "shop backend", tags=["paid"], initial_spec=blog_spec)
        await sql_store.create_project("alpha", "notes", tags=["paid", "demo"])
        await sql_store.create_project("Mid", "todo", tags=["demo"])
        asc = ProjectFilter(sort_by=SortField.NAME, sort_direction=SortDirection.ASC)
        return {
            "all": await sql_store.list_projects(asc),
            "search": await sql_store.list_projects(ProjectFilter(search="SHOP")),
            "tags": await sql_store.list_projects(asc.model_copy(update={"tags": ("demo",)})),
            "tag_page": await sql_store.list_projects(asc.model_copy(update={"tags": ("demo",), "limit": 1, "offset": 1})),
            "page": await sql_store.list_projects(asc.model_copy(update={"limit": 2, "offset": 1})),
        }

    result = asyncio.run(scenario())
    assert [p.name for p in result["all"]] == ["alpha", "Mid", "Zeta"]
    assert [p.name for p in result["search"]] == ["Zeta"]
    assert [p.name for p in result["tags"]] == ["alpha", "Mid"]
    assert [p.name for p in result["tag_page"]] == ["Mid"]
    assert [p.name for p in result["page"]] == ["Mid", "Zeta"]


def test_delete(session_factory, sql_store):
    async def scenario():
        project = await sql_store.create_project("Blog")
        repository = sql_store.repository
        return await repository.delete(project.id), await repository.delete(project.id)

    assert asyncio.run(scenario()) == (True, False)
    with session_factory() as db:
        assert db.query(ProjectRow).count() == 0


def test_database_errors_become_store_unavailable(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    repository = SqlProjectRepository(sessionmaker(bind=engine))

    with pytest.raises(StoreUnavailableError):
        asyncio.run(repository.get("missing"))
    engine.dispose()


def test_conditional_write_in_sql(sql_store, blog_spec):
    repository = sql_store.repository

    async def scenario():
        project = await sql_store.create_project("Blog", initial_spec=blog_spec)
        stale = await repository.get(project.id)
        await sql_store.update_project(project.id, description="fresh")
        with pytest.raises(ConflictError):
            await repository.upsert(replace(stale, name="stale"), expected=stale.revision)
        fresh = await repository.get(project.id)
        await repository.upsert(replace(fresh, name="renamed"), expected=fresh.revision)
        return await repository.get(project.id)

    stored = asyncio.run(scenario())
    assert (stored.name, stored.description) == ("renamed", "fresh")


def test_stale_worker_generation_is_rejected(session_factory, blog_spec):
    api = ProjectStore(repository=SqlProjectRepository(session_factory))
    worker = ProjectStore(
        repository=SqlProjectRepository(session_factory),
        engine=GenerationEngine(step_delay=0.05),
    )
    data = blog_spec.model_dump(mode="json")
    data["entities"] = data["entities"] + [{"name": "Comment", "fields": [{"name": "text"}]}]
    revised = parse_specification(data)

    async def scenario():
        project = await api.create_project("Blog", initial_spec=blog_spec)
        started = asyncio.Event()
        generation = asyncio.create_task(worker.generate_for_project(project.id, lambda event: started.set()))
        await started.wait()
        await api.update_specification(project.id, revised)
        with pytest.raises(ConflictError):
            await generation
        return await api.get_project(project.id)

    final = asyncio.run(scenario())
    assert final.version == 2
    assert final.specification == revised
    assert final.version_ledger[0].specification == blog_spec
    assert final.current_output is None
