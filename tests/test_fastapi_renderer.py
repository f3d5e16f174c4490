"""Tests for FastAPI model, router and service rendering."""
import ast
from apiforge.domain.spec import Entity, parse_specification
from apiforge.generators.render_fastapi import FastApiRenderer, render_main_py
from apiforge.generators.render_fastapi_entity import (
    render_entity_model,
    render_entity_router,
    render_entity_service,
)
from apiforge.generators.types import RenderContext


def _section(content, start_marker, end_marker):
    start = content.find(start_marker)
    end = content.find(end_marker, start)
    return content[start:end] if end != -1 else content[start:]


def _context(**overrides):
    data = {
        "name": "Test Shop",
        "framework": "fastapi",
        "database": "postgresql",
        "entities": [{"name": "UserLink", "fields": [{"name": "target_id", "required": True}]}],
    }
    data.update(overrides)
    return RenderContext.build(parse_specification(data).canonical())


def test_create_update_models_have_optional_defaults():
    """Optional fields default to None; every Update field is optional."""
    entity = Entity.model_validate({
        "name": "TestEntity",
        "fields": [
            {"name": "required_string", "type": "string", "required": True},
            {"name": "optional_string", "type": "string"},
            {"name": "required_number", "type": "number", "required": True},
            {"name": "optional_number", "type": "number"},
            {"name": "optional_bool", "type": "boolean"},
        ],
    })
    model_content = render_entity_model(entity)
    ast.parse(model_content)

    base_section = _section(model_content, "class TestEntityBase(BaseModel):", "class TestEntityCreate")
    assert "required_string: str" in base_section, "Required string field should not have = None"
    assert "required_string: Optional" not in base_section, "Required string field should not be Optional"
    assert "required_number: float" in base_section
    assert "optional_string: Optional[str] = None" in base_section
    assert "optional_number: Optional[float] = None" in base_section
    assert "optional_bool: Optional[bool] = None" in base_section

    assert "class TestEntityCreate(TestEntityBase):" in model_content

    update_section = _section(model_content, "class TestEntityUpdate(BaseModel):", "class TestEntityOut")
    assert "required_string: Optional[str] = None" in update_section, "Required field in Update should have = None"
    assert "optional_string: Optional[str] = None" in update_section
    assert "required_number: Optional[float] = None" in update_section

    out_section = _section(model_content, "class TestEntityOut(TestEntityBase):", "\n\n\n")
    assert "id: str" in out_section


def test_rules_become_field_constraints():
    entity = Entity.model_validate({
        "name": "Item",
        "fields": [
            {"name": "price", "type": "number", "required": True, "validations": [{"type": "min", "value": 0}]},
            {"name": "sku", "validations": [{"type": "pattern", "value": "^[A-Z]+$"}]},
        ],
    })
    model_content = render_entity_model(entity)
    ast.parse(model_content)

    assert "price: float = Field(..., ge=0)" in model_content
    assert "sku: Optional[str] = Field(None, pattern='^[A-Z]+$')" in model_content


def test_server_managed_fields_are_not_updatable():
    entity = Entity.model_validate({
        "name": "Note",
        "fields": [{"name": "created_at", "type": "datetime"}, {"name": "text", "required": True}],
    })
    update_section = _section(render_entity_model(entity), "class NoteUpdate(BaseModel):", "class NoteOut")
    assert "created_at" not in update_section
    assert "text: Optional[str] = None" in update_section


def test_router_has_crud_endpoints():
    ctx = _context()
    entity = ctx.spec.entity("UserLink")
    router = render_entity_router(ctx, entity)
    ast.parse(router)

    assert 'router = APIRouter(prefix="/api/user-links", tags=["UserLink"])' in router
    assert "async def list_user_links(" in router
    assert "async def get_user_link(id: str):" in router
    assert "async def create_user_link(data: UserLinkCreate):" in router
    assert "async def update_user_link(id: str, data: UserLinkUpdate):" in router
    assert "async def delete_user_link(id: str):" in router
    assert "get_current_user" not in router


def test_router_guards_writes_when_auth_is_enabled():
    ctx = _context(authStrategy="jwt")
    router = render_entity_router(ctx, ctx.spec.entity("UserLink"))
    ast.parse(router)

    assert "from app.auth.dependencies import get_current_user" in router
    assert "async def create_user_link(data: UserLinkCreate, user=Depends(get_current_user)):" in router
    assert "async def get_user_link(id: str):" in router, "reads stay public"


def test_service_picks_repository_by_database():
    sql_ctx = _context()
    service = render_entity_service(sql_ctx, sql_ctx.spec.entity("UserLink"))
    ast.parse(service)
    assert 'SqlRepo("user_links", [{"name": "target_id", "type": "string", "required": True}])' in service

    mongo_ctx = _context(database="mongodb")
    service = render_entity_service(mongo_ctx, mongo_ctx.spec.entity("UserLink"))
    ast.parse(service)
    assert 'MongoRepo("user_links")' in service


def test_main_mounts_entity_routers():
    ctx = _context(features=["logging", "monitoring"])
    main = render_main_py(ctx)
    ast.parse(main)

    assert "from app.api.entities.user_link import router as user_link_router" in main
    assert "app.include_router(metrics_router)" in main
    assert "app.add_middleware(RequestLoggingMiddleware)" in main


def test_api_key_auth_has_no_login_router():
    ctx = _context(authStrategy="api-key")
    renderer = FastApiRenderer()

    paths = [f.path for f in renderer.auth_files(ctx)]
    assert paths == ["app/auth/dependencies.py"]
    assert "app.api.auth" not in render_main_py(ctx)


def test_generated_python_files_parse():
    ctx = _context(authStrategy="jwt", features=["logging", "file-upload", "monitoring", "testing"])
    renderer = FastApiRenderer()
    files = renderer.base_files(ctx) + renderer.auth_files(ctx)
    for entity in ctx.spec.entities:
        files += renderer.entity_files(ctx, entity)
    for feature in ctx.features:
        files += renderer.feature_files(ctx, feature)

    python_files = [f for f in files if f.path.endswith(".py")]
    assert len(python_files) > 10
    for f in python_files:
        ast.parse(f.content, filename=f.path)
