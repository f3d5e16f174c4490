"""Entity-specific rendering functions for FastAPI projects."""
from typing import List

from apiforge.domain.spec import Entity, EntityField, FieldType, RuleType
from apiforge.generators.types import EntityNames, RenderContext


SERVER_MANAGED_FIELDS = {"id", "createdAt", "created_at", "updatedAt", "updated_at", "deletedAt", "deleted_at"}

_PYDANTIC_TYPES = {
    FieldType.STRING: "str",
    FieldType.RICHTEXT: "str",
    FieldType.PASSWORD: "str",
    FieldType.EMAIL: "str",
    FieldType.ID: "str",
    FieldType.UUID: "str",
    FieldType.NUMBER: "float",
    FieldType.INTEGER: "int",
    FieldType.BOOLEAN: "bool",
    FieldType.DATETIME: "datetime",
    FieldType.DATE: "date",
    FieldType.ARRAY: "List[Any]",
    FieldType.OBJECT: "Dict[str, Any]",
    FieldType.JSON: "Dict[str, Any]",
}

_CONSTRAINTS = {
    RuleType.MIN: "ge",
    RuleType.MAX: "le",
    RuleType.MIN_LENGTH: "min_length",
    RuleType.MAX_LENGTH: "max_length",
    RuleType.PATTERN: "pattern",
}


def _map_field_to_pydantic_type(field: EntityField) -> str:
    """Map entity field type to Pydantic type annotation (returns base type, no Optional)."""
    return _PYDANTIC_TYPES.get(field.type, "str")


def _is_server_managed(field_name: str) -> bool:
    """Check if field is server-managed."""
    return field_name in SERVER_MANAGED_FIELDS


def _constraints(field: EntityField) -> List[str]:
    args = []
    for rule in field.validations:
        key = _CONSTRAINTS.get(rule.type)
        if key:
            args.append(f"{key}={rule.value!r}")
    return args


def _field_line(field: EntityField, force_optional: bool = False) -> str:
    base_type = _map_field_to_pydantic_type(field)
    constraints = _constraints(field)
    optional = force_optional or not field.required
    default = None if force_optional else field.default
    annotation = f"Optional[{base_type}]" if optional else base_type

    if constraints:
        if optional or default is not None:
            first = repr(default) if default is not None else "None"
        else:
            first = "..."
        return f"    {field.name}: {annotation} = Field({', '.join([first] + constraints)})"
    if default is not None:
        return f"    {field.name}: {annotation} = {default!r}"
    if optional:
        return f"    {field.name}: {annotation} = None"
    return f"    {field.name}: {annotation}"


def render_entity_model(entity: Entity) -> str:
    """Generate Pydantic models for an entity."""
    name = entity.name
    lines = [
        "from pydantic import BaseModel, Field",
        "from typing import Optional, Dict, Any, List",
        "from datetime import datetime, date",
        "",
        "",
    ]

    # Base model
    lines.append(f"class {name}Base(BaseModel):")
    for field in entity.fields:
        lines.append(_field_line(field))
    if not entity.fields:
        lines.append("    pass")
    lines.append("")

    # Create model (exclude server-managed fields)
    lines.append(f"class {name}Create({name}Base):")
    lines.append("    pass")
    lines.append("")

    # Update model (all fields optional)
    lines.append(f"class {name}Update(BaseModel):")
    editable = [f for f in entity.fields if not _is_server_managed(f.name)]
    for field in editable:
        lines.append(_field_line(field, force_optional=True))
    if not editable:
        lines.append("    pass")
    lines.append("")

    # Out model (includes id and timestamps)
    lines.append(f"class {name}Out({name}Base):")
    lines.append("    id: str")
    lines.append("    created_at: Optional[datetime] = None")
    lines.append("    updated_at: Optional[datetime] = None")

    return "\n".join(lines)


def render_entity_router(ctx: RenderContext, entity: Entity) -> str:
    """Generate CRUD router for an entity."""
    name = entity.name
    names = EntityNames.of(name)
    slug = names.snake
    guard = ", user=Depends(get_current_user)" if ctx.auth_enabled else ""

    lines = [
        "from fastapi import APIRouter, Depends, HTTPException, Query",
        "from typing import Optional",
        f"from app.models.{slug} import {name}Create, {name}Update, {name}Out",
        f"from app.services.{slug} import {name}Service",
    ]
    if ctx.auth_enabled:
        lines.append("from app.auth.dependencies import get_current_user")
    lines.extend([
        "",
        f'router = APIRouter(prefix="/api/{names.plural_kebab}", tags=["{name}"])',
        f"service = {name}Service()",
        "",
    ])

    # List endpoint
    lines.append("@router.get(\"\", response_model=dict)")
    lines.append(f"async def list_{names.plural_snake}(limit: int = Query(100, ge=1), offset: int = Query(0, ge=0), q: Optional[str] = Query(None)):")
    lines.append("    return await service.list(limit=limit, offset=offset, q=q)")
    lines.append("")

    # Get endpoint
    lines.append(f"@router.get(\"/{{id}}\", response_model={name}Out)")
    lines.append(f"async def get_{slug}(id: str):")
    lines.append("    result = await service.get(id)")
    lines.append("    if not result:")
    lines.append(f'        raise HTTPException(status_code=404, detail=f"{name} with id {{id}} not found")')
    lines.append("    return result")
    lines.append("")

    # Create endpoint
    lines.append(f"@router.post(\"\", response_model={name}Out, status_code=201)")
    lines.append(f"async def create_{slug}(data: {name}Create{guard}):")
    lines.append("    return await service.create(data.model_dump())")
    lines.append("")

    # Replace endpoint
    lines.append(f"@router.put(\"/{{id}}\", response_model={name}Out)")
    lines.append(f"async def update_{slug}(id: str, data: {name}Update{guard}):")
    lines.append("    result = await service.update(id, data.model_dump(exclude_unset=True))")
    lines.append("    if not result:")
    lines.append(f'        raise HTTPException(status_code=404, detail=f"{name} with id {{id}} not found")')
    lines.append("    return result")
    lines.append("")

    # Delete endpoint
    lines.append("@router.delete(\"/{id}\", status_code=204)")
    lines.append(f"async def delete_{slug}(id: str{guard}):")
    lines.append("    if not await service.delete(id):")
    lines.append(f'        raise HTTPException(status_code=404, detail=f"{name} with id {{id}} not found")')
    lines.append("    return None")

    return "\n".join(lines)


def render_entity_service(ctx: RenderContext, entity: Entity) -> str:
    """Generate the service layer that owns the entity repository."""
    name = entity.name
    names = EntityNames.of(name)
    if ctx.document_db:
        repo_import = "from app.repos.mongo_repo import MongoRepo"
        repo_init = f'MongoRepo("{names.plural_snake}")'
    else:
        columns = ", ".join(
            f'{{"name": "{f.name}", "type": "{f.type.value}", "required": {f.required}}}'
            for f in entity.fields
        )
        repo_import = "from app.repos.sql_repo import SqlRepo"
        repo_init = f'SqlRepo("{names.plural_snake}", [{columns}])'

    return f"""from typing import Any, Dict, Optional
{repo_import}


class {name}Service:
    def __init__(self):
        self.repo = {repo_init}

    async def list(self, limit: int = 100, offset: int = 0, q: Optional[str] = None) -> Dict[str, Any]:
        return await self.repo.list(limit=limit, offset=offset, q=q)

    async def get(self, id: str) -> Optional[Dict[str, Any]]:
        return await self.repo.get(id)

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self.repo.create(data)

    async def update(self, id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if not data:
            return await self.repo.get(id)
        return await self.repo.patch(id, data)

    async def delete(self, id: str) -> bool:
        return await self.repo.delete(id)
"""
