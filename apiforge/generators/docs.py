"""API documentation derived from a specification: summary, README and OpenAPI."""
import copy
from typing import Any, Dict, List, Sequence

import yaml

from apiforge.domain.bundle import ApiDocSummary, Dependency, EndpointDoc
from apiforge.domain.spec import AuthStrategy, Feature, FieldType
from apiforge.generators.dependencies import split_dependencies
from apiforge.generators.types import EntityNames, RenderContext

_JSON_SCHEMA_TYPES = {
    FieldType.STRING: {"type": "string"},
    FieldType.NUMBER: {"type": "number"},
    FieldType.INTEGER: {"type": "integer"},
    FieldType.BOOLEAN: {"type": "boolean"},
    FieldType.DATE: {"type": "string", "format": "date"},
    FieldType.DATETIME: {"type": "string", "format": "date-time"},
    FieldType.ARRAY: {"type": "array", "items": {}},
    FieldType.OBJECT: {"type": "object"},
    FieldType.ID: {"type": "string"},
    FieldType.EMAIL: {"type": "string", "format": "email"},
    FieldType.PASSWORD: {"type": "string", "format": "password"},
    FieldType.RICHTEXT: {"type": "string"},
    FieldType.UUID: {"type": "string", "format": "uuid"},
    FieldType.JSON: {"type": "object"},
}


def build_endpoints(ctx: RenderContext, path_param: str = ":id") -> List[EndpointDoc]:
    auth = ctx.auth_enabled
    endpoints: List[EndpointDoc] = []
    for entity in ctx.spec.entities:
        names = EntityNames.of(entity.name)
        base = f"/api/{names.plural_kebab}"
        item = f"{base}/{path_param}"
        endpoints.extend([
            EndpointDoc(method="GET", path=base, description=f"List {names.plural_kebab}"),
            EndpointDoc(method="GET", path=item, description=f"Get a {entity.name} by id"),
            EndpointDoc(method="POST", path=base, description=f"Create a {entity.name}", authenticated=auth),
            EndpointDoc(method="PUT", path=item, description=f"Update a {entity.name}", authenticated=auth),
            EndpointDoc(method="DELETE", path=item, description=f"Delete a {entity.name}", authenticated=auth),
        ])
    if auth and ctx.auth_strategy != AuthStrategy.API_KEY:
        endpoints.extend([
            EndpointDoc(method="POST", path="/api/auth/register", description="Register a new user"),
            EndpointDoc(method="POST", path="/api/auth/login", description="Log in a user"),
        ])
    if ctx.has(Feature.FILE_UPLOAD):
        endpoints.append(EndpointDoc(method="POST", path="/api/uploads", description="Upload a file", authenticated=auth))
    if ctx.has(Feature.MONITORING):
        endpoints.append(EndpointDoc(method="GET", path="/metrics", description="Prometheus metrics"))
    endpoints.append(EndpointDoc(method="GET", path="/api/health", description="Health check"))
    return endpoints


def build_api_doc_summary(ctx: RenderContext, path_param: str = ":id") -> ApiDocSummary:
    spec = ctx.spec
    framework = spec.framework.value if spec.framework else "unknown"
    database = spec.database.value if spec.database else "unknown"
    entity_names = ", ".join(e.name for e in spec.entities) or "no entities"
    return ApiDocSummary(
        title=f"{spec.name} API",
        description=spec.description or f"API documentation for {spec.name}",
        version="1.0.0",
        overview=(
            f"REST API built with {framework} on {database}. "
            f"Resources: {entity_names}. "
            f"Authentication: {ctx.auth_strategy.value if ctx.auth_strategy else 'none'}."
        ),
        endpoints=tuple(build_endpoints(ctx, path_param)),
    )


def render_readme(
    ctx: RenderContext,
    summary: ApiDocSummary,
    dependencies: Sequence[Dependency],
    instructions: Sequence[str],
) -> str:
    lines = [f"# {summary.title}", "", summary.description, "", summary.overview, "", "## Setup", ""]
    lines.extend(f"{i}. {step}" for i, step in enumerate(instructions, start=1))
    lines.extend(["", "## Endpoints", "", "| Method | Path | Description | Auth |", "|---|---|---|---|"])
    for ep in summary.endpoints:
        lines.append(f"| {ep.method} | `{ep.path}` | {ep.description} | {'yes' if ep.authenticated else 'no'} |")

    if ctx.spec.entities:
        lines.extend(["", "## Data models"])
        for entity in ctx.spec.entities:
            lines.extend(["", f"### {entity.name}", ""])
            if entity.description:
                lines.extend([entity.description, ""])
            for field in entity.fields:
                flags = [f for f, on in (("required", field.required), ("unique", field.unique)) if on]
                suffix = f" ({', '.join(flags)})" if flags else ""
                lines.append(f"- `{field.name}`: {field.type.value}{suffix}")

    if ctx.spec.relationships:
        lines.extend(["", "## Relationships", ""])
        for rel in ctx.spec.relationships:
            lines.append(f"- {rel.source} {rel.type.value} {rel.target}")

    prod, dev = split_dependencies(dependencies)
    lines.extend(["", "## Dependencies", ""])
    lines.extend(f"- {d.name} {d.version}" for d in prod)
    if dev:
        lines.extend(["", "Development:", ""])
        lines.extend(f"- {d.name} {d.version}" for d in dev)
    return "\n".join(lines) + "\n"


def _entity_schema(entity) -> Dict[str, Any]:
    properties = {"id": {"type": "string", "readOnly": True}}
    for field in entity.fields:
        properties[field.name] = copy.deepcopy(_JSON_SCHEMA_TYPES[field.type])
    required = [f.name for f in entity.fields if f.required]
    schema: Dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


def render_openapi(ctx: RenderContext, summary: ApiDocSummary) -> str:
    paths: Dict[str, Dict[str, Any]] = {}
    for ep in summary.endpoints:
        path = ep.path.replace(":id", "{id}").replace("<id>", "{id}")
        operation: Dict[str, Any] = {"summary": ep.description, "responses": {"200": {"description": "OK"}}}
        if "{id}" in path:
            operation["parameters"] = [{"name": "id", "in": "path", "required": True, "schema": {"type": "string"}}]
        if ep.authenticated:
            operation["security"] = [{"bearerAuth": []}]
        paths.setdefault(path, {})[ep.method.lower()] = operation

    document = {
        "openapi": "3.0.3",
        "info": {"title": summary.title, "description": summary.description, "version": summary.version},
        "paths": paths,
        "components": {
            "schemas": {entity.name: _entity_schema(entity) for entity in ctx.spec.entities},
            "securitySchemes": {"bearerAuth": {"type": "http", "scheme": "bearer"}},
        },
    }
    return yaml.dump(document, default_flow_style=False, sort_keys=False, allow_unicode=True)
