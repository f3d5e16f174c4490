"""Tests for parsing, validating and normalizing specifications."""
import pytest
from apiforge.core.errors import ValidationError
from apiforge.domain.spec import (
    AuthStrategy,
    Database,
    Feature,
    FieldType,
    Framework,
    Specification,
    default_specification,
    parse_specification,
    validate_specification,
)


def test_enum_values_are_case_insensitive():
    spec = parse_specification({
        "name": "Shop",
        "framework": "NestJS",
        "database": "postgres",
        "authStrategy": "API Key",
        "features": ["fileUpload", "Docker"],
        "dataModels": [{"name": "Item", "fields": [{"name": "price", "type": "Number"}]}],
    })
    assert spec.framework == Framework.NESTJS
    assert spec.database == Database.POSTGRESQL
    assert spec.auth_strategy == AuthStrategy.API_KEY
    assert spec.features == (Feature.FILE_UPLOAD, Feature.DOCKER)
    assert spec.entities[0].fields[0].type == FieldType.NUMBER


def test_unsupported_enum_value_is_a_validation_error():
    with pytest.raises(ValidationError) as exc:
        parse_specification({"name": "Shop", "framework": "django"})
    assert any("framework" in v for v in exc.value.violations)


def test_validate_reports_every_violation():
    spec = Specification(
        name="",
        entities=[
            {"name": "User", "fields": [{"name": "email"}, {"name": "email"}]},
            {"name": "User"},
            {"name": ""},
        ],
        relationships=[{"type": "one-to-many", "source": "User", "target": "Order"}],
    )
    violations = validate_specification(spec)

    assert "specification name must not be empty" in violations
    assert "duplicate entity name 'User'" in violations
    assert "entity 'User': duplicate field name 'email'" in violations
    assert "entity #3: name must not be empty" in violations
    assert any("unknown entity 'Order'" in v for v in violations)
    assert len(violations) == 5


def test_rule_values_are_checked():
    spec = Specification(
        name="Shop",
        entities=[{
            "name": "Item",
            "fields": [
                {"name": "price", "type": "number", "validations": [{"type": "min", "value": "zero"}]},
                {"name": "sku", "validations": [{"type": "pattern", "value": "[a-"}]},
                {"name": "kind", "validations": [{"type": "enum", "value": []}]},
            ],
        }],
    )
    violations = validate_specification(spec)
    assert len(violations) == 3, violations


def test_valid_spec_has_no_violations(blog_spec):
    assert validate_specification(blog_spec) == []


def test_fingerprint_ignores_declaration_order():
    a = parse_specification({
        "name": "Shop",
        "framework": "fastapi",
        "database": "sqlite",
        "features": ["docker", "swagger"],
        "entities": [
            {"name": "Order", "fields": [{"name": "total", "type": "number"}, {"name": "code"}]},
            {"name": "Customer", "fields": [{"name": "email", "type": "email"}]},
        ],
    })
    b = parse_specification({
        "name": "Shop",
        "framework": "fastapi",
        "database": "sqlite",
        "features": ["swagger", "docker", "swagger"],
        "entities": [
            {"name": "Customer", "fields": [{"name": "email", "type": "email"}]},
            {"name": "Order", "fields": [{"name": "code"}, {"name": "total", "type": "number"}]},
        ],
    })
    assert a.fingerprint() == b.fingerprint()
    assert [e.name for e in a.canonical().entities] == ["Customer", "Order"]
    assert [f.name for f in a.canonical().entity("Order").fields] == ["code", "total"]


def test_fingerprint_changes_with_content(blog_spec):
    other = blog_spec.model_copy(update={"description": "changed"})
    assert other.fingerprint() != blog_spec.fingerprint()


def test_default_specification_is_a_ready_draft():
    spec = default_specification("Draft", "desc")
    assert spec.framework == Framework.EXPRESS
    assert spec.database == Database.MONGODB
    assert spec.auth_strategy == AuthStrategy.JWT
    assert spec.features == (Feature.AUTHENTICATION,)
    assert spec.entities == ()
    assert spec.is_generation_ready


def test_names_that_share_generated_files_are_rejected():
    spec = Specification(
        name="Blog",
        entities=[
            {"name": "Post", "fields": [{"name": "authorId"}, {"name": "author_id"}]},
            {"name": "post"},
            {"name": "BlogPost"},
            {"name": "blog-post"},
        ],
    )
    violations = validate_specification(spec)

    assert violations == [
        "entity 'Post': field names 'authorId' and 'author_id' map to the same attribute",
        "entity names 'Post' and 'post' map to the same files",
        "entity names 'BlogPost' and 'blog-post' map to the same files",
    ]
    with pytest.raises(ValidationError):
        parse_specification({"name": "Blog", "framework": "express", "database": "mongodb",
                             "entities": [{"name": "Post"}, {"name": "post"}]})
