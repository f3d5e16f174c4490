"""Typed description of a backend API: framework, database, entities and features."""
from __future__ import annotations

import hashlib
import json
import re
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Type

import pydantic
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from apiforge.core.errors import ValidationError
from apiforge.generators.utils import to_snake_case


class Framework(str, Enum):
    EXPRESS = "express"
    NESTJS = "nestjs"
    FASTAPI = "fastapi"
    FLASK = "flask"


class Database(str, Enum):
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    SQLITE = "sqlite"
    MONGODB = "mongodb"


class AuthStrategy(str, Enum):
    JWT = "jwt"
    OAUTH2 = "oauth2"
    SESSION = "session"
    API_KEY = "api-key"
    BASIC = "basic"


class Feature(str, Enum):
    AUTHENTICATION = "authentication"
    FILE_UPLOAD = "file-upload"
    LOGGING = "logging"
    SWAGGER = "swagger"
    TESTING = "testing"
    DOCKER = "docker"
    CICD = "cicd"
    MONITORING = "monitoring"


class FieldType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    ARRAY = "array"
    OBJECT = "object"
    ID = "id"
    EMAIL = "email"
    PASSWORD = "password"
    RICHTEXT = "richtext"
    UUID = "uuid"
    JSON = "json"


class RuleType(str, Enum):
    MIN = "min"
    MAX = "max"
    MIN_LENGTH = "min-length"
    MAX_LENGTH = "max-length"
    PATTERN = "pattern"
    EMAIL = "email"
    ENUM = "enum"


class RelationshipType(str, Enum):
    ONE_TO_ONE = "one-to-one"
    ONE_TO_MANY = "one-to-many"
    MANY_TO_ONE = "many-to-one"
    MANY_TO_MANY = "many-to-many"


# Shorthands seen in hand-written specifications
_CHOICE_ALIASES = {
    "postgres": "postgresql",
    "mongo": "mongodb",
    "nest": "nestjs",
    "int": "integer",
    "bool": "boolean",
    "str": "string",
}


def _squash(value: str) -> str:
    return re.sub(r"[^a-z0-9]", "", value.lower())


def coerce_choice(enum_cls: Type[Enum], value: Any) -> Any:
    """Match ``value`` against ``enum_cls`` ignoring case and separators.

    ``"Express"``, ``"API Key"`` and ``"fileUpload"`` resolve to their members.
    Unknown values are returned unchanged so pydantic reports them.
    """
    if isinstance(value, enum_cls) or not isinstance(value, str):
        return value
    key = _squash(value)
    key = _CHOICE_ALIASES.get(key, key)
    for member in enum_cls:
        if _squash(member.value) == key:
            return member
    return value


class _SpecModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class Rule(_SpecModel):
    type: RuleType
    value: Any = None
    message: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, v):
        return coerce_choice(RuleType, v)


class EntityField(_SpecModel):
    name: str
    type: FieldType = FieldType.STRING
    required: bool = False
    unique: bool = False
    default: Any = None
    description: Optional[str] = None
    validations: Tuple[Rule, ...] = ()

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, v):
        return coerce_choice(FieldType, v)


class Entity(_SpecModel):
    name: str
    description: Optional[str] = None
    fields: Tuple[EntityField, ...] = ()

    def field(self, name: str) -> Optional[EntityField]:
        for f in self.fields:
            if f.name == name:
                return f
        return None


class Relationship(_SpecModel):
    type: RelationshipType
    source: str
    target: str
    description: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, v):
        return coerce_choice(RelationshipType, v)


class Specification(_SpecModel):
    name: str
    description: str = ""
    framework: Optional[Framework] = None
    database: Optional[Database] = None
    auth_strategy: Optional[AuthStrategy] = Field(
        default=None,
        validation_alias=AliasChoices("auth_strategy", "authStrategy", "authentication"),
    )
    entities: Tuple[Entity, ...] = Field(
        default=(),
        validation_alias=AliasChoices("entities", "dataModels", "data_models"),
    )
    relationships: Tuple[Relationship, ...] = ()
    features: Tuple[Feature, ...] = ()

    @field_validator("framework", mode="before")
    @classmethod
    def _coerce_framework(cls, v):
        return coerce_choice(Framework, v)

    @field_validator("database", mode="before")
    @classmethod
    def _coerce_database(cls, v):
        return coerce_choice(Database, v)

    @field_validator("auth_strategy", mode="before")
    @classmethod
    def _coerce_auth(cls, v):
        if v == "":
            return None
        return coerce_choice(AuthStrategy, v)

    @field_validator("features", mode="before")
    @classmethod
    def _coerce_features(cls, v):
        if isinstance(v, (list, tuple)):
            return tuple(coerce_choice(Feature, item) for item in v)
        return v

    def entity(self, name: str) -> Optional[Entity]:
        for e in self.entities:
            if e.name == name:
                return e
        return None

    @property
    def is_generation_ready(self) -> bool:
        return self.framework is not None and self.database is not None

    def canonical(self) -> "Specification":
        """Normalized copy used for equality and for rendering.

        Entities and fields are sorted by name, rules by (type, value),
        relationships by (source, target, type); features are de-duplicated
        and sorted.
        """
        entities = tuple(
            entity.model_copy(update={
                "fields": tuple(
                    f.model_copy(update={"validations": tuple(sorted(f.validations, key=_rule_key))})
                    for f in sorted(entity.fields, key=lambda f: f.name)
                ),
            })
            for entity in sorted(self.entities, key=lambda e: e.name)
        )
        relationships = tuple(sorted(
            self.relationships, key=lambda r: (r.source, r.target, r.type.value)
        ))
        features = tuple(sorted(set(self.features), key=lambda f: f.value))
        return self.model_copy(update={
            "entities": entities,
            "relationships": relationships,
            "features": features,
        })

    def fingerprint(self) -> str:
        payload = self.canonical().model_dump(mode="json")
        encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
        return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def _rule_key(rule: Rule) -> Tuple[str, str]:
    return rule.type.value, json.dumps(rule.value, sort_keys=True, default=str)


_NUMERIC_RULES = {RuleType.MIN, RuleType.MAX, RuleType.MIN_LENGTH, RuleType.MAX_LENGTH}


def _rule_violations(where: str, rule: Rule) -> List[str]:
    if rule.type in _NUMERIC_RULES:
        if isinstance(rule.value, bool) or not isinstance(rule.value, (int, float)):
            return [f"{where}: rule '{rule.type.value}' needs a numeric value"]
    elif rule.type == RuleType.PATTERN:
        if not isinstance(rule.value, str):
            return [f"{where}: rule 'pattern' needs a string value"]
        try:
            re.compile(rule.value)
        except re.error as e:
            return [f"{where}: invalid pattern {rule.value!r} ({e})"]
    elif rule.type == RuleType.ENUM:
        if not isinstance(rule.value, (list, tuple)) or not rule.value:
            return [f"{where}: rule 'enum' needs a non-empty list of values"]
    return []


def _name_clash(keys: Dict[str, str], name: str) -> Optional[str]:
    """Record ``name`` under its snake_case key; return an earlier name with the same key."""
    key = to_snake_case(name.strip())
    if key in keys:
        return keys[key]
    keys[key] = name
    return None


def validate_specification(spec: Specification) -> List[str]:
    """Return every violated invariant of ``spec``; an empty list means valid."""
    violations: List[str] = []
    if not spec.name or not spec.name.strip():
        violations.append("specification name must not be empty")

    seen_entities = set()
    entity_keys: Dict[str, str] = {}
    for index, entity in enumerate(spec.entities):
        label = entity.name or f"#{index + 1}"
        if not entity.name or not entity.name.strip():
            violations.append(f"entity #{index + 1}: name must not be empty")
        elif entity.name in seen_entities:
            violations.append(f"duplicate entity name '{entity.name}'")
        else:
            clash = _name_clash(entity_keys, entity.name)
            if clash:
                violations.append(f"entity names '{clash}' and '{entity.name}' map to the same files")
        seen_entities.add(entity.name)

        seen_fields = set()
        field_keys: Dict[str, str] = {}
        for f_index, field in enumerate(entity.fields):
            if not field.name or not field.name.strip():
                violations.append(f"entity '{label}' field #{f_index + 1}: name must not be empty")
                continue
            if field.name in seen_fields:
                violations.append(f"entity '{label}': duplicate field name '{field.name}'")
            else:
                clash = _name_clash(field_keys, field.name)
                if clash:
                    violations.append(
                        f"entity '{label}': field names '{clash}' and '{field.name}' map to the same attribute"
                    )
            seen_fields.add(field.name)
            for rule in field.validations:
                violations.extend(_rule_violations(f"{label}.{field.name}", rule))

    for rel in spec.relationships:
        for end in (rel.source, rel.target):
            if end not in seen_entities:
                violations.append(
                    f"relationship {rel.source} -> {rel.target} references unknown entity '{end}'"
                )
    return violations


def parse_specification(data: Dict[str, Any]) -> Specification:
    """Build a Specification from a raw mapping, reporting every problem at once."""
    try:
        spec = Specification.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(
            f"{'.'.join(str(p) for p in err['loc']) or 'specification'}: {err['msg']}"
            for err in e.errors()
        ) from e
    violations = validate_specification(spec)
    if violations:
        raise ValidationError(violations)
    return spec


def default_specification(name: str, description: str = "") -> Specification:
    """Draft specification used when a project is created without one."""
    return Specification(
        name=name,
        description=description,
        framework=Framework.EXPRESS,
        database=Database.MONGODB,
        auth_strategy=AuthStrategy.JWT,
        features=(Feature.AUTHENTICATION,),
    )
