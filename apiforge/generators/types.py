"""Dataclasses shared by the renderers."""
from dataclasses import dataclass
from typing import FrozenSet, Optional, Tuple

from apiforge.domain.spec import AuthStrategy, Database, Feature, Specification
from apiforge.generators.utils import (
    project_slug,
    to_camel_case,
    to_kebab_case,
    to_plural_kebab_case,
    to_plural_snake_case,
    to_snake_case,
)


@dataclass(frozen=True)
class EntityNames:
    """Every spelling of an entity name a template needs."""
    name: str
    snake: str
    kebab: str
    camel: str
    plural_snake: str
    plural_kebab: str

    @classmethod
    def of(cls, name: str) -> "EntityNames":
        return cls(
            name=name,
            snake=to_snake_case(name),
            kebab=to_kebab_case(name),
            camel=to_camel_case(name),
            plural_snake=to_plural_snake_case(name),
            plural_kebab=to_plural_kebab_case(name),
        )


def effective_features(spec: Specification) -> Tuple[Feature, ...]:
    """Requested features plus authentication when an auth strategy is set,
    in declaration order."""
    wanted = set(spec.features)
    if spec.auth_strategy is not None:
        wanted.add(Feature.AUTHENTICATION)
    return tuple(f for f in Feature if f in wanted)


@dataclass(frozen=True)
class RenderContext:
    """Input to every renderer; ``spec`` is always the canonical form."""
    spec: Specification
    slug: str
    features: FrozenSet[Feature]
    auth_strategy: Optional[AuthStrategy]

    @classmethod
    def build(cls, spec: Specification) -> "RenderContext":
        features = effective_features(spec)
        auth = spec.auth_strategy
        if auth is None and Feature.AUTHENTICATION in features:
            auth = AuthStrategy.JWT
        return cls(
            spec=spec,
            slug=project_slug(spec.name),
            features=frozenset(features),
            auth_strategy=auth,
        )

    @property
    def auth_enabled(self) -> bool:
        return self.auth_strategy is not None

    @property
    def document_db(self) -> bool:
        return self.spec.database == Database.MONGODB

    def has(self, feature: Feature) -> bool:
        return feature in self.features
