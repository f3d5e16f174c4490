"""Output of a generation run."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, model_validator


class FileKind(str, Enum):
    CODE = "code"
    CONFIG = "config"
    DOC = "doc"


class DependencyType(str, Enum):
    PRODUCTION = "production"
    DEVELOPMENT = "development"


class GeneratedFile(BaseModel):
    """A single generated file, addressed by its path relative to the project root."""
    model_config = ConfigDict(frozen=True)

    path: str
    content: str
    kind: FileKind = FileKind.CODE
    language: str = "plaintext"
    description: str = ""


class Dependency(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    type: DependencyType = DependencyType.PRODUCTION


class EndpointDoc(BaseModel):
    model_config = ConfigDict(frozen=True)

    method: str
    path: str
    description: str
    authenticated: bool = False


class ApiDocSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    version: str = "1.0.0"
    overview: str = ""
    endpoints: Tuple[EndpointDoc, ...] = ()


class OutputBundle(BaseModel):
    model_config = ConfigDict(frozen=True)

    files: Tuple[GeneratedFile, ...]
    dependencies: Tuple[Dependency, ...] = ()
    setup_instructions: Tuple[str, ...] = ()
    api_doc_summary: ApiDocSummary
    spec_fingerprint: str = ""
    generated_at: datetime

    @model_validator(mode="after")
    def _check_paths(self):
        seen = set()
        for f in self.files:
            if not f.path or not f.path.strip():
                raise ValueError("generated file path must not be empty")
            if f.path in seen:
                raise ValueError(f"duplicate generated file path '{f.path}'")
            seen.add(f.path)
        return self

    @property
    def paths(self) -> Tuple[str, ...]:
        return tuple(f.path for f in self.files)

    @property
    def is_empty(self) -> bool:
        return not self.files

    def file(self, path: str) -> Optional[GeneratedFile]:
        for f in self.files:
            if f.path == path:
                return f
        return None
