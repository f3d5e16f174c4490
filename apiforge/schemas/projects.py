from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from datetime import datetime
from apiforge.domain.deployment import DeploymentStatus
from apiforge.domain.project import Project, VersionSnapshot


class ProjectCreateRequest(BaseModel):
    name: str = Field(..., examples=["Blog"])
    description: str = ""
    specification: Optional[Dict[str, Any]] = Field(
        default=None,
        examples=[{
            "name": "Blog",
            "framework": "express",
            "database": "mongodb",
            "entities": [{"name": "Post", "fields": [{"name": "title", "type": "string", "required": True}]}],
        }],
    )
    tags: List[str] = []
    is_public: bool = False


class ProjectUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    is_public: Optional[bool] = None


class SpecificationUpdateRequest(BaseModel):
    specification: Dict[str, Any]
    description: Optional[str] = None


class ProjectResponse(BaseModel):
    id: str
    name: str
    description: str
    tags: List[str]
    is_public: bool
    version: int
    specification: Dict[str, Any]
    has_output: bool
    last_deployment_status: Optional[DeploymentStatus] = None
    deployment_count: int = 0
    created_at: datetime
    updated_at: datetime

    @classmethod
    def of(cls, project: Project) -> "ProjectResponse":
        last = project.last_deployment
        return cls(
            id=project.id,
            name=project.name,
            description=project.description,
            tags=list(project.tags),
            is_public=project.is_public,
            version=project.version,
            specification=project.specification.model_dump(mode="json"),
            has_output=project.current_output is not None,
            last_deployment_status=last.status if last else None,
            deployment_count=len(project.deployment_history),
            created_at=project.created_at,
            updated_at=project.updated_at,
        )


class VersionResponse(BaseModel):
    version: int
    created_at: datetime
    description: str
    specification: Dict[str, Any]
    has_output: bool

    @classmethod
    def of(cls, snapshot: VersionSnapshot) -> "VersionResponse":
        return cls(
            version=snapshot.version,
            created_at=snapshot.created_at,
            description=snapshot.description,
            specification=snapshot.specification.model_dump(mode="json"),
            has_output=snapshot.output_bundle is not None,
        )


class TaskQueuedResponse(BaseModel):
    task_id: str
    project_id: str
    status: str = "queued"
