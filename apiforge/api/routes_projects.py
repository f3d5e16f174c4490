from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import JSONResponse
from apiforge.domain.bundle import OutputBundle
from apiforge.domain.deployment import DeploymentConfig, DeploymentRecord
from apiforge.domain.project import ProjectFilter, ProjectSummary, SortDirection, SortField
from apiforge.domain.spec import parse_specification
from apiforge.schemas.projects import (
    ProjectCreateRequest,
    ProjectResponse,
    ProjectUpdateRequest,
    SpecificationUpdateRequest,
    TaskQueuedResponse,
    VersionResponse,
)
from apiforge.store.project_store import ProjectStore
from apiforge.tasks.pipelines import deploy_project, generate_project

router = APIRouter()


def get_store(request: Request) -> ProjectStore:
    return request.app.state.store


def _queued(task_id: str, project_id: str) -> JSONResponse:
    return JSONResponse(status_code=202, content=TaskQueuedResponse(task_id=task_id, project_id=project_id).model_dump())


@router.post("/projects", response_model=ProjectResponse, status_code=201)
async def create_project(req: ProjectCreateRequest, store: ProjectStore = Depends(get_store)):
    spec = parse_specification(req.specification) if req.specification is not None else None
    project = await store.create_project(
        req.name, req.description, initial_spec=spec, tags=req.tags, is_public=req.is_public,
    )
    return ProjectResponse.of(project)


@router.get("/projects", response_model=List[ProjectSummary])
async def list_projects(
    search: Optional[str] = None,
    tags: List[str] = Query(default=[]),
    framework: Optional[str] = None,
    database: Optional[str] = None,
    sort_by: SortField = SortField.UPDATED_AT,
    sort_direction: SortDirection = SortDirection.DESC,
    limit: Optional[int] = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    store: ProjectStore = Depends(get_store),
):
    project_filter = ProjectFilter(
        search=search,
        tags=tuple(tags),
        framework=framework,
        database=database,
        sort_by=sort_by,
        sort_direction=sort_direction,
        limit=limit,
        offset=offset,
    )
    return await store.list_projects(project_filter)


@router.get("/projects/{project_id}", response_model=ProjectResponse)
async def get_project(project_id: str, store: ProjectStore = Depends(get_store)):
    return ProjectResponse.of(await store.get_project(project_id))


@router.patch("/projects/{project_id}", response_model=ProjectResponse)
async def update_project(project_id: str, req: ProjectUpdateRequest, store: ProjectStore = Depends(get_store)):
    project = await store.update_project(
        project_id, name=req.name, description=req.description, tags=req.tags, is_public=req.is_public,
    )
    return ProjectResponse.of(project)


@router.delete("/projects/{project_id}", status_code=204)
async def delete_project(project_id: str, store: ProjectStore = Depends(get_store)):
    await store.delete_project(project_id)
    return Response(status_code=204)


@router.put("/projects/{project_id}/specification", response_model=ProjectResponse)
async def update_specification(
    project_id: str,
    req: SpecificationUpdateRequest,
    store: ProjectStore = Depends(get_store),
):
    spec = parse_specification(req.specification)
    return ProjectResponse.of(await store.update_specification(project_id, spec, req.description))


@router.get("/projects/{project_id}/versions", response_model=List[VersionResponse])
async def list_versions(project_id: str, store: ProjectStore = Depends(get_store)):
    return [VersionResponse.of(s) for s in await store.list_versions(project_id)]


@router.get("/projects/{project_id}/versions/{version}", response_model=VersionResponse)
async def get_version(project_id: str, version: int, store: ProjectStore = Depends(get_store)):
    return VersionResponse.of(await store.get_version(project_id, version))


@router.post("/projects/{project_id}/versions/{version}/restore", response_model=ProjectResponse)
async def restore_version(project_id: str, version: int, store: ProjectStore = Depends(get_store)):
    return ProjectResponse.of(await store.restore_version(project_id, version))


@router.post("/projects/{project_id}/generate", response_model=None)
async def generate(project_id: str, background: bool = False, store: ProjectStore = Depends(get_store)):
    if background:
        await store.get_project(project_id)
        return _queued(generate_project.delay(project_id).id, project_id)
    bundle = await store.generate_for_project(project_id)
    return bundle.model_dump(mode="json")


@router.get("/projects/{project_id}/output", response_model=OutputBundle)
async def get_output(project_id: str, store: ProjectStore = Depends(get_store)):
    return await store.get_output(project_id)


@router.post("/projects/{project_id}/deployments", response_model=None)
async def deploy(
    project_id: str,
    config: DeploymentConfig,
    background: bool = False,
    store: ProjectStore = Depends(get_store),
):
    if background:
        await store.get_output(project_id)
        task = deploy_project.delay(project_id, config.model_dump(mode="json"))
        return _queued(task.id, project_id)
    record = await store.deploy_project(project_id, config)
    return record.model_dump(mode="json")


@router.get("/projects/{project_id}/deployments", response_model=List[DeploymentRecord])
async def list_deployments(project_id: str, store: ProjectStore = Depends(get_store)):
    return await store.list_deployments(project_id)


@router.get("/projects/{project_id}/deployments/{deployment_id}", response_model=DeploymentRecord)
async def get_deployment(project_id: str, deployment_id: str, store: ProjectStore = Depends(get_store)):
    return await store.get_deployment(project_id, deployment_id)


@router.get("/deployments/{deployment_id}", response_model=DeploymentRecord)
async def get_deployment_status(deployment_id: str, store: ProjectStore = Depends(get_store)):
    return store.get_deployment_status(deployment_id)
