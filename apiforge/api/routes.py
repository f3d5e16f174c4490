from fastapi import APIRouter
from apiforge.api.routes_health import router as health_router
from apiforge.api.routes_projects import router as projects_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(projects_router, tags=["projects"])
