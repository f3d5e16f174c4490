from fastapi import APIRouter, Request
from apiforge.core.config import settings

router = APIRouter()

@router.get("/health")
def health(request: Request):
    store_ready = getattr(request.app.state, "store", None) is not None
    return {"status": "ok", "service": settings.app_name, "store": "ready" if store_ready else "starting"}
