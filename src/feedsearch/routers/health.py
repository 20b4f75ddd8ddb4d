from fastapi import APIRouter, Request
from pydantic import BaseModel

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    search_ready: bool


@router.get("/health", response_model=HealthResponse, status_code=200)
async def healthcheck(request: Request):
    ready = getattr(request.app.state, "search_service", None) is not None
    return {"status": "ok", "search_ready": ready}
