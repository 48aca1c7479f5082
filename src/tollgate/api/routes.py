import time

from fastapi import APIRouter, Request
from pydantic import BaseModel

from tollgate.config import get_settings

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    service: str
    timestamp: int


@router.get("/health", response_model=HealthResponse)
async def health_check():
    return HealthResponse(
        status="UP",
        service=get_settings().app_name,
        timestamp=int(time.time()),
    )


@router.get("/")
async def root():
    return {
        "service": get_settings().app_name,
        "message": "Rate limiting service is running",
    }


@router.get("/test")
async def test_endpoint(request: Request):
    return {
        "message": "Request allowed",
        "client": request.headers.get(
            "X-API-Key", request.client.host if request.client else "unknown"
        ),
    }
