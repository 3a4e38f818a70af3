from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ..settings import wallet_settings

router = APIRouter()


@router.get("/healthz")
async def healthz(request: Request) -> dict[str, str | int]:
    settings = wallet_settings()
    return {
        "status": "ok",
        "service": settings.service_name,
        "queued": request.app.state.serializer.pending,
    }


@router.get("/metrics")
async def metrics() -> Response:
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
