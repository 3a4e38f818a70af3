from fastapi import APIRouter, FastAPI

from .wallet import router as wallet_router
from . import system


def register_routes(app: FastAPI) -> None:
    # The wallet endpoints live at the root, where the web client calls them
    app.include_router(wallet_router, tags=["wallets"])
    router = APIRouter(prefix="/api/v1")
    router.include_router(system.router, tags=["system"])
    app.include_router(router)
