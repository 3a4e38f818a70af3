from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from shared.errors import http_exception_handler, unhandled_exception_handler
from shared.request_context import RequestIDMiddleware

from .exceptions import WalletError, validation_exception_handler, wallet_exception_handler
from .routes import register_routes
from .serializer import RequestSerializer
from .settings import wallet_settings
from .startup import init_service_startup, setup_instrumentation, setup_logging, shutdown_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_service_startup(app)
    yield
    await shutdown_service(app)


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title="Wallet API", version="0.1.0", lifespan=lifespan)
    # One serializer per application; every store operation goes through it
    app.state.serializer = RequestSerializer()
    app.add_middleware(RequestIDMiddleware)
    app.add_exception_handler(WalletError, wallet_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
    register_routes(app)
    setup_instrumentation(app)
    return app


def main() -> None:
    settings = wallet_settings()
    uvicorn.run(create_app(), host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
