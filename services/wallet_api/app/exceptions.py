from __future__ import annotations

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from shared.errors import error_response


class WalletError(Exception):
    """Base class for errors surfaced by the wallet store."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "Internal Server Error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.error)
        self.detail = detail


class InvalidInputError(WalletError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "Bad Request"


class WalletNotFoundError(WalletError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "Not Found"

    def __init__(self, wallet_id: str) -> None:
        super().__init__(f"Wallet {wallet_id} not found")
        self.wallet_id = wallet_id


class StorageError(WalletError):
    """Any failure reported by the persistence layer; never retried."""

    def __init__(self, operation: str) -> None:
        super().__init__("Storage failure, please try again later")
        self.operation = operation


async def wallet_exception_handler(request: Request, exc: WalletError) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    return error_response(exc.status_code, error=exc.error, detail=exc.detail, request_id=request_id)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Malformed bodies and query strings are reported as plain invalid input
    request_id = getattr(request.state, "request_id", None)
    logger.bind(request_id=request_id).info("wallet.request.invalid {}", exc.errors())
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        error="Bad Request",
        detail=_describe_validation_errors(exc),
        request_id=request_id,
    )


def _describe_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(item) for item in err.get("loc", ()) if item != "body")
        parts.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return "; ".join(parts)
