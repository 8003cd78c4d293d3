"""API error handling

ClientError carries a libs.result.Error out of a route; the handlers below
render every failure as {"error": {"code", "message", ...}}.
"""

import logging
from typing import Any, Dict, Optional
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from libs.result import Error
from src.domain.errors import WalletError

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    "WALLET_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "TRANSACTION_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "WALLET_BLOCKED": status.HTTP_403_FORBIDDEN,
    "INSUFFICIENT_FUNDS": status.HTTP_402_PAYMENT_REQUIRED,
    "CURRENCY_MISMATCH": status.HTTP_400_BAD_REQUEST,
    "INVALID_STATE_TRANSITION": status.HTTP_409_CONFLICT,
    "CONCURRENCY_CONFLICT": status.HTTP_503_SERVICE_UNAVAILABLE,
    "DUPLICATE_TRANSACTION": status.HTTP_409_CONFLICT,
    "DAILY_LIMIT_EXCEEDED": status.HTTP_400_BAD_REQUEST,
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
    "GATEWAY_CALLBACK_MISMATCH": status.HTTP_409_CONFLICT,
    "GATEWAY_UNAVAILABLE": status.HTTP_502_BAD_GATEWAY,
    "INVALID_SIGNATURE": status.HTTP_401_UNAUTHORIZED,
}


def status_code_for(error: Error) -> int:
    if error.code in ERROR_STATUS_CODES:
        return ERROR_STATUS_CODES[error.code]
    if error.code.endswith("_FAILED"):
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    return status.HTTP_400_BAD_REQUEST


class ClientError(Exception):
    def __init__(self, error: Error, status_code: Optional[int] = None):
        super().__init__(error.message)
        self.error = error
        self.status_code = status_code or status_code_for(error)


def error_body(error: Error) -> Dict[str, Any]:
    body: Dict[str, Any] = {"code": error.code, "message": error.message}
    if error.reason:
        body["reason"] = error.reason
    if error.details:
        body["details"] = error.details
    if error.retryable:
        body["retryable"] = True
    return {"error": body}


async def client_error_handler(request: Request, exc: ClientError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.error.code}: {exc.error.reason}")
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.error))


async def wallet_error_handler(request: Request, exc: WalletError) -> JSONResponse:
    error = exc.to_error()
    return JSONResponse(status_code=status_code_for(error), content=error_body(error))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    error = Error(code="VALIDATION_ERROR", message="Invalid request parameters", details=details)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error_body(error))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ClientError, client_error_handler)
    app.add_exception_handler(WalletError, wallet_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
