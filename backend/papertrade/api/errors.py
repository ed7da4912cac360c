"""
API Error Handlers
PaperTrade Platform

Renders typed trading failures as JSON:

    {"status": "error", "error": "INSUFFICIENT_FUNDS", "message": "...",
     "retryable": false, "required": 1500.0, "available": 200.0}
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from papertrade.core.exceptions import TradingError


async def trading_error_handler(request: Request, exc: TradingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning(f"{request.method} {request.url.path} failed: {exc.code}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": "error", **exc.to_dict()},
    )


def register_exception_handlers(application: FastAPI) -> None:
    application.add_exception_handler(TradingError, trading_error_handler)
