"""FastAPI application entrypoint, error envelopes, and health reporting.

Invariants:
- Every failure reaches clients as ``{"success": false, "message": ...}``.
- Storage errors never leak stack traces; they surface as HTTP 500.
"""

import logging
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from gallery.api.deps import get_db
from gallery.api.router import api_router
from gallery.core.config import settings
from gallery.core.logging import configure_logging
from gallery.schema.search import ErrorResponse
from gallery.services.media_service import RetrievalFailure

logger = logging.getLogger("gallery.api")

app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router, prefix=settings.api_prefix)


@app.on_event("startup")
async def _configure_logging() -> None:
    configure_logging()


def _error_response(status_code: int, message: str) -> JSONResponse:
    payload = ErrorResponse(message=message).model_dump(by_alias=True)
    return JSONResponse(status_code=status_code, content=payload)


@app.exception_handler(RetrievalFailure)
async def _retrieval_failure_handler(request: Request, exc: RetrievalFailure) -> JSONResponse:
    logger.error("Retrieval failure", extra={"path": request.url.path, "error": str(exc)})
    return _error_response(500, str(exc) or "Search failed")


@app.exception_handler(StarletteHTTPException)
async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = jsonable_encoder(exc.errors())
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return _error_response(422, f"{location}: {message}" if location else message)


@app.get(f"{settings.api_prefix}/health", tags=["internal"])
async def health(session: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    """Report service status with a lightweight database probe."""
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning("Database health probe failed", extra={"error": str(exc)})
        return {"status": "degraded", "database": "unavailable"}
    return {"status": "ok", "database": "ok"}
