"""FastAPI application entrypoint for the voting workflow."""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.dependencies import get_voting_session
from app.routers import admin, election
from app.services.voting_session import VotingSession
from app.utils.errors import AppError, InvalidInputError

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    logger.info(
        "Starting %s %s (storage=%s, tally=%s, admins=%d)",
        settings.app_name,
        settings.app_version,
        settings.storage_backend,
        settings.tally_policy,
        len(settings.admin_ids),
    )
    if not settings.admin_ids:
        logger.warning("ADMIN_USER_IDS is empty; every administrative call will be refused")
    yield
    logger.info("Stopping %s", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    description="Voter registration, proposals, voting and tally for a single election",
    version=settings.app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type"],
)


@app.middleware("http")
async def request_timing_middleware(request: Request, call_next):
    """Stamp each response with its processing time; log the slow ones."""
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    response.headers["X-Process-Time-Ms"] = f"{elapsed_ms:.1f}"

    threshold_ms = settings.slow_request_log_threshold_ms
    if 0 < threshold_ms <= elapsed_ms:
        logger.warning("Slow %s %s took %.1fms", request.method, request.url.path, elapsed_ms)
    return response


@app.exception_handler(AppError)
async def workflow_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render workflow errors as ``{"error", "code"}`` bodies."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    api_error = InvalidInputError(f"{field}: {message}" if field else message)
    return JSONResponse(status_code=api_error.status_code, content=api_error.to_dict())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "code": "INTERNAL_ERROR"},
    )


app.include_router(admin.router, prefix="/admin", tags=["admin"])
app.include_router(election.router, prefix="/election", tags=["election"])


@app.get("/health")
def health(session: VotingSession = Depends(get_voting_session)) -> dict[str, str]:
    """Liveness plus the election's current phase."""
    return {
        "status": "ok",
        "version": settings.app_version,
        "storage_backend": settings.storage_backend,
        "workflow_status": session.get_workflow_status().value,
    }
