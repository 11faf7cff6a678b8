"""
visitrank — Site Visit Ranking & Association Reconciliation Service

Thin FastAPI wrapper around the ranking engine. The console fetches site
visits, projects and caretakers from its own store and posts them here;
nothing is persisted.
"""
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException

from . import __version__
from .logging_config import setup_logging
from .routers.rankings import router as rankings_router
from .schemas.errors import ErrorResponse, FieldError


# --- App Lifecycle ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("visitrank started", version=__version__)
    yield


app = FastAPI(title="visitrank", version=__version__, lifespan=lifespan)
app.include_router(rankings_router)


# --- Request context ---
@app.middleware("http")
async def request_context(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
    request.state.request_id = request_id
    with logger.contextualize(request_id=request_id):
        response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "")


# --- Error handlers ---
@app.exception_handler(HTTPException)
async def http_error(request: Request, exc: HTTPException):
    body = ErrorResponse(error=str(exc.detail), status_code=exc.status_code, request_id=_request_id(request))
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    logger.warning("Rejected request body", path=request.url.path, errors=len(exc.errors()))
    body = ErrorResponse(
        error="Validation failed",
        status_code=422,
        request_id=_request_id(request),
        detail=[FieldError(loc=list(e.get("loc", ())), msg=e.get("msg", "")) for e in exc.errors()],
    )
    return JSONResponse(status_code=422, content=body.model_dump())


@app.get("/health")
def health():
    return {"status": "ok", "version": __version__}
