from __future__ import annotations
import datetime as dt
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.trustedhost import TrustedHostMiddleware
from starlette.responses import JSONResponse

from api_router import router
from astro_core.astro_core import (
    AstroError,
    HouseCalculationFailed,
    InvalidDateTime,
    InvalidInput,
    LocationUnresolved,
)
from schemas import ErrorResponse, ErrorEnvelope, ErrorDetail
from settings import APP_NAME, APP_VERSION, CORS_ALLOW_ORIGINS, TRUSTED_HOSTS, GZIP_MIN_SIZE, REQUEST_LOGGING, LOG_LEVEL
from middleware import RequestIDMiddleware, LoggingMiddleware

_LEVEL_MAP = {"debug": logging.DEBUG, "info": logging.INFO, "warn": logging.WARN, "warning": logging.WARN, "error": logging.ERROR}
logging.basicConfig(level=_LEVEL_MAP.get(LOG_LEVEL, logging.INFO), format="[%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("%s v%s starting up", APP_NAME, APP_VERSION)
    yield
    logger.info("%s shutting down", APP_NAME)


app = FastAPI(
    title=APP_NAME,
    version=APP_VERSION,
    description="Natal chart, synastry aspect, and harmonic resonance endpoints.",
    lifespan=lifespan,
)

# --- Middleware ---
app.add_middleware(RequestIDMiddleware)
app.add_middleware(LoggingMiddleware, mode=REQUEST_LOGGING)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=GZIP_MIN_SIZE)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=TRUSTED_HOSTS or ["*"])


# --- Exception handlers -> uniform envelope ---

_ASTRO_STATUS = {
    InvalidInput: status.HTTP_400_BAD_REQUEST,
    LocationUnresolved: status.HTTP_404_NOT_FOUND,
    InvalidDateTime: status.HTTP_422_UNPROCESSABLE_ENTITY,
    HouseCalculationFailed: status.HTTP_502_BAD_GATEWAY,
}


@app.exception_handler(AstroError)
async def on_astro_error(request: Request, exc: AstroError):
    status_code = next(
        (code for cls, code in _ASTRO_STATUS.items() if isinstance(exc, cls)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    logger.warning("%s %s failed at stage %s: %s", request.method, request.url.path, exc.stage, exc.message)
    err = ErrorEnvelope(
        code=exc.stage.upper(),
        message=exc.message,
        details=[ErrorDetail(field="stage", issue=exc.stage)],
    )
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=err).model_dump(),
    )


@app.exception_handler(StarletteHTTPException)
async def on_http_exception(request: Request, exc: StarletteHTTPException):
    status_code = int(getattr(exc, "status_code", 500))
    detail = getattr(exc, "detail", None)
    message = detail if isinstance(detail, str) and detail else str(exc)

    if status_code == status.HTTP_400_BAD_REQUEST:
        code = "BAD_REQUEST"
    elif status_code == status.HTTP_404_NOT_FOUND:
        code = "NOT_FOUND"
    elif status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        code = "METHOD_NOT_ALLOWED"
    else:
        code = f"HTTP_{status_code}"

    err = ErrorEnvelope(code=code, message=message)
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=err).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def on_validation_error(request: Request, exc: RequestValidationError):
    err = ErrorEnvelope(
        code="UNPROCESSABLE_ENTITY",
        message="Validation error",
        details=[
            ErrorDetail(field=".".join(str(p) for p in e.get("loc", ())), issue=e.get("msg"))
            for e in exc.errors()
        ],
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(error=err).model_dump(),
    )


@app.exception_handler(Exception)
async def on_any_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    err = ErrorEnvelope(code="SERVER_ERROR", message=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(error=err).model_dump(),
    )


@app.get("/")
async def landing():
    return {"service": APP_NAME, "ts": dt.datetime.now(dt.timezone.utc).isoformat()}


# --- Liveness/Readiness ---
@app.get("/healthz")
async def healthz():
    return {"ok": True, "ts": dt.datetime.now(dt.timezone.utc).isoformat()}


@app.get("/readyz")
async def readyz():
    return {"ready": True}


# --- Routes ---
app.include_router(router)


# Optional: dev run
if __name__ == "__main__":
    try:
        import uvicorn  # type: ignore
    except ImportError:
        raise SystemExit("Uvicorn is required. Install dependencies first.")
    uvicorn.run("main:app", host="127.0.0.1", port=8787, reload=True)
