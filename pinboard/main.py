"""
Pinboard API — entry point.

Startup sequence:
  1. Configure OTel tracing (→ Jaeger via OTLP)
  2. Create tables if not present (PostgreSQL)
  3. Initialise the object storage client & bucket
  4. Expose Prometheus /metrics endpoint
"""
import logging

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from pinboard.clients.object_storage import init_object_storage
from pinboard.config import settings
from pinboard.database import dispose_db, engine, init_db
from pinboard.errors import Internal, InvalidInput, PinboardError
from pinboard.routers import interactions, posts, users
from pinboard.telemetry import instrument_app, setup_tracing

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

# Set up tracing before the app is created so all imports are instrumented
setup_tracing(engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup and shutdown of all external connections."""
    logger.info("Starting Pinboard API (env=%s)", settings.environment)

    await init_db()
    init_object_storage()           # sync — boto3 is not async

    logger.info("All services connected. API ready.")
    yield

    logger.info("Shutting down...")
    await dispose_db()


app = FastAPI(
    title="Pinboard API",
    description=(
        "Image posting, pinning, following and commenting: "
        "a social graph & content aggregation service."
    ),
    version="1.0.0",
    lifespan=lifespan,
)


# ── Error handling ─────────────────────────────────────────────────────────
@app.exception_handler(PinboardError)
async def pinboard_error_handler(request: Request, exc: PinboardError):
    if isinstance(exc, Internal):
        logger.error("%s on %s", type(exc).__name__, request.url.path, exc_info=exc)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and parameters are InvalidInput (400), not 422."""
    problems = []
    for error in exc.errors():
        field = ".".join(
            str(part) for part in error["loc"] if part not in ("body", "query", "path", "header")
        )
        problems.append(f"{field}: {error['msg']}" if field else error["msg"])
    return JSONResponse(
        status_code=InvalidInput.status_code,
        content={"message": f"{InvalidInput.message} {'; '.join(problems)}".strip()},
    )


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception):
    """Anything unexpected becomes a generic 500; details stay in the log."""
    logger.error("Unhandled error on %s", request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": Internal.message},
    )


# ── Routers ────────────────────────────────────────────────────────────────
app.include_router(posts.router, prefix=f"{settings.api_prefix}/posts", tags=["Posts"])
app.include_router(
    interactions.router,
    prefix=f"{settings.api_prefix}/posts",
    tags=["Interactions (Pin & Comments)"],
)
app.include_router(users.router, prefix=f"{settings.api_prefix}/users", tags=["Users & Follows"])

# ── Prometheus metrics endpoint ────────────────────────────────────────────
# Mounted at /metrics — scraped by Prometheus
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── OTel FastAPI instrumentation ──────────────────────────────────────────
instrument_app(app)


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "service": settings.service_name}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("pinboard.main:app", host="0.0.0.0", port=8000)
