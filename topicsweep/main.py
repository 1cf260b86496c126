from contextlib import asynccontextmanager
import logging
from fastapi import FastAPI, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from slowapi.errors import RateLimitExceeded

from topicsweep.api import topic_selection
from topicsweep.middlewares.access_logger import AccessLoggingMiddleware
from topicsweep.middlewares.logging import setup_logging
from topicsweep.middlewares.security import (
    SecurityHeadersMiddleware,
    add_cors_middleware,
    add_rate_limit,
)
from topicsweep.utils.exception_handlers import (
    generic_exception_handler,
    http_exception_handler,
    rate_limit_exceeded_handler,
)
from topicsweep.utils.telemetry import setup_observability, to_bool
from topicsweep.core.config import settings


is_ready = False


@asynccontextmanager
async def lifespan(app: FastAPI):
    global is_ready

    logging.getLogger(__name__).info(
        "✅ Selection executor=%s max_workers=%s time_budget=%s",
        settings.SELECTION_EXECUTOR,
        settings.SELECTION_MAX_WORKERS,
        settings.SELECTION_TIME_BUDGET_SECONDS,
    )
    is_ready = True
    yield
    is_ready = False


# ✅ SETUP LOGGING FIRST
setup_logging()


app = FastAPI(
    title="Topic Count Selection API",
    description="Harmonic-mean topic-count selection for Gibbs-sampled LDA",
    version="0.1.0",
    lifespan=lifespan,
    debug=(not settings.ENV == "production"),
)

if to_bool(settings.OTEL_ENABLE_TRACING):
    setup_observability(app)


# ===============
# Middlewares
# ===============
add_cors_middleware(app)
add_rate_limit(app)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(AccessLoggingMiddleware)


# ===============
# Routers
# ===============
app.include_router(topic_selection.router)


# ===============
# Health Checks
# ===============
@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/liveness", status_code=204)
def liveness():
    return Response()


@app.api_route("/readiness", methods=["GET", "HEAD"], status_code=200)
def readiness():
    return {"status": "ready"} if is_ready else Response(status_code=503)


# ===============
# Global Error Handlers
# ===============
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)
