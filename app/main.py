import logging
import time
from contextlib import asynccontextmanager

try:
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration
except ModuleNotFoundError:  # Sentry optional in local/test envs
    sentry_sdk = None
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse

from app.api.errors import map_error_code
from app.api.routes import commitments, health, quarters, queues
from app.config import settings
from app.services.commitments.errors import CommitmentError
from app.services.commitments.repositories import get_commitment_repository
from app.services.compliance.errors import ComplianceError

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _init_sentry() -> None:
    if sentry_sdk is None or not settings.sentry_dsn:
        return
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        integrations=[
            FastApiIntegration(auto_enabling_instrumentations=False),
            LoggingIntegration(level=logging.INFO),
        ],
        traces_sample_rate=0.1,
        environment=settings.environment,
    )
    logger.info("app.sentry.initialized", extra={"environment": settings.environment})


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the commitment store before serving queues; release it on shutdown."""
    logger.info(
        "app.startup",
        extra={"app": settings.app_name, "version": settings.app_version},
    )
    _init_sentry()
    repository = get_commitment_repository()
    logger.info(
        "app.ready",
        extra={"commitment_store": type(repository).__name__, "debug": settings.debug},
    )

    yield

    dispose = getattr(repository, "dispose", None)
    if dispose is not None:
        dispose()
    logger.info("app.shutdown")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Deal compliance and risk queues for the RevOps dashboard",
    lifespan=lifespan,
    debug=settings.debug,
)

if settings.cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=["*"] if settings.debug else ["localhost", "127.0.0.1"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "http.request",
        extra={
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round((time.perf_counter() - start) * 1000, 2),
        },
    )
    return response


@app.exception_handler(CommitmentError)
@app.exception_handler(ComplianceError)
async def domain_error_handler(request: Request, exc: CommitmentError | ComplianceError):
    """Fallback for domain errors a route did not translate itself."""
    status_code = map_error_code(exc.code)
    logger.error(
        "http.domain_error",
        extra={"path": request.url.path, "code": exc.code, "status": status_code},
    )
    return JSONResponse(status_code=status_code, content={"detail": str(exc), "code": exc.code})


app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(queues.router, prefix="/api", tags=["queues"])
app.include_router(commitments.router, prefix="/api", tags=["commitments"])
app.include_router(quarters.router, prefix="/api", tags=["quarters"])


@app.get("/")
async def root():
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.environment,
    }
