from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.middleware import SlowAPIMiddleware
from slowapi.errors import RateLimitExceeded
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from common.core.config import settings
from common.core.constants import Environment
from common.core.otel_axiom_exporter import _initialize_telemetry, get_logger
from common.db.session import init_db
from common.providers.rate_limiter.limiter import limiter
from api.v1.routes.router import api_router

_initialize_telemetry()

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.app_name} ({settings.environment.value})")
    await init_db()
    yield
    logger.info(f"Stopping {settings.app_name}")


# Interactive docs for local development only
is_local = settings.environment == Environment.LOCAL

app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs" if is_local else None,
    redoc_url=None,
    openapi_url="/openapi.json" if is_local else None,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

FastAPIInstrumentor.instrument_app(app)

# Calculator pages call the usage endpoints from the browser
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.get("/healthz", include_in_schema=False)
async def healthz():
    return {"status": "ok"}
