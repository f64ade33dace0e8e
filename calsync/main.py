from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from calsync.base.config import settings
from calsync.base.database import init_db
from calsync.base.error_handlers import register_exception_handlers
from calsync.base.logging_config import app_logger as logger, init_sentry
from calsync.routers import auth, calendar, meetings

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_sentry()
    init_db()
    logger.info(f"🚀 {settings.PROJECT_NAME} started ({settings.ENVIRONMENT})")
    yield


# --- FastAPI app instance ---
app = FastAPI(
    title="CalSync API",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# --- CORS config ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Prometheus metrics ---
if settings.ENABLE_PROMETHEUS:
    Instrumentator().instrument(app).expose(app)


# --- Logging middleware ---
@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"📥 {request.method} request to {request.url.path}")
    response = await call_next(request)
    logger.info(f"📤 Response: {response.status_code} for {request.url.path}")
    return response


# --- Exception handlers ---
register_exception_handlers(app)

# --- API Routers ---
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(calendar.router, prefix="/api/calendar", tags=["Calendar"])
app.include_router(meetings.router, prefix="/api/meetings", tags=["Meetings"])


# --- System endpoints ---
@app.get("/api/health", tags=["System"])
def health_check():
    return {"status": "CalSync backend is running"}


@app.get("/version", tags=["System"])
def version_check():
    return {
        "version": VERSION,
        "environment": settings.ENVIRONMENT,
    }
