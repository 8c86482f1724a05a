"""
FastAPI application entry point for the notification gateway

Initializes the FastAPI app, registers routers, and manages the APNs
transport and Mailgun client across startup/shutdown.
"""
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.database import engine, Base
from app.core.logging_config import setup_logging, get_logger
from app.core.metrics import init_metrics, get_metrics, get_content_type
from app.middleware.logging_middleware import RequestLoggingMiddleware
from app.api.v1.devices import router as devices_router
from app.api.v1.push import router as push_router
from app.api.v1.email import router as email_router
from app.services.push import get_apns_transport, shutdown_apns_transport
from app.services.mailgun_service import shutdown_mailgun_service

# Application version
APP_VERSION = "1.0.0"

setup_logging(app_version=APP_VERSION)
logger = get_logger(__name__)

init_metrics(version=APP_VERSION)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    - Startup: creates database tables, opens the APNs transport and starts
      its feedback polling when APNs is configured
    - Shutdown: drains in-flight pushes, flushes feedback, closes HTTP clients
    """
    logger.info(
        "Application starting",
        extra={
            "event_type": "app_startup",
            "version": APP_VERSION,
            "log_level": settings.LOG_LEVEL,
            "debug_mode": settings.DEBUG,
        }
    )

    if settings.DATABASE_URL.startswith("sqlite:///./"):
        os.makedirs("data", exist_ok=True)
    Base.metadata.create_all(bind=engine)
    logger.info(
        "Database initialized",
        extra={"event_type": "database_init", "status": "success"}
    )

    if settings.apns_ready:
        await get_apns_transport().start()
        logger.info(
            "APNs transport started",
            extra={
                "event_type": "apns_start",
                "sandbox": settings.APNS_USE_SANDBOX,
                "feedback_interval_seconds": settings.APNS_FEEDBACK_INTERVAL_SECONDS,
            }
        )
    else:
        logger.warning("APNs not configured, push endpoints will return 503")

    if not settings.mailgun_ready:
        logger.warning("Mailgun not configured, email endpoint will return 503")

    yield

    logger.info("Application shutting down", extra={"event_type": "app_shutdown"})
    await shutdown_apns_transport()
    await shutdown_mailgun_service()
    logger.info("Application shutdown complete", extra={"event_type": "app_shutdown_complete"})


app = FastAPI(
    title="Notification Gateway API",
    description="APNs push and Mailgun email dispatch with device registration",
    version=APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(HTTPException)
async def cors_http_exception_handler(request: Request, exc: HTTPException):
    """
    HTTPException handler that keeps CORS headers on error responses.
    """
    origin = request.headers.get("origin", "")
    origins = settings.cors_origins_list

    cors_headers = {}
    if origins and (origin in origins or "*" in origins):
        cors_headers = {
            "Access-Control-Allow-Origin": origin or origins[0],
            "Access-Control-Allow-Credentials": "true",
        }

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=cors_headers,
    )


app.add_middleware(RequestLoggingMiddleware)

app.include_router(devices_router, prefix=settings.API_V1_PREFIX)
app.include_router(push_router, prefix=settings.API_V1_PREFIX)
app.include_router(email_router, prefix=settings.API_V1_PREFIX)


@app.get("/")
async def root():
    """Root endpoint - API status check"""
    return {
        "name": "Notification Gateway API",
        "version": APP_VERSION,
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "apns_configured": settings.apns_ready,
        "mailgun_configured": settings.mailgun_ready,
    }


@app.get("/metrics")
async def prometheus_metrics():
    """Prometheus metrics endpoint"""
    return Response(
        content=get_metrics(),
        media_type=get_content_type()
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
