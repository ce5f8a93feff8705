# File: app/main.py
import os
import time
import logging
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from app.api.v1.api import api_router
from app.core.config import settings
from app.core.errors import DomainError, StoreUnavailableError
from app.core.scheduler import start_scheduler, stop_scheduler
from app.db.database import engine, init_db

# Configure logging
logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
)

allowed_origins = ["*"]
if settings.is_production and os.getenv("ALLOWED_ORIGINS"):
    allowed_origins = [url.strip() for url in os.getenv("ALLOWED_ORIGINS").split(",") if url.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH", "HEAD"],
    allow_headers=["*"],
    expose_headers=["X-Process-Time", "Content-Disposition"],
    max_age=3600,
)


# Request logging middleware (AFTER CORS)
@app.middleware("http")
async def log_requests(request: Request, call_next: Callable) -> Response:
    """Log all requests with timing"""
    start_time = time.time()
    logger.info(f"🌐 {request.method} {request.url.path}")

    try:
        response = await call_next(request)
    except Exception as e:
        process_time = time.time() - start_time
        logger.error(
            f"❌ {request.method} {request.url.path} - "
            f"Error: {str(e)} - "
            f"Time: {process_time:.4f}s"
        )
        logger.exception("Full error traceback:")
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "INTERNAL_ERROR",
                "message": "Something went wrong on our end",
            },
        )

    process_time = time.time() - start_time
    logger.info(
        f"✅ {request.method} {request.url.path} - "
        f"Status: {response.status_code} - "
        f"Time: {process_time:.4f}s"
    )
    response.headers["X-Process-Time"] = str(process_time)
    return response


# Error handlers
@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    if exc.status_code >= 500:
        logger.error(f"💥 {request.method} {request.url.path}: {exc}")
    else:
        logger.info(f"⚠️ {request.method} {request.url.path}: {exc}")
    headers = None
    retry_after = getattr(exc, "retry_after", 0)
    if retry_after:
        headers = {"Retry-After": str(retry_after)}
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(OperationalError)
async def store_unavailable_handler(request: Request, exc: OperationalError):
    logger.error(f"💥 Database unavailable on {request.url.path}: {exc}")
    error = StoreUnavailableError()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.on_event("startup")
async def startup_event():
    logger.info(f"🚀 Starting {settings.PROJECT_NAME}")
    logger.info(f"🌍 Environment: {settings.ENVIRONMENT}")
    logger.info(f"📡 API prefix: {settings.API_V1_STR}")
    init_db()
    start_scheduler()
    logger.info("🎉 Application startup completed!")


@app.on_event("shutdown")
async def shutdown_event():
    stop_scheduler()


# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/")
def read_root():
    return {
        "message": f"Welcome to {settings.PROJECT_NAME}",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT,
        "docs_url": "/docs",
        "status": "running",
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        database = "connected"
    except OperationalError as e:
        logger.error(f"❌ Health check database error: {e}")
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "environment": settings.ENVIRONMENT,
                "database": "unavailable",
                "timestamp": time.time(),
            },
        )
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "database": database,
        "timestamp": time.time(),
    }


# For local development
if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    host = "0.0.0.0" if settings.ENVIRONMENT == "production" else "127.0.0.1"

    logger.info(f"🚀 Starting server on {host}:{port}")
    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level=settings.LOG_LEVEL.lower(),
    )
