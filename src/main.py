# src/main.py
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator
import uvicorn as uv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.middleware import SlowAPIMiddleware
from core.config import settings
from db.database import check_db_connection, create_tables, disconnect_db
from routes import predictions_router, shared_predictions_router, users_router
from services.email_service import get_email_service
from utils.exception_handler import setup_exception_handlers
from utils.logger import configure_root_logging, setup_logger
from utils.rate_limiter import limiter

configure_root_logging(
    log_file=settings.LOG_FILE or None,
    quiet_loggers=["watchfiles", "uvicorn.error", "uvicorn.access", "uvicorn.asgi"],
)

logger = setup_logger("SERVER")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Async context manager with proper error handling"""
    logger.info("Starting MedicAI backend...")

    try:
        logger.info("Initializing database...")
        await create_tables()

        if await check_db_connection():
            logger.info("Database connection verified")
        else:
            logger.warning("Database connection check failed")

        # Build the shared email client once, before the first request
        get_email_service()

        logger.info("Application startup complete")
        yield

    except Exception as e:
        logger.error(f"Startup failed: {str(e)}")
        raise
    finally:
        logger.info("Closing database connection")
        await disconnect_db()
        logger.info("Shutting down application...")


# Initialize the FastAPI application with lifespan management
app = FastAPI(
    title="MedicAI",
    description="Health prediction records and doctor review workflow",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if not settings.IS_PRODUCTION else None,
    redoc_url="/redoc" if not settings.IS_PRODUCTION else None,
)

# Rate limiting configuration
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

# Exception handling
setup_exception_handlers(app)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(users_router, prefix=settings.API_PREFIX)
app.include_router(predictions_router, prefix=settings.API_PREFIX)
app.include_router(shared_predictions_router, prefix=settings.API_PREFIX)


@app.get("/")
async def root():
    return {
        "message": "MedicAI API",
        "status": "healthy",
        "version": app.version,
    }


@app.get("/health")
async def health_check():
    """Detailed health check endpoint"""
    db_healthy = await check_db_connection()
    return {
        "status": "healthy" if db_healthy else "degraded",
        "database": "connected" if db_healthy else "disconnected",
        "email": get_email_service().health(),
        "environment": settings.ENVIRONMENT,
    }


if __name__ == "__main__":
    watch_dirs = [
        os.path.join("core"),
        os.path.join("routes"),
        os.path.join("models"),
        os.path.join("schemas"),
        os.path.join("services"),
        os.path.join("utils"),
        os.path.join("db"),
    ]

    uv.run(
        "main:app",
        host=settings.UVICORN_HOST,
        port=settings.UVICORN_PORT,
        reload=settings.RELOAD,
        reload_dirs=watch_dirs,
        reload_excludes=["*.pyc", "*.tmp", "*.swp"],
        workers=1 if settings.RELOAD else settings.WORKERS_COUNT,
        log_level="info",
        access_log=True,
    )
