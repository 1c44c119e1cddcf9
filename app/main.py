"""
Main FastAPI application
Quiz generation, timed quiz sessions and performance analytics
"""
from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import asyncio
import logging
import time

from app.config import settings
from app.database import init_db
from app.exceptions import QuizEngineError, ProviderUnavailable
from app.api import quizzes, sessions, analytics
from app.services.maintenance_service import maintenance_loop

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Quiz generation, session and scoring engine",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_background_tasks = set()


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every request with its status and duration"""
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    logger.info(
        f"{request.method} {request.url.path} - "
        f"Status: {response.status_code} - "
        f"Duration: {duration:.3f}s"
    )
    return response


@app.exception_handler(QuizEngineError)
async def quiz_engine_exception_handler(request: Request, exc: QuizEngineError):
    """Map domain error kinds to their HTTP status"""
    content = {"error": exc.error, "message": exc.message}
    headers = None

    if isinstance(exc, ProviderUnavailable) and exc.retry_after:
        content["retry_after"] = exc.retry_after
        headers = {"Retry-After": str(exc.retry_after)}

    if exc.status_code >= 500:
        logger.error(f"{exc.error}: {exc.message}")
    else:
        logger.info(f"{exc.error} on {request.url.path}: {exc.message}")

    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "error": "invalid_input",
            "message": "Request validation failed",
            "detail": jsonable_errors(exc),
        }
    )


def jsonable_errors(exc: RequestValidationError):
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Format HTTP exceptions consistently"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "http_error",
            "message": exc.detail,
            "status_code": exc.status_code
        }
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Last-resort handler for unexpected errors"""
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again later.",
            "detail": str(exc) if settings.DEBUG else None
        }
    )


@app.get("/health")
async def health_check():
    """Service status for monitoring"""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "mock_ai": settings.MOCK_AI,
        "timestamp": time.time()
    }


@app.get("/")
async def root():
    return {
        "message": "Quiz Engine API",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/health"
    }


app.include_router(quizzes.router)
app.include_router(sessions.router)
app.include_router(analytics.router)


@app.on_event("startup")
async def startup_event():
    """Create tables and start the maintenance loop"""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    try:
        init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {str(e)}")
        raise

    if settings.MAINTENANCE_ENABLED:
        task = asyncio.create_task(maintenance_loop())
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)

    logger.info("Application startup complete")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down application")
    for task in list(_background_tasks):
        task.cancel()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
