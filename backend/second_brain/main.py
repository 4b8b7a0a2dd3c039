"""
ASGI application: lifespan, middleware, health probe and error mapping.

    uvicorn second_brain.main:app
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from second_brain import __version__
from second_brain.core.config import settings
from second_brain.core.exceptions import (
    EmbeddingError,
    NotFoundError,
    SecondBrainError,
    StoreError,
    ValidationError,
    VectorIndexError,
)
from second_brain.core.logging import get_logger, setup_logging
from second_brain.db.session import check_db_health, close_db, init_db
from second_brain.services.embedder import EmbeddingService
from second_brain.services.vector_index import VectorIndexService

setup_logging()
logger = get_logger(__name__)

# Domain error → HTTP status
ERROR_STATUS_CODES: dict[type[SecondBrainError], int] = {
    ValidationError: 400,
    NotFoundError: 404,
    StoreError: 503,
    EmbeddingError: 502,
    VectorIndexError: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Boot the database, embedder and vector index clients.

    Startup fails (and the process does not serve traffic) when the
    database is unreachable or the vector collection cannot be ensured.
    """
    # Startup
    logger.info(
        "starting_application",
        app_name=settings.APP_NAME,
        environment=settings.APP_ENV,
        version=__version__,
    )

    await init_db()

    embedder = EmbeddingService()
    vector_index = VectorIndexService()
    await embedder.boot()
    await vector_index.boot()

    try:
        await vector_index.ensure_collection()
    except VectorIndexError as e:
        logger.critical("vector_collection_unavailable", error=e.message, details=e.details)
        await embedder.close()
        await vector_index.close()
        await close_db()
        raise

    app.state.embedder = embedder
    app.state.vector_index = vector_index

    yield

    # Shutdown
    logger.info("shutting_down_application")

    await embedder.close()
    await vector_index.close()
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    description="Personal content store with semantic search - Backend API",
    version=__version__,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.get("/health", tags=["health"])
async def health_check(request: Request) -> JSONResponse:
    """200 when both the database and the vector index answer, else 503."""
    db_healthy = await check_db_health()

    vector_index = getattr(request.app.state, "vector_index", None)
    index_healthy = vector_index is not None and await vector_index.check_health()

    healthy = db_healthy and index_healthy
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "app_name": settings.APP_NAME,
            "environment": settings.APP_ENV,
            "version": __version__,
            "database": "connected" if db_healthy else "disconnected",
            "vector_index": "connected" if index_healthy else "disconnected",
        },
    )


# Include API routers
from second_brain.api import api_router  # noqa: E402

app.include_router(api_router, prefix=settings.API_V1_PREFIX)


# Domain exception handler
@app.exception_handler(SecondBrainError)
async def domain_exception_handler(request: Request, exc: SecondBrainError) -> JSONResponse:
    """
    Map a domain error to its status code and a generic message.

    The internal message is logged, never returned.
    """
    status_code = next(
        (code for cls, code in ERROR_STATUS_CODES.items() if isinstance(exc, cls)),
        500,
    )
    log = logger.warning if status_code < 500 else logger.error
    log(
        "domain_error",
        code=exc.code,
        error=exc.message,
        path=request.url.path,
        method=request.method,
    )

    error: dict = {"code": exc.code, "message": exc.public_message}
    if isinstance(exc, ValidationError):
        # Validation messages are written for the caller
        error["message"] = exc.message
        if exc.details is not None:
            error["details"] = exc.details

    return JSONResponse(status_code=status_code, content={"error": error})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything that is not a SecondBrainError becomes a bare 500."""
    logger.error(
        "unhandled_exception",
        error=str(exc),
        path=request.url.path,
        method=request.method,
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
            }
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "second_brain.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
