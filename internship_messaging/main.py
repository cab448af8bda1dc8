from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from internship_messaging.config import settings
from internship_messaging.database import close_db, get_db, init_db
from internship_messaging.errors import (
    AccessDeniedError,
    BroadcastFailedError,
    ConcurrentUpdateError,
    ConnectivityError,
    ContentValidationError,
    DuplicateConversationError,
    ForbiddenRoleError,
    InvalidTransitionError,
    MessagingError,
    NoRecipientsError,
    NotFoundError,
)
from internship_messaging.logging_config import get_logger, setup_logging
from internship_messaging.routers.admin import router as admin_router
from internship_messaging.routers.conversations import router as conversations_router
from internship_messaging.routers.hooks import router as hooks_router

logger = get_logger(__name__)

# Most specific first; the first isinstance match wins
ERROR_STATUS_CODES = (
    (NotFoundError, 404),
    (AccessDeniedError, 403),
    (ForbiddenRoleError, 403),
    (ContentValidationError, 422),
    (NoRecipientsError, 422),
    (BroadcastFailedError, 503),
    (ConnectivityError, 503),
    (ConcurrentUpdateError, 409),
    (InvalidTransitionError, 409),
    (DuplicateConversationError, 409),
)


def status_code_for(error: MessagingError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown."""
    # Startup
    setup_logging(settings.log_level, settings.log_file)
    await init_db()
    logger.info("Messaging service started (env=%s, version=%s)", settings.env, settings.commit_hash)
    yield
    # Shutdown
    await close_db()


app = FastAPI(
    title="Internship Messaging Service",
    description="Conversations, broadcasts and access rules for the internship platform",
    version=settings.commit_hash or "dev",
    lifespan=lifespan,
)

# Include routers
app.include_router(
    conversations_router, prefix="/api/conversations", tags=["conversations"]
)
app.include_router(admin_router, prefix="/api/admin", tags=["admin"])
app.include_router(hooks_router, prefix="/api/hooks", tags=["hooks"])


@app.exception_handler(MessagingError)
async def messaging_error_handler(request: Request, exc: MessagingError) -> JSONResponse:
    status_code = status_code_for(exc)
    body: Dict[str, Optional[object]] = {"detail": exc.message}
    if isinstance(exc, AccessDeniedError):
        body["reason"] = exc.reason.value
    if exc.retryable:
        body["retryable"] = True
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content=body)


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)) -> Dict[str, Optional[str]]:
    """Health check endpoint with database connectivity."""
    try:
        # Test database connection
        result = await db.execute(text("SELECT 1"))
        db_status = "connected" if result.scalar() == 1 else "error"
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Health check could not reach the database: %s", e)
        db_status = "disconnected"

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "database": db_status,
        "environment": settings.env,
        "version": settings.commit_hash,
    }


# If run directly, start the server
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
