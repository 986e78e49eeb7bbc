from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

from animal_sos.core.config import settings
from animal_sos.core.logging import setup_logging
from animal_sos.core.exceptions import (
    AnimalSOSError,
    domain_exception_handler,
    global_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)

# Setup Logging
setup_logging()
logger = structlog.get_logger()

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifecycle manager for the application.
    """
    logger.info("startup", project=settings.PROJECT_NAME, environment=settings.ENVIRONMENT)
    if settings.AUTO_CREATE_TABLES:
        from animal_sos.db.init_db import create_tables
        await create_tables()
    yield
    from animal_sos.db.session import engine
    await engine.dispose()
    logger.info("shutdown")

app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    description="Animal-welfare incident reporting API",
    lifespan=lifespan,
    docs_url=f"{settings.API_V1_STR}/docs",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
)

# Middleware: CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)

# Exception Handlers
app.add_exception_handler(AnimalSOSError, domain_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

# Health Check
@app.get("/health", tags=["system"])
async def health_check():
    """
    Public health check endpoint for load balancers.
    """
    return {"status": "ok", "environment": settings.ENVIRONMENT}


from animal_sos.api.v1 import (  # noqa: E402
    agency,
    auth,
    comments,
    media,
    reports,
    users,
)

app.include_router(reports.router, prefix=f"{settings.API_V1_STR}/reports", tags=["reports"])
app.include_router(comments.router, prefix=f"{settings.API_V1_STR}/reports/{{report_id}}/comments", tags=["comments"])
app.include_router(agency.router, prefix=f"{settings.API_V1_STR}/agency", tags=["agency"])
app.include_router(users.router, prefix=f"{settings.API_V1_STR}/users", tags=["users"])
app.include_router(media.router, prefix=f"{settings.API_V1_STR}/media", tags=["media"])
app.include_router(auth.router, prefix=f"{settings.API_V1_STR}/auth", tags=["auth"])

# Locally stored uploads; MEDIA_BASE_URL points here in development
app.mount("/media", StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="media")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("animal_sos.main:app", host="0.0.0.0", port=8000, reload=True)
