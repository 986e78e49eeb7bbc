from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

logger = structlog.get_logger()


class AnimalSOSError(Exception):
    """
    Base class for domain errors raised by the services.
    Routers let these propagate; the handler below maps them to responses.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request could not be processed"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(AnimalSOSError):
    """Missing/blank required field or unrecognized enum value."""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Invalid input"


class AuthorizationError(AnimalSOSError):
    """Caller is not the owner of the resource or lacks the required role."""
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You do not have permission to perform this action"


class AuthenticationError(AnimalSOSError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Invalid credentials"


class ConflictError(AnimalSOSError):
    """Unique field (email, nickname) already taken."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Already in use"


class ExpiredEditWindowError(AuthorizationError):
    default_detail = "Reports can only be edited within 1 hour of creation"


class NotFoundError(AnimalSOSError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class DependencyError(AnimalSOSError):
    """An external collaborator (media storage, mail) failed."""
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "An external service failed, please try again later"


async def domain_exception_handler(request: Request, exc: AnimalSOSError):
    """
    Maps domain errors to their HTTP status, keeping the message verbatim.
    """
    logger.info(
        "domain_error",
        error=type(exc).__name__,
        detail=exc.detail,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error": type(exc).__name__},
    )

async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all for unhandled exceptions.
    Prevents stack trace leakage in production.
    """
    logger.error("unhandled_exception", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An unexpected error occurred. Please contact support."},
    )

async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Pydantic validation error handler.
    """
    logger.warning("validation_error", errors=exc.errors(), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Validation error", "errors": jsonable_errors(exc)},
    )

def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may hold exception instances which are not JSON serializable
    errors = []
    for err in exc.errors():
        err = dict(err)
        if "ctx" in err:
            err["ctx"] = {k: str(v) for k, v in err["ctx"].items()}
        errors.append(err)
    return errors
