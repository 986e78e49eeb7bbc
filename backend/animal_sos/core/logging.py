import logging
import sys
import structlog
from animal_sos.core.config import settings

def setup_logging():
    """
    Service events (report_created, comment_added, login_failed ...) go out
    as key=value pairs locally and as JSON lines when ENVIRONMENT is
    production. Events below LOG_LEVEL are dropped before rendering.
    """

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.ENVIRONMENT == "production":
        processors = shared_processors + [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(settings.LOG_LEVEL.upper())
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Route standard logging (uvicorn, sqlalchemy) to stdout as well
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=settings.LOG_LEVEL.upper(),
    )

    # SQL statement echo stays off even at DEBUG
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
