from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from tabi.api import activities, budget, health, trips
from tabi.core.logging import get_logger, setup_logging
from tabi.core.settings import settings
from tabi.utils.metrics import APIMetricsMiddleware
from tabi.utils.responses import FAILURE_STATUS_CODE, error_response

logger = get_logger(__name__)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed bodies share the generic failure shape of every other error."""

    logger.warning(
        "request.invalid",
        extra={
            "method": request.method,
            "path": request.url.path,
            "errors": exc.errors(),
        },
    )
    return JSONResponse(
        status_code=FAILURE_STATUS_CODE,
        content=error_response("Invalid request payload"),
    )


def create_app() -> FastAPI:
    """Application factory registering routers, middleware, and config."""

    setup_logging()
    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
    )

    application.add_middleware(APIMetricsMiddleware)
    application.include_router(health.router)
    application.include_router(trips.router)
    application.include_router(activities.router)
    application.include_router(budget.router)
    application.add_exception_handler(
        RequestValidationError,
        validation_exception_handler,
    )
    return application
