"""Application configuration and router setup."""

import logging

import fastapi
from fastapi.middleware import cors
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse

from components.core import init_db
from components.core.exceptions import DomainError
from components.core.log_config import configure_logging
from restapi.endpoints import (
    auth,
    commission,
    deal,
    health_check,
    plan,
    reconciliation,
    user,
)

logger = logging.getLogger(__name__)

TITLE = "Brokerage Ledger"
DESCRIPTION = "Payment plans, payment ledger, commissions and bank reconciliation for property deals"
VERSION = "1.0.0"


async def domain_error_handler(request: fastapi.Request, exc: DomainError) -> JSONResponse:
    """Turn a business rule failure into a JSON error response."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def create_app() -> fastapi.FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging()

    app = fastapi.FastAPI(
        title=TITLE,
        description=DESCRIPTION,
        version=VERSION,
        lifespan=init_db.lifespan,
    )

    # Add CORS middleware
    app.add_middleware(
        cors.CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(DomainError, domain_error_handler)

    # Include routers
    app.include_router(health_check.router)
    app.include_router(auth.router)
    app.include_router(user.router)
    app.include_router(deal.router)
    app.include_router(plan.router)
    app.include_router(commission.router)
    app.include_router(reconciliation.router)

    def custom_openapi():
        if app.openapi_schema:
            return app.openapi_schema
        app.openapi_schema = get_openapi(
            title=TITLE,
            version=VERSION,
            description=DESCRIPTION,
            routes=app.routes,
        )
        return app.openapi_schema

    app.openapi = custom_openapi

    return app
