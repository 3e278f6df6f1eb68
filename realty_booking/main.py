"""
FastAPI application for the realty booking engine

Dashboard API for admins, public booking API for their clients
"""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute

from realty_booking.api.v1.router import api_v1_router
from realty_booking.config.database import create_tables
from realty_booking.config.settings import get_settings
from realty_booking.core.exceptions import BookingEngineException
from realty_booking.core.middleware import request_context_middleware
from realty_booking.core.monitoring import health_router
from realty_booking.utils.my_logging import setup_logging

settings = get_settings()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    setup_logging()
    logger.info(f"{settings.APP_NAME} starting up")

    if settings.DEBUG:
        create_tables()
        routes = sorted(
            (route.path, ",".join(sorted(route.methods)))
            for route in app.routes if isinstance(route, APIRoute)
        )
        for path, methods in routes:
            logger.debug(f"  {methods:20} {path}")
        logger.info(f"Total routes registered: {len(routes)}")

    yield

    # Shutdown
    logger.info(f"{settings.APP_NAME} shutting down")


async def booking_engine_exception_handler(request: Request, exc: BookingEngineException):
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed input is a 400 validation_error, same shape as service-level validation"""
    return JSONResponse(
        status_code=400,
        content=jsonable_encoder({
            "detail": "Invalid request",
            "code": "validation_error",
            "details": {"errors": exc.errors()},
        }),
    )


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""

    app = FastAPI(
        title=settings.APP_NAME,
        description="Availability, booking and calendar sync for real-estate media admins",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "PUT"],
        allow_headers=["*"],
    )

    # Add custom middleware
    app.middleware("http")(request_context_middleware)

    app.add_exception_handler(BookingEngineException, booking_engine_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

    # Include routers
    app.include_router(health_router, prefix="/health", tags=["monitoring"])
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/")
    async def root():
        return {
            "service": settings.APP_NAME,
            "version": "0.1.0",
            "status": "running",
            "endpoints": {
                "api": "/api/v1",
                "health": "/health",
                "docs": "/docs" if settings.DEBUG else "disabled"
            }
        }

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "realty_booking.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
