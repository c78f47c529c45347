"""
FastAPI application entry point.
"""

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hirepush.db import close_db, init_db
from hirepush.errors import StoreUnavailableError, SubscriptionValidationError
from hirepush.routers import push
from hirepush.settings import settings

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s" if settings.log_format == "text" else None,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting %s...", settings.app_name)
    await init_db()
    if settings.vapid_public_key:
        logger.info("VAPID public key (for the frontend): %s", settings.vapid_public_key)
    else:
        logger.error("VAPID_PUBLIC_KEY / VAPID_PRIVATE_KEY are not configured")
    yield
    logger.info("Shutting down %s...", settings.app_name)
    await close_db()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)


# Request ID middleware
@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add request ID to all requests for logging."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# Health check endpoint
@app.get("/healthz", tags=["health"])
@app.get("/health", tags=["health"])
async def healthz():
    """Health check endpoint for load balancers."""
    return {"status": "healthy"}


@app.get("/version", tags=["meta"])
async def version():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "build_sha": settings.build_sha,
    }


app.include_router(push.router)


@app.exception_handler(SubscriptionValidationError)
async def validation_error_handler(request: Request, exc: SubscriptionValidationError):
    logger.info("Rejected subscription: %s", exc)
    return JSONResponse({"detail": str(exc), "field": exc.field}, status_code=422)


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
    logger.error("Subscription store unavailable on %s %s", request.method, request.url.path)
    return JSONResponse({"detail": "Subscription store unavailable"}, status_code=503)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "hirepush.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
