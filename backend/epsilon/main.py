"""Main FastAPI application with server/companion mode switching."""
import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .database import init_db, close_db
from .routers import (
    medicine_router,
    emergency_actions_router,
    devices_router,
    users_router,
    report_router,
    falls_router,
    push_router,
)
from .services.push_sender import push_sender_service, PushConfig
from .services.companion import companion_service
from .services.realtime import fall_channel_manager

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Background companion task (companion mode)
companion_task = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    global companion_task
    logger.info(f"Starting Epsilon in {settings.mode.upper()} mode")

    if settings.mode == "server":
        await init_db()
        logger.info("Database initialized")

        push_sender_service.configure(PushConfig.from_settings())

    elif settings.mode == "companion":
        companion_task = asyncio.create_task(companion_service.run())
        logger.info("Companion service started")

    yield

    # Shutdown
    if settings.mode == "server":
        await close_db()
    elif settings.mode == "companion":
        companion_service.stop()
        if companion_task:
            companion_task.cancel()

    logger.info("Shutdown complete")


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ())[1:])
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Epsilon",
        description="Fall detection, emergency calling and medication reminders",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, restrict to your domain
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    if settings.mode == "server":
        app.include_router(medicine_router)
        app.include_router(emergency_actions_router)
        app.include_router(devices_router)
        app.include_router(users_router)
        app.include_router(report_router)
        app.include_router(falls_router)
    elif settings.mode == "companion":
        app.include_router(push_router)

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        health = {
            "status": "healthy",
            "mode": settings.mode,
        }
        if settings.mode == "server":
            health["push"] = push_sender_service.available
            health["fallListeners"] = fall_channel_manager.connection_count
        else:
            health["fallChannel"] = companion_service.fall_monitor.subscribed
        return health

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.web_port)
