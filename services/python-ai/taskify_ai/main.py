import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import Settings, get_settings
from .core.exceptions import TaskifyError
from .core.logging import setup_logging
from .dependencies import Services, build_default_services
from .routers.chat import router as chat_router
from .routers.conversations import router as conversations_router
from .routers.execution import router as execution_router

logger = logging.getLogger(__name__)


def create_app(services: Optional[Services] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if app.state.services is None:
            app.state.services = build_default_services(settings)
        logger.info("%s ready, backend API at %s", settings.SERVICE_NAME, settings.BACKEND_API_URL)
        yield
        await app.state.services.aclose()

    app = FastAPI(title=settings.SERVICE_NAME, version=settings.SERVICE_VERSION, lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(TaskifyError)
    async def taskify_error_handler(request: Request, exc: TaskifyError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": exc.message, "errorCode": exc.error_code},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error"})

    @app.get("/health")
    async def health() -> Dict[str, str]:
        return {"status": "ok", "service": settings.SERVICE_NAME, "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.get("/")
    async def index() -> Dict[str, Any]:
        return {
            "name": settings.SERVICE_NAME,
            "version": settings.SERVICE_VERSION,
            "description": "Turns goals into plans and executes them against the productivity backend",
            "endpoints": {
                "health": "/health",
                "chat": "/api/chat",
                "conversations": "/api/conversations",
                "execute": "/api/execute",
            },
        }

    app.include_router(chat_router)
    app.include_router(conversations_router)
    app.include_router(execution_router)
    return app


setup_logging()
app = create_app()
