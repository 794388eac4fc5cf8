#main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.requests.errors import RequestEngineError
from db import close_pool
from middleware import REQUEST_ID_HEADER, RequestContextMiddleware
from routes.auth import router as auth_router
from routes.health import router as health_router
from routes.requests import router as requests_router
from services.observability import configure_logging, get_request_id
from settings import settings, validate_env_settings

logger = logging.getLogger("gearguard")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # the pool opens lazily on first get_conn()
    yield
    close_pool()


def create_app() -> FastAPI:
    validate_env_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title="GearGuard API", version="1.0.0", lifespan=lifespan)
    app.add_middleware(RequestContextMiddleware)

    # -----------------------------
    # ROUTERS
    # -----------------------------
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(requests_router)

    @app.exception_handler(RequestEngineError)
    async def request_engine_error_handler(request: Request, exc: RequestEngineError):
        return JSONResponse(status_code=exc.http_status, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        req_id = getattr(request.state, "request_id", None) or get_request_id()
        logger.error(
            "unhandled_error path=%s type=%s request_id=%s",
            request.url.path,
            type(exc).__name__,
            req_id,
        )
        headers = {REQUEST_ID_HEADER: req_id} if req_id else None
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
            headers=headers,
        )

    return app


app = create_app()
