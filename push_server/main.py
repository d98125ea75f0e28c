import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from push_server.api.router import api_router
from push_server.core.config import get_settings
from push_server.db.session import create_schema, get_session_factory
from push_server.services.channels import NativeChannel, RelayChannel
from push_server.services.fanout import FanoutCoordinator
from push_server.services.tokens import SqlTokenStore, TokenStoreError
from push_server.services.validation import NotificationValidationError

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotificationValidationError)
    async def notification_validation_error(_: Request, exc: NotificationValidationError):
        return _error(400, str(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(_: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "invalid request") if errors else "invalid request"
        return _error(400, message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(_: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(TokenStoreError)
    async def token_store_error(_: Request, exc: TokenStoreError):
        logger.error("Token store unavailable: %s", exc)
        return _error(500, str(exc))

    @app.exception_handler(Exception)
    async def unexpected_error(_: Request, exc: Exception):
        logger.exception("Server error: %s", exc)
        return _error(500, "Internal server error")


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        if settings.auto_create_schema:
            create_schema()
        logger.info("%s started (env=%s)", settings.app_name, settings.app_env)
        yield

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    token_store = SqlTokenStore(get_session_factory())
    app.state.token_store = token_store
    app.state.fanout = FanoutCoordinator(
        token_store,
        native=NativeChannel.from_settings(settings),
        relay=RelayChannel.from_settings(settings),
    )

    _register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.api_v1_prefix)

    return app


app = create_app()
