"""App factory and ASGI entrypoint for the image server.

- Attaches the configuration and the image store to `app.state`
- Renders every error through the `{"code", "message"}` envelope
- Registers routers for images, channels and ping
- Creates the data directory on startup if it is missing
"""

import logging
import os
from http import HTTPStatus
from typing import Optional

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .core.config import Configuration, load_configuration
from .core.errors import ErrorCode, ImgApiError
from .core.responses import error_response, send_response
from .routers import channels, health, images
from .storage.filestore import FileImageOperations
from .storage.operations import ImageOperations

logger = logging.getLogger(__name__)

# Framework errors that have a matching symbolic code
_HTTP_CODES = {
    401: ErrorCode.UNAUTHORIZED,
    404: ErrorCode.RESOURCE_NOT_FOUND,
    422: ErrorCode.INVALID_PARAMETER,
    500: ErrorCode.INTERNAL_ERROR,
}


def _server_name(request: Request) -> str:
    return request.app.state.config.server_name


def create_app(config: Configuration, operations: Optional[ImageOperations] = None) -> FastAPI:
    app = FastAPI(
        title="Public Images API",
        version=__version__,
        description="Store and serve image manifests, files and icons",
    )
    app.state.config = config
    app.state.operations = operations or FileImageOperations(config.server_name)

    @app.exception_handler(ImgApiError)
    async def _imgapi_error(request: Request, exc: ImgApiError):
        return error_response(exc, _server_name(request))

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        code = _HTTP_CODES.get(exc.status_code)
        name = code.value if code else HTTPStatus(exc.status_code).phrase.replace(" ", "")
        return send_response(exc.status_code, {"code": name, "message": str(exc.detail)},
                             _server_name(request))

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error for %s %s", request.method, request.url.path)
        return error_response(ImgApiError(ErrorCode.INTERNAL_ERROR, "Internal error"),
                              _server_name(request))

    # Register routers
    app.include_router(images.router)
    app.include_router(channels.router)
    app.include_router(health.router)

    # Data directory must exist before the first request
    @app.on_event("startup")
    def _startup_create_datadir():
        if not config.datadir.exists():
            logger.info("Creating data directory %s", config.datadir)
            config.datadir.mkdir(parents=True, exist_ok=True)

    return app


def app_from_env() -> FastAPI:
    """Build the app from the JSON file named by $IMGAPI_CONFIG (defaults otherwise)."""
    path = os.environ.get("IMGAPI_CONFIG")
    return create_app(load_configuration(path) if path else Configuration())


# ASGI factory (uvicorn: `uvicorn imgapi.main:app_from_env --factory`)
