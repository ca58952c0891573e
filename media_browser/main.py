from __future__ import annotations

import logging
import os
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, parse_extensions, settings as default_settings
from .routers import library
from .services.library import MediaLibrary

logger = logging.getLogger(__name__)

_SECURITY_HEADERS = {
    'X-Content-Type-Options': 'nosniff',
    'Referrer-Policy': 'strict-origin-when-cross-origin',
}


def _parse_cors_origins(value: str) -> list[str]:
    return [origin.strip() for origin in value.split(',') if origin.strip()]


def _apply_security_headers(response):
    for key, value in _SECURITY_HEADERS.items():
        response.headers[key] = value
    return response


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else 'unknown'


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )


async def request_middleware(request: Request, call_next):
    start = time.monotonic()
    response = await call_next(request)
    elapsed_ms = (time.monotonic() - start) * 1000
    logger.info('%s %s %s %s in %.1fms', _client_ip(request), request.method, request.url.path, response.status_code, elapsed_ms)
    return _apply_security_headers(response)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return _apply_security_headers(JSONResponse({'detail': 'invalid request'}, status_code=400))


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error('Unhandled error on %s %s', request.method, request.url.path, exc_info=exc)
    return _apply_security_headers(JSONResponse({'detail': 'Internal server error. Please try again.'}, status_code=500))


def create_app(config: Settings | None = None) -> FastAPI:
    config = config or default_settings
    configure_logging(config.log_level)

    root = os.path.abspath(config.media_root)
    if not os.path.isdir(root):
        raise RuntimeError(f'Media root {root!r} not found. Create it and add videos.')

    app = FastAPI(title=config.app_name)
    app.state.settings = config
    app.state.library = MediaLibrary(
        root,
        extensions=parse_extensions(config.media_extensions),
        chunk_size=config.stream_chunk_size,
    )

    cors_origins = _parse_cors_origins(config.cors_origins)
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_methods=['GET', 'POST', 'OPTIONS'],
            allow_headers=['Content-Type', 'Range'],
            expose_headers=['Accept-Ranges', 'Content-Length', 'Content-Range'],
        )

    app.middleware('http')(request_middleware)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.get('/healthz')
    def healthz():
        return {'ok': True}

    app.include_router(library.router)
    logger.info('Serving media from %s', root)
    return app
