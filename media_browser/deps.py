from __future__ import annotations

from fastapi import Request

from .services.library import MediaLibrary


def get_library(request: Request) -> MediaLibrary:
    return request.app.state.library
