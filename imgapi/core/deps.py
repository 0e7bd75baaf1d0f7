# Shared FastAPI dependencies for the image routes.

import re
from typing import Optional
from urllib.parse import parse_qsl

from fastapi import HTTPException, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from starlette.datastructures import QueryParams

from ..storage.operations import ImageOperations
from .config import Configuration
from .errors import ErrorCode, ImgApiError

_basic = HTTPBasic(auto_error=False)

# "%" not followed by two hex digits
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def get_config(request: Request) -> Configuration:
    return request.app.state.config


def get_operations(request: Request) -> ImageOperations:
    return request.app.state.operations


async def get_credentials(request: Request) -> Optional[HTTPBasicCredentials]:
    """Basic credentials from the request, or None when absent or unreadable."""
    try:
        return await _basic(request)
    except HTTPException:
        # A header that does not decode counts as no credentials.
        return None


def parse_query(raw: str) -> QueryParams:
    """Decode the raw query string, keeping repeated keys in order.

    Malformed percent-escapes and escapes that are not UTF-8 are rejected.
    """
    if _BAD_ESCAPE.search(raw):
        raise ImgApiError(ErrorCode.INTERNAL_ERROR, "Failed to parse query")
    try:
        pairs = parse_qsl(raw, keep_blank_values=True, errors="strict")
    except (UnicodeDecodeError, ValueError):
        raise ImgApiError(ErrorCode.INTERNAL_ERROR, "Failed to parse query")
    return QueryParams(pairs)
