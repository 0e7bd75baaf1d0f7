"""Response envelope shared by every endpoint.

All replies go through `send_response`, which sets the server header and
writes the status together with an optional indented JSON body.
"""

import json
from typing import Any, Dict, List, Optional, Union

from starlette.responses import Response

from .config import DEFAULT_SERVER_NAME
from .errors import ImgApiError

JSON_CONTENT_TYPE = "application/json; charset=utf-8"

Body = Union[Dict[str, Any], List[Any]]


class IndentedJSONResponse(Response):
    media_type = JSON_CONTENT_TYPE

    def render(self, content: Any) -> bytes:
        return json.dumps(content, indent=2, ensure_ascii=False, default=str).encode("utf-8")


def send_response(
    status: int,
    body: Optional[Body] = None,
    server_name: str = DEFAULT_SERVER_NAME,
) -> Response:
    """Build the one response for a request. `body=None` sends no body at all."""
    headers = {"Server": server_name}
    if body is None:
        return Response(status_code=status, headers=headers)
    return IndentedJSONResponse(body, status_code=status, headers=headers)


def error_response(exc: ImgApiError, server_name: str = DEFAULT_SERVER_NAME) -> Response:
    return send_response(exc.status, exc.body(), server_name)
