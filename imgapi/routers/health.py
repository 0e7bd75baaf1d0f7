"""Liveness endpoint.

Exposes:
- GET /ping: answers while the server is up
"""

import os

from fastapi import APIRouter, Depends

from .. import __version__
from ..core.config import Configuration
from ..core.deps import get_config
from ..core.responses import send_response

router = APIRouter()


@router.get("/ping")
def ping(config: Configuration = Depends(get_config)):
    """Load-balancer friendly probe."""
    return send_response(200, {"ping": "pong", "pid": os.getpid(), "version": __version__},
                         config.server_name)
