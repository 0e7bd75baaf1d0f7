"""Channel listing.

Exposes `/channels`, the configured image channels (empty when the server
does not use channels).
"""

from fastapi import APIRouter, Depends

from ..core.config import Configuration
from ..core.deps import get_config
from ..core.responses import send_response

router = APIRouter()


@router.get("/channels")
def list_channels(config: Configuration = Depends(get_config)):
    return send_response(200, [c.model_dump() for c in config.channels], config.server_name)
