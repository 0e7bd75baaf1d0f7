"""Image endpoints.

Every request below `/images` enters through `images()`, which
authenticates the caller and routes by method:

- GET    /images                      list images
- GET    /images/:uuid[/icon|/file]   manifest, icon or file
- DELETE /images/:uuid[/icon]         delete image (and its file) or icon
- POST   /images                      create a new (unactivated) image
- POST   /images/:uuid/icon           add the image icon
- POST   /images/:uuid?action=...     activate / update / disable / enable
- PUT    /images/:uuid/file           upload the image file

Anything except GET needs valid Basic credentials.
"""

from pathlib import Path
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.security import HTTPBasicCredentials
from starlette.datastructures import QueryParams
from starlette.responses import Response

from ..core.actions import NOT_IMPLEMENTED, Action
from ..core.auth import authenticate
from ..core.config import Configuration
from ..core.deps import get_config, get_credentials, get_operations, parse_query
from ..core.errors import ErrorCode, ImgApiError
from ..core.responses import send_response
from ..core.urls import ACL, FILE, ICON, InvalidURL, ParsedResource, split_images_url
from ..storage.operations import ImageOperations

router = APIRouter()

COLLECTION = "/images"

# Operation names on ImageOperations for the implemented actions
_ACTION_OPERATIONS: Dict[Action, str] = {
    Action.ACTIVATE: "activate_image",
    Action.UPDATE: "update_image",
    Action.DISABLE: "disable_image",
    Action.ENABLE: "enable_image",
}


def _parse(path: str, message: Optional[str] = None) -> ParsedResource:
    try:
        return split_images_url(path)
    except InvalidURL as e:
        raise ImgApiError(ErrorCode.INVALID_PARAMETER, message or str(e))


async def _handle_get(request: Request, params: QueryParams, config: Configuration,
                      ops: ImageOperations) -> Response:
    if request.url.path == COLLECTION:
        return await ops.list_images(request, params, config.datadir)

    resource = _parse(request.url.path)
    filename = config.image_path(resource.uuid)

    # NOTE: inverted. An existing image directory answers ResourceNotFound.
    if filename.exists():
        raise ImgApiError(ErrorCode.RESOURCE_NOT_FOUND, f"Failed to locate {filename}")

    if resource.subresource == "":
        return await ops.get_image(request, params, filename)
    if resource.subresource == ICON:
        return await ops.get_image_icon(request, params, filename)
    if resource.subresource == FILE:
        return await ops.get_image_file(request, params, filename)

    raise ImgApiError(ErrorCode.RESOURCE_NOT_FOUND, "Requested resource does not exist")


async def _handle_delete(request: Request, params: QueryParams, config: Configuration,
                         ops: ImageOperations) -> Response:
    resource = _parse(request.url.path, "Failed to decode URL")
    path = config.image_path(resource.uuid)

    if resource.subresource == "":
        return await ops.delete_image(request, params, path)
    if resource.subresource == ICON:
        return await ops.delete_image_icon(request, params, path)

    raise ImgApiError(ErrorCode.RESOURCE_NOT_FOUND, "Resource does not exists")


async def _handle_post(request: Request, params: QueryParams, config: Configuration,
                       ops: ImageOperations) -> Response:
    if request.url.path == COLLECTION:
        return await ops.create_image(request, params, config.datadir)

    resource = _parse(request.url.path, "Failed to decode URL")
    path = config.image_path(resource.uuid)
    try:
        path.stat()
    except FileNotFoundError:
        raise ImgApiError(ErrorCode.RESOURCE_NOT_FOUND, "Failed to locate resource")
    except (OSError, ValueError) as e:
        raise ImgApiError(ErrorCode.INTERNAL_ERROR, f"Failed to locate resource {e}")

    if resource.subresource == ICON:
        return await ops.add_image_icon(request, params, path)
    if resource.subresource == ACL:
        raise ImgApiError(ErrorCode.INSUFFICIENT_SERVER_VERSION, "acl is not implemented")
    if resource.subresource == "":
        return await resolve_action(request, params, path, ops)

    raise ImgApiError(ErrorCode.RESOURCE_NOT_FOUND, "Invalid URL specified")


async def resolve_action(request: Request, params: QueryParams, path: Path,
                         ops: ImageOperations) -> Response:
    """Route `POST /images/:uuid` on the first `action` query value."""
    values = params.getlist("action")
    if not values:
        raise ImgApiError(ErrorCode.INVALID_PARAMETER, "action parameter not specified")

    name = values[0]
    action = Action.lookup(name)
    if action is None:
        raise ImgApiError(ErrorCode.INVALID_PARAMETER, f'Invalid action "{name}"')
    if action in NOT_IMPLEMENTED:
        raise ImgApiError(ErrorCode.INSUFFICIENT_SERVER_VERSION,
                          f'action="{name}" is not implemented')

    operation = getattr(ops, _ACTION_OPERATIONS[action])
    return await operation(request, params, path)


async def _handle_put(request: Request, params: QueryParams, config: Configuration,
                      ops: ImageOperations) -> Response:
    try:
        resource = split_images_url(request.url.path)
    except InvalidURL:
        resource = None
    if resource is None or resource.subresource != FILE:
        raise ImgApiError(ErrorCode.INVALID_PARAMETER, "Failed to decode URL")

    return await ops.add_image_file(request, params, config.image_path(resource.uuid))


_MUTATING = {
    "DELETE": _handle_delete,
    "POST": _handle_post,
    "PUT": _handle_put,
}


@router.api_route(COLLECTION, methods=["GET", *_MUTATING])
@router.api_route(COLLECTION + "/{resource:path}", methods=["GET", *_MUTATING])
async def images(
    request: Request,
    credentials: Optional[HTTPBasicCredentials] = Depends(get_credentials),
    config: Configuration = Depends(get_config),
    ops: ImageOperations = Depends(get_operations),
) -> Response:
    auth = authenticate(credentials, config.userdb)
    params = parse_query(request.url.query)

    method = request.method or "GET"
    if method == "GET":
        return await _handle_get(request, params, config, ops)

    if not auth.authenticated:
        return send_response(ErrorCode.UNAUTHORIZED.status, server_name=config.server_name)
    return await _MUTATING[method](request, params, config, ops)
