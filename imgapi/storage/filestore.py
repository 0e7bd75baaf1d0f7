"""Filesystem-backed image store.

Each image lives in its own directory under the data directory:

    {datadir}/{uuid}/manifest.json   image manifest
    {datadir}/{uuid}/file            uploaded image file
    {datadir}/{uuid}/icon            optional icon

Manifests are plain JSON; every mutation rewrites the whole file through a
temporary file and `os.replace`.
"""

import hashlib
import json
import logging
import os
import shutil
import uuid as uuidlib
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import Request
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import QueryParams
from starlette.responses import FileResponse, Response

from ..core.errors import ErrorCode, ImgApiError
from ..core.responses import send_response
from .operations import ImageOperations

logger = logging.getLogger(__name__)

MANIFEST = "manifest.json"
FILE = "file"
ICON = "icon"

# Fields a client may change with action=update
MUTABLE_FIELDS = frozenset({
    "name", "version", "description", "homepage", "os", "type", "public", "tags", "owner",
})

# Query parameters that filter ListImages by exact match
LIST_FILTERS = ("name", "version", "owner", "os", "type")

STATES = ("active", "unactivated", "disabled", "all")


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _canonical_uuid(value: str) -> Optional[str]:
    """Lower-case dashed form of `value`, or None if it is not a UUID."""
    try:
        return str(uuidlib.UUID(value))
    except ValueError:
        return None


def _is_uuid(value: str) -> bool:
    """Only the canonical spelling names an image directory."""
    return _canonical_uuid(value) == value


def _state_of(manifest: Dict[str, Any]) -> str:
    if manifest.get("disabled"):
        return "disabled"
    return "active" if manifest.get("activated") else "unactivated"


def _as_bool(value: str) -> bool:
    if value in ("true", "1"):
        return True
    if value in ("false", "0"):
        return False
    raise ImgApiError(ErrorCode.INVALID_PARAMETER, f'Invalid boolean "{value}"')


class FileImageOperations(ImageOperations):
    """
    `ImageOperations` over plain files.

    Args:
        server_name: value of the Server header on every response
    """

    def __init__(self, server_name: str):
        self.server_name = server_name

    # ----------------------------------------------------------------- helpers

    def _send(self, status: int, body=None) -> Response:
        return send_response(status, body, self.server_name)

    def _image_dir(self, path: Path) -> Path:
        if not _is_uuid(path.name):
            raise ImgApiError(ErrorCode.RESOURCE_NOT_FOUND, f"Invalid image uuid {path.name}")
        return path

    def _load(self, path: Path) -> Dict[str, Any]:
        manifest_path = self._image_dir(path) / MANIFEST
        try:
            return json.loads(manifest_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise ImgApiError(ErrorCode.RESOURCE_NOT_FOUND, f"Image {path.name} does not exist")
        except (OSError, ValueError) as e:
            raise ImgApiError(ErrorCode.INTERNAL_ERROR, f"Failed to read manifest for {path.name}: {e}")

    def _store(self, path: Path, manifest: Dict[str, Any]) -> None:
        manifest["state"] = _state_of(manifest)
        tmp = path / (MANIFEST + ".tmp")
        try:
            tmp.write_text(json.dumps(manifest, indent=2), encoding="utf-8")
            os.replace(tmp, path / MANIFEST)
        except OSError as e:
            raise ImgApiError(ErrorCode.INTERNAL_ERROR, f"Failed to store manifest for {path.name}: {e}")

    async def _json_body(self, request: Request) -> Dict[str, Any]:
        try:
            body = await request.json()
        except ValueError:
            raise ImgApiError(ErrorCode.INVALID_PARAMETER, "Request body is not valid JSON")
        if not isinstance(body, dict):
            raise ImgApiError(ErrorCode.INVALID_PARAMETER, "Request body must be a JSON object")
        return body

    def _public(self, manifest: Dict[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in manifest.items() if not k.startswith("_")}

    # -------------------------------------------------------------- collection

    async def list_images(self, request: Request, params: QueryParams, datadir: Path) -> Response:
        state = params.get("state", "active")
        if state not in STATES:
            raise ImgApiError(ErrorCode.INVALID_PARAMETER, f'Invalid state "{state}"')
        public = _as_bool(params["public"]) if "public" in params else None

        images: List[Dict[str, Any]] = []
        if datadir.is_dir():
            for entry in sorted(datadir.iterdir()):
                if not (entry / MANIFEST).is_file() or not _is_uuid(entry.name):
                    continue
                try:
                    manifest = self._load(entry)
                except ImgApiError as e:
                    logger.warning("Skipping image %s: %s", entry.name, e.message)
                    continue
                if state != "all" and _state_of(manifest) != state:
                    continue
                if public is not None and bool(manifest.get("public")) != public:
                    continue
                if any(key in params and str(manifest.get(key)) != params[key] for key in LIST_FILTERS):
                    continue
                images.append(self._public(manifest))

        images.sort(key=lambda m: (m.get("published_at") or "", m["uuid"]))
        return self._send(200, images)

    async def create_image(self, request: Request, params: QueryParams, datadir: Path) -> Response:
        body = await self._json_body(request)
        for field in ("name", "version"):
            if not body.get(field):
                raise ImgApiError(ErrorCode.INVALID_PARAMETER, f'"{field}" is required')

        requested = str(body.get("uuid") or uuidlib.uuid4())
        image_uuid = _canonical_uuid(requested)
        if image_uuid is None:
            raise ImgApiError(ErrorCode.INVALID_PARAMETER, f'Invalid uuid "{requested}"')

        path = datadir / image_uuid
        try:
            path.mkdir(parents=True)
        except FileExistsError:
            raise ImgApiError(ErrorCode.INVALID_PARAMETER, f"Image {image_uuid} already exists")
        except OSError as e:
            raise ImgApiError(ErrorCode.INTERNAL_ERROR, f"Failed to create {path}: {e}")

        manifest = {k: v for k, v in body.items() if k in MUTABLE_FIELDS}
        manifest.update({
            "v": 2,
            "uuid": image_uuid,
            "public": bool(body.get("public", False)),
            "activated": False,
            "disabled": False,
            "published_at": None,
            "files": [],
            "icon": False,
        })
        self._store(path, manifest)
        logger.info("Created image %s (%s %s)", image_uuid, manifest["name"], manifest["version"])
        return self._send(200, self._public(manifest))

    # ------------------------------------------------------------------ reads

    async def get_image(self, request: Request, params: QueryParams, path: Path) -> Response:
        return self._send(200, self._public(self._load(path)))

    async def get_image_file(self, request: Request, params: QueryParams, path: Path) -> Response:
        manifest = self._load(path)
        target = path / FILE
        if not manifest.get("files") or not target.is_file():
            raise ImgApiError(ErrorCode.RESOURCE_NOT_FOUND, f"Image {path.name} has no file")
        return FileResponse(target, media_type="application/octet-stream",
                            headers={"Server": self.server_name})

    async def get_image_icon(self, request: Request, params: QueryParams, path: Path) -> Response:
        manifest = self._load(path)
        target = path / ICON
        if not manifest.get("icon") or not target.is_file():
            raise ImgApiError(ErrorCode.RESOURCE_NOT_FOUND, f"Image {path.name} has no icon")
        return FileResponse(target, media_type=manifest.get("_icon_content_type", "image/png"),
                            headers={"Server": self.server_name})

    # --------------------------------------------------------------- deletes

    async def delete_image(self, request: Request, params: QueryParams, path: Path) -> Response:
        self._load(path)
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise ImgApiError(ErrorCode.INTERNAL_ERROR, f"Failed to delete {path.name}: {e}")
        logger.info("Deleted image %s", path.name)
        return self._send(204)

    async def delete_image_icon(self, request: Request, params: QueryParams, path: Path) -> Response:
        manifest = self._load(path)
        if not manifest.get("icon"):
            raise ImgApiError(ErrorCode.RESOURCE_NOT_FOUND, f"Image {path.name} has no icon")
        (path / ICON).unlink(missing_ok=True)
        manifest["icon"] = False
        manifest.pop("_icon_content_type", None)
        self._store(path, manifest)
        return self._send(200, self._public(manifest))

    # ---------------------------------------------------------------- uploads

    async def add_image_file(self, request: Request, params: QueryParams, path: Path) -> Response:
        manifest = self._load(path)
        if manifest.get("activated"):
            raise ImgApiError(ErrorCode.INVALID_PARAMETER,
                              f"Image {path.name} is activated; its file cannot change")

        target = path / FILE
        tmp = path / (FILE + ".tmp")
        digest = hashlib.sha1()
        size = 0
        # tmp never outlives the request
        try:
            fh = await run_in_threadpool(open, tmp, "wb")
            try:
                async for chunk in request.stream():
                    digest.update(chunk)
                    size += len(chunk)
                    await run_in_threadpool(fh.write, chunk)
            finally:
                await run_in_threadpool(fh.close)

            sha1 = digest.hexdigest()
            expected = params.get("sha1")
            if expected and expected != sha1:
                raise ImgApiError(ErrorCode.INVALID_PARAMETER,
                                  f'sha1 mismatch: expected "{expected}", got "{sha1}"')

            await run_in_threadpool(os.replace, tmp, target)
        except OSError as e:
            raise ImgApiError(ErrorCode.INTERNAL_ERROR, f"Failed to store file for {path.name}: {e}")
        finally:
            tmp.unlink(missing_ok=True)

        manifest["files"] = [{
            "sha1": sha1,
            "size": size,
            "compression": params.get("compression", "none"),
        }]
        self._store(path, manifest)
        logger.info("Stored %d byte file for image %s", size, path.name)
        return self._send(200, self._public(manifest))

    async def add_image_icon(self, request: Request, params: QueryParams, path: Path) -> Response:
        manifest = self._load(path)
        data = await request.body()
        if not data:
            raise ImgApiError(ErrorCode.INVALID_PARAMETER, "Icon body is empty")
        try:
            (path / ICON).write_bytes(data)
        except OSError as e:
            raise ImgApiError(ErrorCode.INTERNAL_ERROR, f"Failed to store icon for {path.name}: {e}")

        manifest["icon"] = True
        manifest["_icon_content_type"] = request.headers.get("content-type", "image/png")
        self._store(path, manifest)
        return self._send(200, self._public(manifest))

    # ---------------------------------------------------------------- actions

    async def activate_image(self, request: Request, params: QueryParams, path: Path) -> Response:
        manifest = self._load(path)
        if manifest.get("activated"):
            raise ImgApiError(ErrorCode.INVALID_PARAMETER, f"Image {path.name} is already activated")
        if not manifest.get("files"):
            raise ImgApiError(ErrorCode.INVALID_PARAMETER,
                              f"Image {path.name} cannot be activated without a file")

        manifest["activated"] = True
        manifest["published_at"] = _now()
        self._store(path, manifest)
        logger.info("Activated image %s", path.name)
        return self._send(200, self._public(manifest))

    async def update_image(self, request: Request, params: QueryParams, path: Path) -> Response:
        manifest = self._load(path)
        body = await self._json_body(request)
        immutable = sorted(set(body) - MUTABLE_FIELDS)
        if immutable:
            raise ImgApiError(ErrorCode.INVALID_PARAMETER,
                              f"Cannot update fields: {', '.join(immutable)}")

        manifest.update(body)
        self._store(path, manifest)
        return self._send(200, self._public(manifest))

    async def disable_image(self, request: Request, params: QueryParams, path: Path) -> Response:
        return self._set_disabled(path, True)

    async def enable_image(self, request: Request, params: QueryParams, path: Path) -> Response:
        return self._set_disabled(path, False)

    def _set_disabled(self, path: Path, disabled: bool) -> Response:
        manifest = self._load(path)
        manifest["disabled"] = disabled
        self._store(path, manifest)
        return self._send(200, self._public(manifest))
