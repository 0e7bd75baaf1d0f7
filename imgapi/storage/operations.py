"""Contract between the request dispatcher and the image store.

Each operation receives the request, its decoded query parameters and
either the data directory or the resolved `{datadir}/{uuid}` path, and
returns the complete response (built with `send_response`) or raises
`ImgApiError`.
"""

from abc import ABC, abstractmethod
from pathlib import Path

from fastapi import Request
from starlette.datastructures import QueryParams
from starlette.responses import Response


class ImageOperations(ABC):

    # Collection level: receive the data directory
    @abstractmethod
    async def list_images(self, request: Request, params: QueryParams, datadir: Path) -> Response: ...

    @abstractmethod
    async def create_image(self, request: Request, params: QueryParams, datadir: Path) -> Response: ...

    # Image level: receive {datadir}/{uuid}
    @abstractmethod
    async def get_image(self, request: Request, params: QueryParams, path: Path) -> Response: ...

    @abstractmethod
    async def get_image_icon(self, request: Request, params: QueryParams, path: Path) -> Response: ...

    @abstractmethod
    async def get_image_file(self, request: Request, params: QueryParams, path: Path) -> Response: ...

    @abstractmethod
    async def delete_image(self, request: Request, params: QueryParams, path: Path) -> Response:
        """Remove the manifest together with the image file."""

    @abstractmethod
    async def delete_image_icon(self, request: Request, params: QueryParams, path: Path) -> Response: ...

    @abstractmethod
    async def add_image_icon(self, request: Request, params: QueryParams, path: Path) -> Response: ...

    @abstractmethod
    async def add_image_file(self, request: Request, params: QueryParams, path: Path) -> Response: ...

    @abstractmethod
    async def activate_image(self, request: Request, params: QueryParams, path: Path) -> Response: ...

    @abstractmethod
    async def update_image(self, request: Request, params: QueryParams, path: Path) -> Response: ...

    @abstractmethod
    async def disable_image(self, request: Request, params: QueryParams, path: Path) -> Response: ...

    @abstractmethod
    async def enable_image(self, request: Request, params: QueryParams, path: Path) -> Response: ...
