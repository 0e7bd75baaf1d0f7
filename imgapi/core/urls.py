"""Tokenizer for `/images/:uuid[/file|/icon|/acl]` paths.

Only splits the path; whether a sub-resource is valid for a given method
is decided by the dispatcher.
"""

from typing import NamedTuple

IMAGES_PREFIX = "/images/"

FILE = "/file"
ICON = "/icon"
ACL = "/acl"


class InvalidURL(ValueError):
    pass


class ParsedResource(NamedTuple):
    uuid: str
    subresource: str  # raw tag including the leading slash, or ""


def split_images_url(path: str) -> ParsedResource:
    if not path.startswith(IMAGES_PREFIX):
        raise InvalidURL("Invalid url")

    rest = path[len(IMAGES_PREFIX):]
    uuid, slash, tail = rest.partition("/")
    if not uuid:
        raise InvalidURL("Invalid url")

    return ParsedResource(uuid, slash + tail)
