"""Values accepted by `POST /images/:uuid?action=...`."""

from enum import Enum
from typing import Optional


class Action(str, Enum):
    ACTIVATE = "activate"
    UPDATE = "update"
    DISABLE = "disable"
    ENABLE = "enable"
    EXPORT = "export"
    COPY_REMOTE = "copy-remote"
    IMPORT_REMOTE = "import-remote"
    IMPORT = "import"
    CHANNEL_ADD = "channel-add"

    @classmethod
    def lookup(cls, value: str) -> Optional["Action"]:
        """Exact, case-sensitive match; None for unknown actions."""
        try:
            return cls(value)
        except ValueError:
            return None


# Recognized but answered with InsufficientServerVersion
NOT_IMPLEMENTED = frozenset({
    Action.EXPORT,
    Action.COPY_REMOTE,
    Action.IMPORT_REMOTE,
    Action.IMPORT,
    Action.CHANNEL_ADD,
})
