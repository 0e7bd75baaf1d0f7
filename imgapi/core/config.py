"""Service-wide configuration.

The configuration is loaded once at startup from a JSON file and attached
to the application (`app.state.config`). It is frozen: request handlers
only ever read it.
"""

from pathlib import Path
from typing import Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_SERVER_NAME = "Norbye Public Images Repo"


class UserEntry(BaseModel):
    """A single account allowed to modify images (plaintext password)."""
    model_config = ConfigDict(frozen=True)

    name: str
    password: str


class Channel(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    default: bool = False


class Configuration(BaseModel):
    """
    Process-wide settings for the image server.

    `userdb` keeps the order from the file; authentication depends on it.
    """
    model_config = ConfigDict(frozen=True)

    datadir: Path = Field(Path("data"), description="Directory holding one sub-directory per image")
    port: int = Field(8080, ge=0, le=65535)
    host: str = "0.0.0.0"
    userdb: Tuple[UserEntry, ...] = ()
    channels: Tuple[Channel, ...] = ()
    server_name: str = DEFAULT_SERVER_NAME
    log_level: str = "INFO"

    def image_path(self, uuid: str) -> Path:
        return self.datadir / uuid


def load_configuration(path: Union[str, Path]) -> Configuration:
    """Read a JSON configuration file."""
    return Configuration.model_validate_json(Path(path).read_text(encoding="utf-8"))
