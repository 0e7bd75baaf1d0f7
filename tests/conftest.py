# Shared fixtures: a configured app with the image store replaced by mocks.

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from imgapi.core.config import Configuration, UserEntry
from imgapi.core.responses import send_response
from imgapi.main import create_app
from imgapi.storage.operations import ImageOperations

OPERATION_NAMES = sorted(ImageOperations.__abstractmethods__)

IMAGE_UUID = "0f6b3c2e-7d1a-4c5b-9e8f-1a2b3c4d5e6f"


@pytest.fixture
def config(tmp_path):
    return Configuration(
        datadir=tmp_path / "data",
        port=8080,
        userdb=(UserEntry(name="alice", password="secret"), UserEntry(name="bob", password="hunter2")),
    )


@pytest.fixture
def ops():
    mock = AsyncMock(spec=ImageOperations)
    for name in OPERATION_NAMES:
        getattr(mock, name).return_value = send_response(200, {"operation": name})
    return mock


@pytest.fixture
def client(config, ops):
    config.datadir.mkdir(parents=True, exist_ok=True)
    return TestClient(create_app(config, ops))


@pytest.fixture
def existing_image(config):
    path = config.datadir / IMAGE_UUID
    path.mkdir(parents=True)
    return path


@pytest.fixture
def awaited(ops):
    """Returns a callable listing the operations awaited so far."""
    return lambda: [name for name in OPERATION_NAMES if getattr(ops, name).await_count]
