"""
Shared pytest fixtures.

Settings are always built with `_env_file=None` so a developer's local .env
never leaks into test runs.
"""

import pytest
from fastapi.testclient import TestClient

from copilot_chat.api.main import create_app
from copilot_chat.core.settings import AppSettings, ChatStoreOptions, ChatStoreType, FilesystemOptions
from tests.helpers import make_settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in ("CHAT_STORE__TYPE", "OCR_SUPPORT__TYPE", "AUTHENTICATION__TYPE", "ALLOWED_ORIGINS"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def settings() -> AppSettings:
    return make_settings()


@pytest.fixture
def filesystem_settings(tmp_path) -> AppSettings:
    return make_settings(
        CHAT_STORE=ChatStoreOptions(
            type=ChatStoreType.FILESYSTEM,
            filesystem=FilesystemOptions(file_path=str(tmp_path / "chats.json")),
        )
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def services(app):
    return app.state.services


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
