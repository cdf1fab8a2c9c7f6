import pytest
from pydantic import ValidationError

from copilot_chat.core.settings import (
    AuthenticationType,
    ChatStoreType,
    OcrSupportType,
)
from tests.helpers import make_settings


def test_defaults_are_volatile_without_ocr_or_auth():
    settings = make_settings()
    assert settings.CHAT_STORE.type == ChatStoreType.VOLATILE
    assert settings.OCR_SUPPORT.type == OcrSupportType.NONE
    assert settings.AUTHENTICATION.type == AuthenticationType.NONE
    assert settings.ALLOWED_ORIGINS == []


def test_nested_env_sections_are_bound_and_trimmed(monkeypatch):
    monkeypatch.setenv("CHAT_STORE__TYPE", "  filesystem ")
    monkeypatch.setenv("CHAT_STORE__FILESYSTEM__FILE_PATH", "  ./data/chatstore.json\t")
    monkeypatch.setenv("OCR_SUPPORT__TYPE", "Tesseract")
    monkeypatch.setenv("OCR_SUPPORT__TESSERACT__FILE_PATH", "./data ")
    monkeypatch.setenv("OCR_SUPPORT__TESSERACT__LANGUAGE", " eng")

    settings = make_settings()

    assert settings.CHAT_STORE.type == ChatStoreType.FILESYSTEM
    assert settings.CHAT_STORE.filesystem.file_path == "./data/chatstore.json"
    assert settings.OCR_SUPPORT.tesseract.file_path == "./data"
    assert settings.OCR_SUPPORT.tesseract.language == "eng"


def test_cosmos_section_defaults_container_names(monkeypatch):
    monkeypatch.setenv("CHAT_STORE__TYPE", "Cosmos")
    monkeypatch.setenv("CHAT_STORE__COSMOS__CONNECTION_STRING", "AccountEndpoint=https://x/;AccountKey=k;")
    cosmos = make_settings().CHAT_STORE.cosmos
    assert cosmos.database == "CopilotChat"
    assert cosmos.chat_sessions_container == "chatsessions"
    assert cosmos.chat_participants_container == "chatparticipants"


def test_allowed_origins_accepts_comma_separated_and_json(monkeypatch):
    monkeypatch.setenv("ALLOWED_ORIGINS", "http://localhost:3000, https://chat.example.com")
    assert make_settings().ALLOWED_ORIGINS == ["http://localhost:3000", "https://chat.example.com"]
    monkeypatch.setenv("ALLOWED_ORIGINS", '["http://localhost:3000"]')
    assert make_settings().ALLOWED_ORIGINS == ["http://localhost:3000"]


def test_unknown_store_type_is_rejected(monkeypatch):
    monkeypatch.setenv("CHAT_STORE__TYPE", "Redis")
    with pytest.raises(ValidationError):
        make_settings()


def test_blank_required_value_is_rejected(monkeypatch):
    monkeypatch.setenv("CHAT_STORE__FILESYSTEM__FILE_PATH", "   ")
    with pytest.raises(ValidationError):
        make_settings()
