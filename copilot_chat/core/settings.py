from __future__ import annotations

import json
from enum import Enum
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class _CaseInsensitiveEnum(str, Enum):
    """String enum whose values match regardless of case ('volatile' == 'Volatile')."""

    @classmethod
    def _missing_(cls, value: object):
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.lower():
                    return member
        return None


class OptionsModel(BaseModel):
    """
    Base for configuration sections.

    Every string value is stripped of surrounding whitespace when the section is
    loaded, so values pasted into .env files with stray spaces still bind.
    """

    @field_validator("*", mode="before")
    @classmethod
    def _strip_strings(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v


# Chat store

class ChatStoreType(_CaseInsensitiveEnum):
    VOLATILE = "Volatile"
    FILESYSTEM = "Filesystem"
    COSMOS = "Cosmos"


class FilesystemOptions(OptionsModel):
    """Settings for the JSON file chat store."""
    file_path: str = Field(
        ...,
        min_length=1,
        description="Base file path; one file per entity type is derived from it.",
    )


class CosmosOptions(OptionsModel):
    """Settings for the Azure Cosmos DB chat store."""
    connection_string: str = Field(..., min_length=1)
    database: str = Field(default="CopilotChat", min_length=1)
    chat_sessions_container: str = Field(default="chatsessions", min_length=1)
    chat_messages_container: str = Field(default="chatmessages", min_length=1)
    chat_memory_sources_container: str = Field(default="chatmemorysources", min_length=1)
    chat_participants_container: str = Field(default="chatparticipants", min_length=1)


class ChatStoreOptions(OptionsModel):
    type: ChatStoreType = Field(default=ChatStoreType.VOLATILE)
    filesystem: Optional[FilesystemOptions] = Field(default=None)
    cosmos: Optional[CosmosOptions] = Field(default=None)


# OCR support

class OcrSupportType(_CaseInsensitiveEnum):
    AZURE_FORM_RECOGNIZER = "AzureFormRecognizer"
    TESSERACT = "Tesseract"
    NONE = "None"


class AzureFormRecognizerOptions(OptionsModel):
    endpoint: str = Field(..., min_length=1)
    key: str = Field(..., min_length=1)


class TesseractOptions(OptionsModel):
    file_path: str = Field(..., min_length=1, description="Directory holding the traineddata files.")
    language: str = Field(..., min_length=1, description="Tesseract language code, e.g. 'eng'.")


class OcrSupportOptions(OptionsModel):
    type: OcrSupportType = Field(default=OcrSupportType.NONE)
    azure_form_recognizer: Optional[AzureFormRecognizerOptions] = Field(default=None)
    tesseract: Optional[TesseractOptions] = Field(default=None)


# Authentication

class AuthenticationType(_CaseInsensitiveEnum):
    AZURE_AD = "AzureAd"
    NONE = "None"


class AzureAdOptions(OptionsModel):
    instance: str = Field(default="https://login.microsoftonline.com/", min_length=1)
    tenant_id: str = Field(..., min_length=1)
    client_id: str = Field(..., min_length=1)
    scopes: str = Field(default="access_as_user")


class ChatAuthenticationOptions(OptionsModel):
    type: AuthenticationType = Field(default=AuthenticationType.NONE)
    azure_ad: Optional[AzureAdOptions] = Field(default=None)


# Prompts

class PromptsOptions(OptionsModel):
    system_description: str = Field(
        default=(
            "This is a chat between an intelligent AI bot named Copilot and one or more participants. "
            "SK stands for Semantic Kernel, the AI platform used to build the bot. "
            "Try to be concise with your answers, though it is not required."
        )
    )
    initial_bot_message: str = Field(
        default=(
            "Hello, thank you for democratizing AI's productivity benefits with open source! "
            "How can I help you today?"
        )
    )


class AppSettings(BaseSettings):
    """
    Application settings for the chat web API.

    Sections are read from environment variables (and .env), nested keys joined
    with a double underscore, e.g. CHAT_STORE__TYPE=Filesystem and
    CHAT_STORE__FILESYSTEM__FILE_PATH=./data/chatstore.json.
    """

    # FastAPI metadata
    APP_NAME: str = Field(default="Copilot Chat Web API")
    APP_DESCRIPTION: str = Field(
        default="Chat session, message and participant storage for Copilot Chat."
    )
    APP_VERSION: str = Field(default="0.1.0")

    LOG_LEVEL: str = Field(default="INFO", description="Root logging level name.")

    # CORS; empty disables the middleware
    ALLOWED_ORIGINS: Annotated[List[str], NoDecode] = Field(
        default_factory=list,
        description="Comma-separated list or JSON array of allowed origins.",
    )

    CHAT_STORE: ChatStoreOptions = Field(default_factory=ChatStoreOptions)
    OCR_SUPPORT: OcrSupportOptions = Field(default_factory=OcrSupportOptions)
    AUTHENTICATION: ChatAuthenticationOptions = Field(default_factory=ChatAuthenticationOptions)
    PROMPTS: PromptsOptions = Field(default_factory=PromptsOptions)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def _parse_allowed_origins(cls, v):
        """
        Accept both JSON array format and comma-separated formats for allowed origins.
        """
        if v is None:
            return []
        if isinstance(v, str):
            v = v.strip()
            if v.startswith("["):
                return [str(p).strip() for p in json.loads(v) if str(p).strip()]
            return [p.strip() for p in v.split(",") if p.strip()]
        if isinstance(v, list):
            return [str(p).strip() for p in v if str(p).strip()]
        return []


# PUBLIC_INTERFACE
def get_app_settings() -> AppSettings:
    """
    Return a new AppSettings instance populated from environment variables.

    Note:
      Settings are read once by create_app and handed to the services container;
      nothing else should need to call this.
    """
    return AppSettings()
