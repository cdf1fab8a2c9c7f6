from __future__ import annotations

import asyncio
import io
import logging
from typing import Optional, Protocol

import pytesseract
from azure.ai.formrecognizer.aio import DocumentAnalysisClient
from azure.core.credentials import AzureKeyCredential
from PIL import Image

from copilot_chat.core.errors import OcrNotSupportedError

logger = logging.getLogger(__name__)


class OcrEngine(Protocol):
    """Extracts text from an image."""

    async def read_text(self, image: bytes) -> str:
        ...

    async def close(self) -> None:
        ...


class AzureFormRecognizerOcrEngine:
    """OCR through the Azure Form Recognizer 'prebuilt-read' model."""

    MODEL_ID = "prebuilt-read"

    def __init__(self, endpoint: str, key: str, client: Optional[DocumentAnalysisClient] = None) -> None:
        self.endpoint = endpoint
        self._client = client or DocumentAnalysisClient(endpoint, AzureKeyCredential(key))

    async def read_text(self, image: bytes) -> str:
        poller = await self._client.begin_analyze_document(self.MODEL_ID, document=image)
        result = await poller.result()
        return result.content or ""

    async def close(self) -> None:
        await self._client.close()


class TesseractOcrEngine:
    """
    OCR through a local Tesseract install.

    `tessdata_dir` points at the directory holding '<language>.traineddata'.
    Recognition is blocking, so it runs in a worker thread.
    """

    def __init__(self, tessdata_dir: str, language: str) -> None:
        self.tessdata_dir = tessdata_dir
        self.language = language

    def _recognize(self, image: bytes) -> str:
        with Image.open(io.BytesIO(image)) as img:
            return pytesseract.image_to_string(
                img,
                lang=self.language,
                config=f'--tessdata-dir "{self.tessdata_dir}"',
            )

    async def read_text(self, image: bytes) -> str:
        text = await asyncio.to_thread(self._recognize, image)
        return text.strip()

    async def close(self) -> None:
        return None


class NullOcrEngine:
    """Used when OCR support is disabled."""

    async def read_text(self, image: bytes) -> str:
        raise OcrNotSupportedError("OCR support is not enabled; set OCR_SUPPORT__TYPE to enable it.")

    async def close(self) -> None:
        return None
