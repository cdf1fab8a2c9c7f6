import io
from unittest import mock

import pytest
from PIL import Image

from copilot_chat.core.errors import OcrNotSupportedError
from copilot_chat.services.ocr import AzureFormRecognizerOcrEngine, NullOcrEngine, TesseractOcrEngine
from tests.helpers import run


def _png() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), "white").save(buf, format="PNG")
    return buf.getvalue()


def test_null_engine_refuses():
    with pytest.raises(OcrNotSupportedError):
        run(NullOcrEngine().read_text(_png()))


def test_tesseract_engine_passes_language_and_tessdata_dir():
    engine = TesseractOcrEngine("/opt/tessdata", "eng")
    with mock.patch("copilot_chat.services.ocr.pytesseract.image_to_string", return_value=" Invoice 42\n") as ocr:
        text = run(engine.read_text(_png()))
    assert text == "Invoice 42"
    assert ocr.call_args.kwargs["lang"] == "eng"
    assert ocr.call_args.kwargs["config"] == '--tessdata-dir "/opt/tessdata"'


def test_azure_engine_reads_prebuilt_read_result():
    poller = mock.MagicMock()
    poller.result = mock.AsyncMock(return_value=mock.MagicMock(content="Hello world"))
    client = mock.MagicMock()
    client.begin_analyze_document = mock.AsyncMock(return_value=poller)
    client.close = mock.AsyncMock()

    engine = AzureFormRecognizerOcrEngine("https://fr.example.com/", "key", client=client)
    image = _png()
    assert run(engine.read_text(image)) == "Hello world"
    client.begin_analyze_document.assert_awaited_once_with("prebuilt-read", document=image)

    run(engine.close())
    client.close.assert_awaited_once()
