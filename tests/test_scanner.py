"""Tests for the end-to-end card scanning pipeline."""

import asyncio
import json

import httpx
import pytest
from unittest.mock import AsyncMock, Mock

from card_ocr.config import Config
from card_ocr.errors import (
    EmptyResponseError,
    InvalidResponseError,
    MissingCredentialError,
    NetworkError,
    UnsupportedTypeError,
    UpstreamError,
)
from card_ocr.extractor.gemini import GeminiExtractor
from card_ocr.models.contact import EncodedImage, ParsedContact
from card_ocr.scanner import CardScanner, extract_contact

from conftest import IMAGE_URL


def _config(api_key="test-key"):
    return Config(api_key=api_key)


def _extract(url, client, api_key="test-key"):
    return asyncio.run(extract_contact(url, config=_config(api_key), client=client))


class TestExtractContact:
    """Test the caller-facing extract_contact function."""

    def test_image_not_found_skips_vision_call(self, services, client):
        """Test a 404 image raises InvalidResponseError without calling Gemini."""
        services.image_status = 404

        with pytest.raises(InvalidResponseError) as exc_info:
            _extract(IMAGE_URL, client)

        assert exc_info.value.status_code == 404
        assert len(services.image_requests) == 1
        assert services.gemini_requests == []

    def test_text_content_type_rejected(self, services, client):
        """Test a text/plain response raises UnsupportedTypeError."""
        services.image_type = "text/plain"
        services.image_body = b"not an image"

        with pytest.raises(UnsupportedTypeError):
            _extract(IMAGE_URL, client)

        assert services.gemini_requests == []

    def test_json_inside_commentary(self, services, client):
        """Test JSON wrapped in commentary is found and other fields are absent."""
        services.set_model_text(
            'Here is the result: {"name":"Jane Doe","email":"jane@x.com"} Thanks!'
        )

        contact = _extract(IMAGE_URL, client)

        assert contact == ParsedContact(name="Jane Doe", email="jane@x.com")
        assert contact.company is None
        assert contact.phone is None
        assert contact.services is None
        assert contact.address is None

    def test_null_phone_is_absent(self, services, client):
        """Test a null phone becomes an absent field, not the string 'null'."""
        services.set_model_text(
            '{"name": "Jane Doe", "phone": null, "company": "Acme", "email": "null"}'
        )

        contact = _extract(IMAGE_URL, client)

        assert contact.phone is None
        assert contact.email is None
        assert contact.name == "Jane Doe"
        assert contact.company == "Acme"

    def test_no_json_uses_fallback_parser(self, services, client):
        """Test text without JSON is parsed heuristically instead of raising."""
        services.set_model_text("Jane Doe\nSenior Designer\njane@x.com")

        contact = _extract(IMAGE_URL, client)

        assert contact.name == "Jane Doe"
        assert contact.email == "jane@x.com"
        assert contact.services == "Senior Designer"

    def test_malformed_json_uses_fallback_parser(self, services, client):
        """Test malformed JSON is absorbed and the raw text is parsed."""
        services.set_model_text('{"name": "Jane Doe", "email": "jane@x.com",,}')

        contact = _extract(IMAGE_URL, client)

        assert contact.email == "jane@x.com"

    def test_repeated_calls_are_identical(self, services, client):
        """Test two calls with the same model output give identical contacts."""
        services.set_model_text('{"name": "Jane Doe", "phone": "+1 555 0100"}')

        async def twice():
            first = await extract_contact(IMAGE_URL, config=_config(), client=client)
            second = await extract_contact(IMAGE_URL, config=_config(), client=client)
            return first, second

        first, second = asyncio.run(twice())

        assert first == second
        assert first.model_dump() == second.model_dump()

    def test_missing_api_key_makes_no_requests(self, services, client):
        """Test a missing API key fails before any network activity."""
        with pytest.raises(MissingCredentialError):
            _extract(IMAGE_URL, client, api_key=None)

        assert services.requests == []

    def test_missing_api_key_error_stage(self, services, client):
        """Test the credential error reports the config stage."""
        with pytest.raises(MissingCredentialError) as exc_info:
            _extract(IMAGE_URL, client, api_key="")

        assert exc_info.value.stage == "config"

    def test_upstream_failure(self, services, client):
        """Test a Gemini error status raises UpstreamError with code and message."""
        services.gemini_status = 403
        services.gemini_body = {"error": {"code": 403, "message": "API key not valid"}}

        with pytest.raises(UpstreamError) as exc_info:
            _extract(IMAGE_URL, client)

        assert exc_info.value.status_code == 403
        assert exc_info.value.message == "API key not valid"
        assert "403" in str(exc_info.value)

    def test_empty_model_response(self, services, client):
        """Test a successful call with no text raises EmptyResponseError."""
        services.gemini_body = {"candidates": []}

        with pytest.raises(EmptyResponseError):
            _extract(IMAGE_URL, client)

    def test_reads_api_key_from_environment(self, services, client, monkeypatch):
        """Test configuration is loaded from the environment when not given."""
        monkeypatch.setenv("GEMINI_API_KEY", "env-key")

        contact = asyncio.run(extract_contact(IMAGE_URL, client=client))

        assert contact.name == "Jane Doe"
        assert services.gemini_requests[0].url.params["key"] == "env-key"

    def test_image_redirect_followed(self, services):
        """Test a moved image URL is followed to the final image."""
        old_url = "https://cdn.example.com/cards/old.png"

        def handler(request):
            if request.url.path.endswith("/old.png"):
                services.requests.append(request)
                return httpx.Response(301, headers={"location": IMAGE_URL})
            return services.handler(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

        contact = _extract(old_url, client)

        assert contact.name == "Jane Doe"
        assert [str(r.url) for r in services.image_requests] == [old_url, IMAGE_URL]
        assert len(services.gemini_requests) == 1

    def test_configured_timeout_reaches_fetcher(self, client, monkeypatch):
        """Test the configured timeout is used for the image download."""
        fetch = AsyncMock(return_value=EncodedImage(data="aGk=", mime_type="image/png"))
        monkeypatch.setattr("card_ocr.scanner.fetch_image", fetch)

        asyncio.run(
            extract_contact(
                IMAGE_URL, config=Config(api_key="k", timeout=5.0), client=client
            )
        )

        assert fetch.call_args.kwargs["timeout"] == 5.0


class TestCardScanner:
    """Test CardScanner controller with a mocked extractor."""

    def _mock_extractor(self):
        extractor = Mock()
        extractor.name = "mock-extractor"
        extractor.extract = AsyncMock(return_value=ParsedContact(name="John Doe"))
        extractor.transcribe = AsyncMock(return_value="John Doe\nEngineer")
        return extractor

    def test_scan_passes_encoded_image(self, services, client):
        """Test the fetched image reaches the extractor base64-encoded."""
        extractor = self._mock_extractor()
        scanner = CardScanner(extractor, client=client)

        result = asyncio.run(scanner.scan(IMAGE_URL))

        assert result.name == "John Doe"
        image = extractor.extract.call_args.args[0]
        assert isinstance(image, EncodedImage)
        assert image.mime_type == "image/png"
        extractor.check_ready.assert_called_once()

    def test_scan_checks_credentials_first(self, services, client):
        """Test a failing readiness check stops the pipeline before fetching."""
        extractor = self._mock_extractor()
        extractor.check_ready.side_effect = MissingCredentialError("no key")
        scanner = CardScanner(extractor, client=client)

        with pytest.raises(MissingCredentialError):
            asyncio.run(scanner.scan(IMAGE_URL))

        assert services.requests == []
        extractor.extract.assert_not_called()

    def test_transcribe(self, services, client):
        """Test transcription-only mode."""
        extractor = self._mock_extractor()
        scanner = CardScanner(extractor, client=client)

        result = asyncio.run(scanner.transcribe(IMAGE_URL))

        assert result == "John Doe\nEngineer"
        extractor.extract.assert_not_called()

    def test_transcribe_with_gemini(self, services, client):
        """Test transcription returns the model text unchanged."""
        services.set_model_text("ACME\nJane Doe")
        scanner = CardScanner(GeminiExtractor("k", client=client), client=client)

        result = asyncio.run(scanner.transcribe(IMAGE_URL))

        assert result == "ACME\nJane Doe"
        body = json.loads(services.gemini_requests[0].content)
        assert body["generationConfig"]["maxOutputTokens"] == 1000

    def test_timeout_used_for_scan_and_transcribe(self, monkeypatch):
        """Test the scanner timeout is passed to every image download."""
        fetch = AsyncMock(return_value=EncodedImage(data="aGk=", mime_type="image/png"))
        monkeypatch.setattr("card_ocr.scanner.fetch_image", fetch)
        scanner = CardScanner(self._mock_extractor(), timeout=5.0)

        asyncio.run(scanner.scan(IMAGE_URL))
        asyncio.run(scanner.transcribe(IMAGE_URL))

        assert [c.kwargs["timeout"] for c in fetch.call_args_list] == [5.0, 5.0]

    def test_extractor_name(self):
        """Test extractor name is exposed."""
        scanner = CardScanner(GeminiExtractor("k", model="gemini-1.5-pro"))
        assert scanner.extractor_name == "gemini:gemini-1.5-pro"


class TestConfig:
    """Test environment configuration."""

    def test_defaults(self, monkeypatch):
        """Test defaults when nothing is set."""
        for var in ("GEMINI_API_KEY", "VITE_GEMINI_API_KEY", "GEMINI_MODEL",
                    "GEMINI_BASE_URL", "CARD_OCR_TIMEOUT"):
            monkeypatch.delenv(var, raising=False)

        config = Config.from_env()

        assert config.api_key is None
        assert config.model == "gemini-1.5-flash"
        assert config.base_url == "https://generativelanguage.googleapis.com/v1beta"
        assert config.timeout == 60.0

    def test_vite_key_fallback(self, monkeypatch):
        """Test the legacy VITE_GEMINI_API_KEY variable is honored."""
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.setenv("VITE_GEMINI_API_KEY", "vite-key")
        monkeypatch.setenv("CARD_OCR_TIMEOUT", "5")

        config = Config.from_env()

        assert config.api_key == "vite-key"
        assert config.timeout == 5.0

    def test_empty_key_is_missing(self, monkeypatch):
        """Test an empty key is treated as absent."""
        monkeypatch.setenv("GEMINI_API_KEY", "")
        monkeypatch.delenv("VITE_GEMINI_API_KEY", raising=False)

        assert Config.from_env().api_key is None


def test_network_failure_on_vision_call(services):
    """Test a transport failure on the Gemini call raises NetworkError."""
    def handler(request):
        if "generateContent" in request.url.path:
            raise httpx.ConnectError("connection refused", request=request)
        return services.handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

    with pytest.raises(NetworkError):
        _extract(IMAGE_URL, client)
