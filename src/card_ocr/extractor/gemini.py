"""Gemini vision extractor implementation."""

import json
import logging
from typing import Any

import httpx

from card_ocr.assembler import assemble_contact
from card_ocr.config import DEFAULT_BASE_URL, DEFAULT_MODEL, Config
from card_ocr.errors import (
    EmptyResponseError,
    MissingCredentialError,
    NetworkError,
    UpstreamError,
)
from card_ocr.extractor.base import Extractor
from card_ocr.fallback import parse_contact_text
from card_ocr.models.contact import EncodedImage, ParsedContact, VisionResponse

logger = logging.getLogger(__name__)

EXTRACT_PROMPT = """You are an expert at extracting structured information from business cards.
Analyze this business card image and extract the following information in JSON format:

{
  "name": "Full name of the person",
  "company": "Company/Organization name",
  "phone": "Phone number (clean format)",
  "email": "Email address",
  "services": "Job title or services offered",
  "address": "Complete address if available"
}

Only include fields that you can clearly identify from the image.
Use null for fields that are not visible or unclear. Be precise and accurate.
Return only the JSON object without any additional text or formatting."""

TRANSCRIBE_PROMPT = """You are an expert at extracting information from business cards.
Analyze this business card image and extract all the text content you can see.
Return the extracted text as plain text, preserving the layout and structure as much as possible."""

# Low temperature: literal extraction, not creative generation
GENERATION_CONFIG = {
    "temperature": 0.1,
    "topK": 32,
    "topP": 1,
}
EXTRACT_MAX_TOKENS = 500
TRANSCRIBE_MAX_TOKENS = 1000


class GeminiExtractor(Extractor):
    """Extractor using the Gemini ``generateContent`` endpoint."""

    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize Gemini extractor.

        Args:
            api_key: Gemini API key, sent as the ``key`` query parameter.
            model: Gemini model name (e.g., "gemini-1.5-flash").
            base_url: API base URL including the version segment.
            timeout: Request timeout in seconds when no client is given.
            client: Optional shared HTTP client.
        """
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client

    @classmethod
    def from_config(
        cls, config: Config, client: httpx.AsyncClient | None = None
    ) -> "GeminiExtractor":
        return cls(
            api_key=config.api_key,
            model=config.model,
            base_url=config.base_url,
            timeout=config.timeout,
            client=client,
        )

    @property
    def name(self) -> str:
        return f"gemini:{self._model}"

    def check_ready(self) -> None:
        if not self._api_key:
            raise MissingCredentialError(
                "Gemini API key not found. Set GEMINI_API_KEY in the environment."
            )

    async def extract(self, image: EncodedImage) -> ParsedContact:
        """Extract contact fields, degrading to text parsing on bad JSON."""
        self.check_ready()
        text = await self._generate(EXTRACT_PROMPT, image, EXTRACT_MAX_TOKENS)
        return self._parse_response(text)

    async def transcribe(self, image: EncodedImage) -> str:
        """Return the card text as the model reads it."""
        self.check_ready()
        return await self._generate(TRANSCRIBE_PROMPT, image, TRANSCRIBE_MAX_TOKENS)

    def build_payload(
        self, prompt: str, image: EncodedImage, max_output_tokens: int
    ) -> dict[str, Any]:
        """Build the JSON request body for one prompt and inline image."""
        return {
            "contents": [
                {
                    "parts": [
                        {"text": prompt},
                        {
                            "inline_data": {
                                "mime_type": image.mime_type,
                                "data": image.data,
                            }
                        },
                    ]
                }
            ],
            "generationConfig": {
                **GENERATION_CONFIG,
                "maxOutputTokens": max_output_tokens,
            },
        }

    async def _generate(
        self, prompt: str, image: EncodedImage, max_output_tokens: int
    ) -> str:
        """Call the endpoint and return the answer text."""
        if self._client is None:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await self._post(client, prompt, image, max_output_tokens)
        else:
            resp = await self._post(self._client, prompt, image, max_output_tokens)

        if not resp.is_success:
            raise UpstreamError(resp.status_code, _error_message(resp.text))

        try:
            payload = resp.json()
        except ValueError:
            payload = None

        text = VisionResponse.from_payload(payload).text
        if not text or not text.strip():
            raise EmptyResponseError("No response from Gemini API")
        return text

    async def _post(
        self,
        client: httpx.AsyncClient,
        prompt: str,
        image: EncodedImage,
        max_output_tokens: int,
    ) -> httpx.Response:
        url = f"{self._base_url}/models/{self._model}:generateContent"
        logger.debug(
            "Calling %s (%s, %d max tokens)", url, image.mime_type, max_output_tokens
        )
        try:
            return await client.post(
                url,
                params={"key": self._api_key},
                headers={"Accept": "application/json"},
                json=self.build_payload(prompt, image, max_output_tokens),
            )
        except httpx.HTTPError as e:
            raise NetworkError(f"Cannot reach Gemini API: {e}") from e

    def _parse_response(self, text: str) -> ParsedContact:
        """Parse model output into a contact, using the text parser on failure."""
        data = find_json_object(text)
        if data is None:
            logger.warning("No JSON object in model output, using text parser")
            return parse_contact_text(text)
        return assemble_contact(data)


def find_json_object(text: str) -> dict[str, Any] | None:
    """
    Return the first brace-delimited JSON object embedded in text.

    Surrounding commentary and markdown fences are ignored. Balanced spans
    that do not decode to an object are skipped as a whole.
    """
    start = text.find("{")
    while start != -1:
        end = _balanced_end(text, start)
        if end is None:
            start = text.find("{", start + 1)
            continue
        try:
            value = json.loads(text[start:end])
        except json.JSONDecodeError:
            value = None
        if isinstance(value, dict):
            return value
        start = text.find("{", end)
    return None


def _balanced_end(text: str, start: int) -> int | None:
    """Index just past the brace closing the one at ``start``, string-aware."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        char = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return i + 1
    return None


def _error_message(body: str) -> str:
    """Pull ``error.message`` out of an error body, else use the raw body."""
    try:
        data = json.loads(body)
    except ValueError:
        return body.strip() or "Unknown error"
    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        message = data["error"].get("message")
        if isinstance(message, str) and message:
            return message
    return body.strip() or "Unknown error"
