"""Main card scanner controller."""

import logging
import time

import httpx

from card_ocr.config import Config
from card_ocr.extractor.base import Extractor
from card_ocr.extractor.gemini import GeminiExtractor
from card_ocr.fetcher import fetch_image
from card_ocr.models.contact import ParsedContact

logger = logging.getLogger(__name__)


class CardScanner:
    """Run the fetch and extraction steps for one card image URL."""

    def __init__(
        self,
        extractor: Extractor,
        client: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
    ):
        """
        Initialize the scanner.

        Args:
            extractor: Vision extractor for structured data extraction.
            client: Optional HTTP client used for image downloads.
            timeout: Image download timeout in seconds when no client is given.
        """
        self._extractor = extractor
        self._client = client
        self._timeout = timeout

    @property
    def extractor_name(self) -> str:
        return self._extractor.name

    async def scan(self, image_url: str) -> ParsedContact:
        """
        Extract a structured contact from a card image URL.

        Args:
            image_url: URL of the business card image.

        Returns:
            ParsedContact, possibly sparse.

        Raises:
            MissingCredentialError: Before any request if no API key is set.
            CardOCRError: If fetching or extraction fails.
        """
        start_time = time.perf_counter()

        self._extractor.check_ready()

        # Step 1: fetch and encode
        image = await fetch_image(image_url, client=self._client, timeout=self._timeout)

        # Step 2: vision extraction
        contact = await self._extractor.extract(image)

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(
            "Scanned %s with %s in %.2fms", image_url, self._extractor.name, elapsed_ms
        )
        return contact

    async def transcribe(self, image_url: str) -> str:
        """
        Return only the raw card text, without structured extraction.

        Useful for debugging or checking what the model reads.
        """
        self._extractor.check_ready()
        image = await fetch_image(image_url, client=self._client, timeout=self._timeout)
        return await self._extractor.transcribe(image)


async def extract_contact(
    image_url: str,
    config: Config | None = None,
    client: httpx.AsyncClient | None = None,
) -> ParsedContact:
    """
    Extract a contact from a card image URL using the Gemini endpoint.

    Configuration is read from the environment at call time unless given.
    """
    if config is None:
        config = Config.from_env()
    scanner = CardScanner(
        GeminiExtractor.from_config(config, client=client),
        client=client,
        timeout=config.timeout,
    )
    return await scanner.scan(image_url)
