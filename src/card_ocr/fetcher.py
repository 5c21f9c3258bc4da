"""Fetch remote card images and encode them for inline upload."""

import base64
import logging

import httpx

from card_ocr.errors import (
    EmptyContentError,
    InvalidResponseError,
    NetworkError,
    UnsupportedTypeError,
)
from card_ocr.models.contact import EncodedImage

logger = logging.getLogger(__name__)

IMAGE_TYPE_PREFIX = "image/"


async def fetch_image(
    image_url: str,
    client: httpx.AsyncClient | None = None,
    timeout: float = 60.0,
) -> EncodedImage:
    """
    Download an image and return it base64-encoded with its MIME type.

    Args:
        image_url: HTTP(S) URL of the card image.
        client: Optional shared client; a short-lived one is created otherwise.
        timeout: Request timeout in seconds when no client is given.

    Returns:
        EncodedImage with the base64 payload and validated MIME type.

    Raises:
        NetworkError: If the request cannot complete.
        InvalidResponseError: If the server answers with a failure status.
        EmptyContentError: If the body is empty.
        UnsupportedTypeError: If the content type is not an image type.
    """
    if client is None:
        async with httpx.AsyncClient(timeout=timeout) as owned:
            return await fetch_image(image_url, client=owned)

    try:
        resp = await client.get(
            image_url, headers={"Accept": "image/*"}, follow_redirects=True
        )
    except httpx.HTTPError as e:
        raise NetworkError(f"Network error when fetching image: {e}") from e

    if not resp.is_success:
        raise InvalidResponseError(
            f"Failed to fetch image: {resp.status_code} {resp.reason_phrase}",
            status_code=resp.status_code,
        )

    content = resp.content
    if not content:
        raise EmptyContentError("Image file is empty")

    mime_type = _mime_type(resp.headers.get("content-type"))
    if mime_type is None or not mime_type.startswith(IMAGE_TYPE_PREFIX):
        raise UnsupportedTypeError(
            f"Invalid file type: {mime_type}. Expected an image.",
            content_type=mime_type,
        )

    logger.debug("Fetched %d bytes (%s) from %s", len(content), mime_type, image_url)
    return EncodedImage(
        data=base64.b64encode(content).decode("ascii"),
        mime_type=mime_type,
    )


def _mime_type(content_type: str | None) -> str | None:
    """Strip parameters such as charset from a Content-Type header."""
    if not content_type:
        return None
    return content_type.split(";", 1)[0].strip().lower() or None
