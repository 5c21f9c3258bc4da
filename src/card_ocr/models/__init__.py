"""Data models for contact extraction."""

from card_ocr.models.contact import (
    CONTACT_FIELDS,
    EncodedImage,
    ParsedContact,
    VisionResponse,
)

__all__ = [
    "CONTACT_FIELDS",
    "EncodedImage",
    "ParsedContact",
    "VisionResponse",
]
