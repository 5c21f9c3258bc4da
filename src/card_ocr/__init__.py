"""Business card contact extraction with a hosted vision model."""

from card_ocr.models.contact import EncodedImage, ParsedContact
from card_ocr.scanner import CardScanner, extract_contact

__version__ = "0.1.0"
__all__ = ["CardScanner", "EncodedImage", "ParsedContact", "extract_contact"]
