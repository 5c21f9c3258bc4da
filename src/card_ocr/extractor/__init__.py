"""Vision extractors for structured data extraction from card images."""

from card_ocr.extractor.base import Extractor
from card_ocr.extractor.gemini import GeminiExtractor

__all__ = ["Extractor", "GeminiExtractor"]
