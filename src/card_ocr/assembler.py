"""Normalize raw key/value extraction results into a ParsedContact."""

from collections.abc import Mapping
from typing import Any

from card_ocr.models.contact import CONTACT_FIELDS, ParsedContact

# Placeholder strings models emit instead of leaving a field out
NULL_MARKERS = frozenset({"null", "none", "n/a"})


def normalize_value(value: Any) -> str | None:
    """
    Convert a raw field value to a clean string, or None when absent.

    Only explicit absence markers are dropped. Legitimate falsy-looking
    values such as ``0`` or ``"false"`` are kept as strings. Lists and
    objects (e.g. an address split into street and city) are flattened
    into one comma-separated string.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text or text.lower() in NULL_MARKERS:
            return None
        return text
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, Mapping):
        value = list(value.values())
    if isinstance(value, (list, tuple)):
        items = [normalize_value(item) for item in value]
        joined = ", ".join(item for item in items if item is not None)
        return joined or None
    return None


def assemble_contact(raw: Mapping[str, Any]) -> ParsedContact:
    """Build the canonical contact from a raw mapping; unknown keys are ignored."""
    return ParsedContact(
        **{field: normalize_value(raw.get(field)) for field in CONTACT_FIELDS}
    )
