"""vCard 3.0 export for extracted contacts."""

import re

from card_ocr.models.contact import ParsedContact


def escape_value(value: str) -> str:
    """Escape a property value per RFC 2426."""
    value = value.replace("\\", "\\\\")
    value = value.replace(",", "\\,").replace(";", "\\;")
    return re.sub(r"\r?\n", "\\\\n", value)


def split_name(full_name: str | None) -> tuple[str, str]:
    """Split a display name into (first, last) on the last space."""
    if not full_name:
        return "", ""
    first, _, last = full_name.strip().rpartition(" ")
    if not first:
        return last, ""
    return first, last


def build_vcard(contact: ParsedContact) -> str:
    """
    Render a contact as a vCard 3.0 document.

    ``services`` maps to TITLE. Multi-line addresses become separate ADR
    components; everything else is escaped. FN is required, so a card
    without a name is labelled by its company, email or phone instead.
    """
    first, last = split_name(contact.name)
    display_name = (
        contact.name or contact.company or contact.email or contact.phone or "Unknown"
    )
    lines = [
        "BEGIN:VCARD",
        "VERSION:3.0",
        f"FN:{escape_value(display_name)}",
        f"N:{escape_value(last)};{escape_value(first)};;;",
        f"ORG:{escape_value(contact.company or '')}",
        f"TITLE:{escape_value(contact.services or '')}",
    ]
    if contact.phone:
        lines.append(f"TEL;TYPE=CELL:{escape_value(contact.phone)}")
    if contact.email:
        lines.append(f"EMAIL:{escape_value(contact.email)}")
    if contact.address:
        parts = [escape_value(part.strip()) for part in contact.address.splitlines()]
        lines.append(f"ADR:;;{';'.join(part for part in parts if part)}")
    else:
        lines.append("ADR:;;;;;")
    lines.append("END:VCARD")
    return "\r\n".join(lines) + "\r\n"
