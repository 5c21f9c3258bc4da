"""Heuristic text-to-contact parser used when the model returns no usable JSON."""

import logging
import re

from card_ocr.assembler import assemble_contact
from card_ocr.models.contact import ParsedContact

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")

# Tried in order; the first candidate with a full-length number wins
PHONE_PATTERNS = [
    re.compile(r"\+\d{1,3}(?:[ .-]?\(?\d{1,4}\)?){2,5}"),  # international, grouped
    re.compile(r"\d{10,}"),
    re.compile(r"\(?\d{3}\)?[ .-]?\d{3}[ .-]?\d{4}"),  # US with area code
    re.compile(r"\d{3}[ .-]?\d{3}[ .-]?\d{4}"),
    re.compile(r"\+?[1-9]\d{1,14}"),
]
MIN_PHONE_DIGITS = 7
FULL_PHONE_DIGITS = 10

NAME_PATTERNS = [
    re.compile(r"[A-Z][a-z]+\s+[A-Z][a-z]+(?:\s+[A-Z][a-z]+)?"),
    re.compile(r"[A-Z][a-z]+(?:\s+[A-Z]\.?)?\s+[A-Z][a-z]+"),
]
NAME_SEARCH_LINES = 5

ORGANIZATION_RE = re.compile(
    r"\b(?:company|corp|inc|ltd|llc|technologies|solutions|services|group)\b",
    re.IGNORECASE,
)
COMPANY_INDICATORS = re.compile(
    r"\b(?:company|corp|corporation|inc|incorporated|ltd|limited|llc|llp|"
    r"technologies|tech|solutions|services|group|associates|partners|consulting|"
    r"studio|agency|firm|enterprises|industries)\b",
    re.IGNORECASE,
)
CAPITALIZED_LINE_RE = re.compile(r"[A-Z][A-Za-z\s&.,-]+")
SERVICE_INDICATORS = re.compile(
    r"\b(?:manager|director|ceo|cto|founder|developer|designer|consultant|analyst|"
    r"specialist|coordinator|executive|president|vice|senior|junior|lead|head|chief)\b",
    re.IGNORECASE,
)
SERVICE_WORDS = re.compile(
    r"services|solutions|consulting|development|design|marketing", re.IGNORECASE
)
ADDRESS_INDICATORS = re.compile(
    r"\b(?:street|st|avenue|ave|road|rd|boulevard|blvd|drive|dr|lane|ln|way|place|"
    r"pl|court|ct|suite|ste|floor|building|city|state|zip|postal)\b",
    re.IGNORECASE,
)
POSTCODE_RE = re.compile(r"\d{5}|,\s*[A-Z]{2}\s*\d")


def parse_contact_text(text: str | None) -> ParsedContact:
    """
    Heuristically assign lines of free-form card text to contact fields.

    Args:
        text: Raw transcription of a business card.

    Returns:
        ParsedContact, possibly with every field absent. Never raises.
    """
    if not text or not isinstance(text, str):
        return ParsedContact()

    lines = [line.strip() for line in re.split(r"\r?\n", text)]
    lines = [line for line in lines if line]

    email_match = EMAIL_RE.search(text)
    phone = _find_phone(text)
    name = _find_name(lines)
    company = _find_company(lines, name)
    services = _find_services(lines, name, company)
    address = _find_address(lines, {name, company, services}, phone)

    logger.debug("Fallback parser scanned %d lines", len(lines))
    return assemble_contact(
        {
            "name": name,
            "company": company,
            "phone": phone,
            "email": email_match.group(0) if email_match else None,
            "services": services,
            "address": address,
        }
    )


def _digits(value: str) -> str:
    return re.sub(r"[^\d+]", "", value)


def _find_phone(text: str) -> str | None:
    cleaned = re.sub(r"[^\d+\s().-]", " ", text)
    best: str | None = None
    for pattern in PHONE_PATTERNS:
        for match in pattern.finditer(cleaned):
            candidate = _digits(match.group(0))
            digit_count = len(candidate.lstrip("+"))
            if digit_count >= FULL_PHONE_DIGITS:
                return candidate
            if digit_count >= MIN_PHONE_DIGITS and (
                best is None or len(candidate) > len(best)
            ):
                best = candidate
    return best


def _find_name(lines: list[str]) -> str | None:
    for line in lines[:NAME_SEARCH_LINES]:
        if (
            "@" in line
            or re.search(r"\d{3}", line)
            or ORGANIZATION_RE.search(line)
            or SERVICE_INDICATORS.search(line)
        ):
            continue
        for pattern in NAME_PATTERNS:
            if pattern.fullmatch(line):
                return line

    for line in lines:
        if (
            "@" not in line
            and not re.search(r"\d{6,}", line)
            and not ORGANIZATION_RE.search(line)
            and not SERVICE_INDICATORS.search(line)
            and len(line.split()) <= 4
            and re.fullmatch(r"[A-Za-z\s.]+", line)
        ):
            return line
    return None


def _find_company(lines: list[str], name: str | None) -> str | None:
    candidates = [line for line in lines if line != name]
    for line in candidates:
        if COMPANY_INDICATORS.search(line):
            return line

    # No indicator words: settle for a capitalized line longer than the name
    min_length = len(name or "") + 5
    for line in candidates:
        if SERVICE_INDICATORS.search(line) or ADDRESS_INDICATORS.search(line):
            continue
        if POSTCODE_RE.search(line):
            continue
        if CAPITALIZED_LINE_RE.fullmatch(line) and len(line) > min_length:
            return line
    return None


def _find_services(
    lines: list[str], name: str | None, company: str | None
) -> str | None:
    for line in lines:
        if line in (name, company):
            continue
        if SERVICE_INDICATORS.search(line) or SERVICE_WORDS.search(line):
            return line
    return None


def _find_address(
    lines: list[str], taken: set[str | None], phone: str | None
) -> str | None:
    phone_digits = phone.lstrip("+") if phone else None
    address_lines = []
    for line in lines:
        if line in taken or "@" in line:
            continue
        has_keyword = bool(ADDRESS_INDICATORS.search(line))
        if not has_keyword and phone_digits and phone_digits in _digits(line):
            continue
        if has_keyword or POSTCODE_RE.search(line):
            address_lines.append(line)
    return ", ".join(address_lines) or None
