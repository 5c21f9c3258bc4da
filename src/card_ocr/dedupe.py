"""Duplicate detection and merging for extracted contacts."""

import logging
import re
from dataclasses import dataclass, field
from difflib import SequenceMatcher

from card_ocr.models.contact import ParsedContact

logger = logging.getLogger(__name__)

DUPLICATE_THRESHOLD = 0.7
NAME_MATCH_RATIO = 0.8
COMPANY_MATCH_RATIO = 0.7
MIN_PHONE_DIGITS = 7

# Merged by keeping the longer value; email and phone only fill gaps
LONGEST_WINS = ("name", "company", "services", "address")
FIRST_WINS = ("email", "phone")


@dataclass
class DedupeResult:
    """Outcome of deduplicating a list of contacts."""

    unique: list[ParsedContact] = field(default_factory=list)
    """One merged contact per group of duplicates."""

    groups: list[list[int]] = field(default_factory=list)
    """Input indices behind each entry of ``unique``, in the same order."""

    @property
    def merged(self) -> int:
        """Number of input contacts folded into an earlier one."""
        return sum(len(group) - 1 for group in self.groups)


def normalize_phone(phone: str | None) -> str:
    """Reduce a phone number to digits and a leading ``+``; ``""`` if too short."""
    if not phone:
        return ""
    cleaned = re.sub(r"[^\d+]", "", phone)
    if cleaned.startswith("00"):
        cleaned = "+" + cleaned[2:]
    if len(cleaned.lstrip("+")) < MIN_PHONE_DIGITS:
        return ""
    return cleaned


def string_similarity(a: str, b: str) -> float:
    """Case-insensitive similarity ratio between 0.0 and 1.0."""
    a = " ".join(a.lower().split())
    b = " ".join(b.lower().split())
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    return SequenceMatcher(None, a, b).ratio()


def contact_similarity(first: ParsedContact, second: ParsedContact) -> float:
    """
    Score how likely two contacts describe the same person.

    Only fields present on both sides are compared: name and company by
    fuzzy ratio, email case-insensitively, phone by normalized digits.

    Returns:
        Average match over the compared fields, 0.0 when nothing compares.
    """
    matches = 0.0
    compared = 0

    if first.name and second.name:
        compared += 1
        ratio = string_similarity(first.name, second.name)
        if ratio > NAME_MATCH_RATIO:
            matches += ratio

    if first.email and second.email:
        compared += 1
        if first.email.lower() == second.email.lower():
            matches += 1

    phone_a = normalize_phone(first.phone)
    phone_b = normalize_phone(second.phone)
    if phone_a and phone_b:
        compared += 1
        if phone_a == phone_b:
            matches += 1

    if first.company and second.company:
        compared += 1
        ratio = string_similarity(first.company, second.company)
        if ratio > COMPANY_MATCH_RATIO:
            matches += ratio

    return matches / compared if compared else 0.0


def merge_contacts(target: ParsedContact, source: ParsedContact) -> ParsedContact:
    """Return ``target`` completed with details from ``source``."""
    update: dict[str, str] = {}
    for name in LONGEST_WINS:
        current = getattr(target, name)
        candidate = getattr(source, name)
        if candidate and (not current or len(candidate) > len(current)):
            update[name] = candidate
    for name in FIRST_WINS:
        if not getattr(target, name) and getattr(source, name):
            update[name] = getattr(source, name)
    return target.model_copy(update=update) if update else target


def deduplicate_contacts(
    contacts: list[ParsedContact], threshold: float = DUPLICATE_THRESHOLD
) -> DedupeResult:
    """
    Group contacts that describe the same person and merge each group.

    Each contact is compared against the merged form of the earliest
    unclaimed contact, so details picked up from one duplicate help match
    the next.

    Args:
        contacts: Contacts in input order.
        threshold: Similarity above which two contacts are duplicates.

    Returns:
        DedupeResult with merged contacts and the input indices per group.
    """
    result = DedupeResult()
    claimed: set[int] = set()

    for i, contact in enumerate(contacts):
        if i in claimed:
            continue
        claimed.add(i)
        merged = contact
        group = [i]

        for j in range(i + 1, len(contacts)):
            if j in claimed:
                continue
            if contact_similarity(merged, contacts[j]) > threshold:
                merged = merge_contacts(merged, contacts[j])
                group.append(j)
                claimed.add(j)

        result.unique.append(merged)
        result.groups.append(group)

    logger.debug(
        "Deduplicated %d contacts into %d", len(contacts), len(result.unique)
    )
    return result
