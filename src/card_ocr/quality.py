"""Quality scoring for extracted contacts."""

import re
from dataclasses import dataclass, field

from card_ocr.models.contact import CONTACT_FIELDS, ParsedContact

EMAIL_SHAPE_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")


@dataclass
class ContactQuality:
    """Heuristic assessment of one extracted contact."""

    score: int
    """Overall score, 0-100."""

    completeness: float
    """Share of contact fields present, 0-100."""

    issues: list[str] = field(default_factory=list)
    """Human-readable problems worth a manual check."""


def assess_contact_quality(contact: ParsedContact) -> ContactQuality:
    """
    Score a contact by which fields were found and whether they look sane.

    Name, email and phone carry most of the weight; company, services and
    address add smaller amounts. Mostly complete contacts get a bonus.
    """
    issues: list[str] = []
    score = 0

    if contact.name:
        score += 25
        if len(contact.name) < 3:
            issues.append("Name seems too short")
    else:
        issues.append("Missing name")

    if contact.email:
        score += 20
        if not EMAIL_SHAPE_RE.fullmatch(contact.email):
            issues.append("Email format may be incorrect")
            score -= 5
    else:
        issues.append("Missing email")

    if contact.phone:
        score += 20
        if len(re.sub(r"\D", "", contact.phone)) < 7:
            issues.append("Phone number seems too short")
            score -= 5
    else:
        issues.append("Missing phone number")

    if contact.company:
        score += 15

    if contact.services:
        score += 10

    if contact.address:
        score += 5
        if len(contact.address) < 10:
            issues.append("Address seems incomplete")
            score -= 2

    present = len(contact.present_fields())
    completeness = round(present / len(CONTACT_FIELDS) * 100, 1)
    if completeness > 80:
        score += 10
    elif completeness > 60:
        score += 5

    return ContactQuality(
        score=max(0, min(100, score)),
        completeness=completeness,
        issues=issues,
    )
