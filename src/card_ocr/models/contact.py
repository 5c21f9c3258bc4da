"""Data models for extracted contacts and vision payloads."""

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

CONTACT_FIELDS = ("name", "company", "phone", "email", "services", "address")


class ParsedContact(BaseModel):
    """Best-effort structured contact extracted from one card image."""

    model_config = ConfigDict(frozen=True)

    name: str | None = Field(default=None, description="Full name of the person")
    company: str | None = Field(default=None, description="Company or organization")
    phone: str | None = Field(default=None, description="Phone number")
    email: str | None = Field(default=None, description="Email address")
    services: str | None = Field(
        default=None, description="Job title or services offered"
    )
    address: str | None = Field(default=None, description="Complete address")

    def present_fields(self) -> dict[str, str]:
        """Return only the fields that were extracted."""
        return self.model_dump(exclude_none=True)

    @property
    def is_empty(self) -> bool:
        return not self.present_fields()


@dataclass(frozen=True)
class EncodedImage:
    """Base64 image payload ready to be inlined into a vision request."""

    data: str
    """Base64-encoded image bytes."""

    mime_type: str
    """Image MIME type, e.g. ``image/png``."""


class _Part(BaseModel):
    text: str | None = None


class _Content(BaseModel):
    parts: list[_Part] = Field(default_factory=list)


class _Candidate(BaseModel):
    content: _Content | None = None


class VisionResponse(BaseModel):
    """Subset of a ``generateContent`` response body.

    Every nested level is optional so that any response shape decodes;
    ``text`` is ``None`` whenever the answer path is missing.
    """

    candidates: list[_Candidate] = Field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Any) -> "VisionResponse":
        """Decode an arbitrary JSON payload, falling back to an empty response."""
        if not isinstance(payload, dict):
            return cls()
        try:
            return cls.model_validate(payload)
        except ValidationError:
            return cls()

    @property
    def text(self) -> str | None:
        """Text of the first part of the first candidate, if any."""
        if not self.candidates:
            return None
        content = self.candidates[0].content
        if content is None or not content.parts:
            return None
        return content.parts[0].text
