"""Error types raised by the card OCR pipeline."""


class CardOCRError(ValueError):
    """Base class for all pipeline errors."""

    stage = "pipeline"
    """Pipeline stage the error originated from."""


class MissingCredentialError(CardOCRError):
    """No API key is configured for the vision endpoint."""

    stage = "config"


class NetworkError(CardOCRError):
    """A request could not complete (DNS, connectivity, timeout)."""

    stage = "fetch"


class InvalidResponseError(CardOCRError):
    """The image source answered with a failure status."""

    stage = "fetch"

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class EmptyContentError(CardOCRError):
    """The image source returned an empty body."""

    stage = "fetch"


class UnsupportedTypeError(CardOCRError):
    """The image source returned something that is not an image."""

    stage = "fetch"

    def __init__(self, message: str, content_type: str | None):
        super().__init__(message)
        self.content_type = content_type


class UpstreamError(CardOCRError):
    """The vision endpoint answered with a failure status."""

    stage = "extract"

    def __init__(self, status_code: int, message: str):
        super().__init__(f"Gemini API error: {status_code} - {message}")
        self.status_code = status_code
        self.message = message


class EmptyResponseError(CardOCRError):
    """The vision endpoint answered but returned no text."""

    stage = "extract"
