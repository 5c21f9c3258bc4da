"""Abstract base class for vision extractors."""

from abc import ABC, abstractmethod

from card_ocr.models.contact import EncodedImage, ParsedContact


class Extractor(ABC):
    """Abstract base class for vision extractors."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the name of this extractor."""
        ...

    def check_ready(self) -> None:
        """
        Verify the extractor can issue requests.

        Called before any network activity. The default does nothing.

        Raises:
            MissingCredentialError: If required credentials are absent.
        """

    @abstractmethod
    async def extract(self, image: EncodedImage) -> ParsedContact:
        """
        Extract structured contact data from a card image.

        Args:
            image: Encoded card image.

        Returns:
            ParsedContact with whatever fields could be identified.

        Raises:
            CardOCRError: If the vision call fails.
        """
        ...

    @abstractmethod
    async def transcribe(self, image: EncodedImage) -> str:
        """Return the plain text printed on the card."""
        ...
