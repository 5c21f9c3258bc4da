"""Batch processing for multiple business card image URLs."""

import csv
import io
import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from card_ocr.dedupe import deduplicate_contacts
from card_ocr.errors import CardOCRError
from card_ocr.models.contact import CONTACT_FIELDS, ParsedContact
from card_ocr.quality import assess_contact_quality
from card_ocr.scanner import CardScanner

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Result of scanning a list of card image URLs."""

    results: list[dict] = field(default_factory=list)
    errors: list[dict] = field(default_factory=list)
    total_time_ms: float = 0.0
    merged: int = 0
    """Successful scans folded into another result as duplicates."""

    @property
    def total(self) -> int:
        """Total number of processed URLs."""
        return self.succeeded + self.failed

    @property
    def succeeded(self) -> int:
        """Number of URLs scanned successfully, duplicates included."""
        return len(self.results) + self.merged

    @property
    def failed(self) -> int:
        """Number of URLs that failed to scan."""
        return len(self.errors)


class BatchProcessor:
    """Scan many card image URLs with per-URL error isolation."""

    URL_SCHEMES = ("http://", "https://")

    def __init__(self, scanner: CardScanner, dedupe: bool = False):
        """
        Initialize batch processor.

        Args:
            scanner: CardScanner instance for processing individual cards.
            dedupe: Merge results that describe the same person.
        """
        self._scanner = scanner
        self._dedupe = dedupe

    async def process(self, image_urls: list[str]) -> BatchResult:
        """
        Scan image URLs one after another, isolating errors per URL.

        A missing API key affects every URL alike, so it is raised
        instead of being recorded once per item.
        """
        start_time = time.perf_counter()
        scanned: list[tuple[str, ParsedContact]] = []
        errors: list[dict] = []

        for url in image_urls:
            try:
                contact = await self._scanner.scan(url)
            except CardOCRError as e:
                if e.stage == "config":
                    raise
                logger.warning("Failed to scan %s: %s", url, e)
                errors.append({
                    "image_url": url,
                    "stage": e.stage,
                    "error": str(e),
                })
                continue
            scanned.append((url, contact))

        if self._dedupe:
            results, merged = self._merge_duplicates(scanned)
        else:
            results = [self._result_row(url, contact) for url, contact in scanned]
            merged = 0

        elapsed_ms = (time.perf_counter() - start_time) * 1000

        return BatchResult(
            results=results,
            errors=errors,
            total_time_ms=round(elapsed_ms, 2),
            merged=merged,
        )

    def _merge_duplicates(
        self, scanned: list[tuple[str, ParsedContact]]
    ) -> tuple[list[dict], int]:
        """Collapse duplicate contacts; each row keeps its first URL."""
        dedupe = deduplicate_contacts([contact for _, contact in scanned])
        rows: list[dict] = []
        for contact, group in zip(dedupe.unique, dedupe.groups):
            row = self._result_row(scanned[group[0]][0], contact)
            if len(group) > 1:
                row["duplicate_urls"] = [scanned[i][0] for i in group[1:]]
            rows.append(row)
        return rows, dedupe.merged

    def _result_row(self, url: str, contact: ParsedContact) -> dict:
        row = contact.model_dump()
        row["image_url"] = url
        row["quality_score"] = assess_contact_quality(contact).score
        return row

    def collect_urls(self, inputs: list[str]) -> list[str]:
        """
        Collect image URLs from arguments and URL list files.

        Each input is either a URL or a path to a text file holding one URL
        per line; blank lines and ``#`` comments are skipped.

        Returns:
            URLs in first-seen order, without duplicates.
        """
        urls: list[str] = []

        for item in inputs:
            if item.startswith(self.URL_SCHEMES):
                urls.append(item)
                continue
            path = Path(item)
            if not path.is_file():
                continue
            for line in path.read_text(encoding="utf-8").splitlines():
                line = line.strip()
                if line and not line.startswith("#"):
                    urls.append(line)

        return list(dict.fromkeys(urls))

    def to_json(self, result: BatchResult) -> str:
        """
        Format batch result as JSON.

        Args:
            result: BatchResult to format.

        Returns:
            JSON string with metadata, results, and errors.
        """
        output = {
            "metadata": {
                "total": result.total,
                "succeeded": result.succeeded,
                "failed": result.failed,
                "merged": result.merged,
                "total_time_ms": result.total_time_ms,
            },
            "results": result.results,
            "errors": result.errors,
        }
        return json.dumps(output, indent=2, ensure_ascii=False)

    def to_csv(self, result: BatchResult) -> str:
        """
        Format batch result as CSV.

        Duplicate URLs of a merged row are joined with spaces.

        Returns:
            CSV string with one row per result, then one per failed URL.
        """
        output = io.StringIO()
        fieldnames = [
            "image_url", *CONTACT_FIELDS, "quality_score", "duplicate_urls", "error",
        ]
        writer = csv.DictWriter(output, fieldnames=fieldnames)
        writer.writeheader()

        for item in result.results:
            row = {k: item.get(k) or "" for k in fieldnames}
            row["quality_score"] = item.get("quality_score", "")
            row["duplicate_urls"] = " ".join(item.get("duplicate_urls", []))
            row["error"] = ""
            writer.writerow(row)

        for item in result.errors:
            row = {k: "" for k in fieldnames}
            row["image_url"] = item["image_url"]
            row["error"] = item["error"]
            writer.writerow(row)

        return output.getvalue()
