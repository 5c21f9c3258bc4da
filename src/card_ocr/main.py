"""CLI entry point for the card OCR pipeline."""

import asyncio
import json
from pathlib import Path
from typing import Annotated

import typer
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from card_ocr.batch import BatchProcessor
from card_ocr.config import Config
from card_ocr.errors import CardOCRError
from card_ocr.extractor.gemini import GeminiExtractor
from card_ocr.models.contact import ParsedContact
from card_ocr.quality import assess_contact_quality
from card_ocr.scanner import CardScanner
from card_ocr.vcard import build_vcard

app = typer.Typer(
    name="cardocr",
    help="Extract contact information from business card images.",
    add_completion=False,
)
console = Console()


def _create_scanner(model: str | None, api_key: str | None) -> CardScanner:
    """Create a scanner from environment config and CLI overrides."""
    config = Config.from_env()
    if model:
        config.model = model
    if api_key:
        config.api_key = api_key
    return CardScanner(GeminiExtractor.from_config(config), timeout=config.timeout)


@app.command()
def scan(
    image_url: Annotated[
        str,
        typer.Argument(help="URL of the business card image"),
    ],
    output_json: Annotated[
        bool,
        typer.Option(
            "--json",
            "-j",
            help="Output raw JSON instead of formatted output",
        ),
    ] = False,
    raw: Annotated[
        bool,
        typer.Option(
            "--raw",
            help="Only transcribe the card text, skip structured extraction",
        ),
    ] = False,
    vcard: Annotated[
        Path | None,
        typer.Option(
            "--vcard",
            help="Also write the contact as a .vcf file",
        ),
    ] = None,
    model: Annotated[
        str | None,
        typer.Option(
            "--model",
            "-m",
            help="Gemini model name (default: GEMINI_MODEL or gemini-1.5-flash)",
        ),
    ] = None,
    api_key: Annotated[
        str | None,
        typer.Option(
            "--api-key",
            help="Gemini API key (default: GEMINI_API_KEY)",
        ),
    ] = None,
):
    """Extract contact information from a business card image."""
    try:
        scanner = _create_scanner(model, api_key)

        if raw:
            text = asyncio.run(scanner.transcribe(image_url))
            if output_json:
                print(json.dumps({"raw_text": text}, indent=2, ensure_ascii=False))
            else:
                rprint(Panel(text, title="Card Text", border_style="blue"))
            return

        contact = asyncio.run(scanner.scan(image_url))

        if output_json:
            print(contact.model_dump_json(indent=2, exclude_none=True))
        else:
            _print_formatted(contact)

        if vcard is not None:
            vcard.write_text(build_vcard(contact), encoding="utf-8")
            console.print(f"vCard written to {vcard}")

    except CardOCRError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


def _print_formatted(contact: ParsedContact):
    """Print formatted contact info."""
    console.print()

    if contact.is_empty:
        console.print("[yellow]No contact details found on this card.[/yellow]")
        console.print()
        return

    if contact.name:
        console.print(f"[bold cyan]{contact.name}[/bold cyan]")
    if contact.services:
        console.print(f"[dim]{contact.services}[/dim]")
    if contact.company:
        console.print(f"[green]{contact.company}[/green]")

    console.print()

    table = Table(show_header=False, box=None)
    table.add_column("Type", style="dim")
    table.add_column("Value")
    for label, value in (
        ("Phone", contact.phone),
        ("Email", contact.email),
        ("Address", contact.address),
    ):
        if value:
            table.add_row(label, value)
    if table.row_count:
        console.print(table)
        console.print()

    quality = assess_contact_quality(contact)
    console.print(
        f"[dim]Quality: {quality.score}/100, "
        f"{quality.completeness:.0f}% complete[/dim]"
    )
    for issue in quality.issues:
        console.print(f"[yellow]![/yellow] {issue}")
    console.print()


@app.command()
def batch(
    inputs: Annotated[
        list[str],
        typer.Argument(
            help="Image URLs or text files with one URL per line",
        ),
    ],
    output: Annotated[
        Path,
        typer.Option(
            "--output",
            "-o",
            help="Output file path (JSON or CSV)",
        ),
    ],
    format: Annotated[
        str,
        typer.Option(
            "--format",
            "-f",
            help="Output format: json or csv",
        ),
    ] = "json",
    dedupe: Annotated[
        bool,
        typer.Option(
            "--dedupe",
            help="Merge results that describe the same person",
        ),
    ] = False,
    model: Annotated[
        str | None,
        typer.Option(
            "--model",
            "-m",
            help="Gemini model name",
        ),
    ] = None,
    api_key: Annotated[
        str | None,
        typer.Option(
            "--api-key",
            help="Gemini API key (default: GEMINI_API_KEY)",
        ),
    ] = None,
):
    """Process multiple business card image URLs."""
    format = format.lower()
    if format not in ("json", "csv"):
        console.print(f"[red]Error:[/red] Invalid format '{format}'. Use 'json' or 'csv'.")
        raise typer.Exit(1)

    processor = BatchProcessor(_create_scanner(model, api_key), dedupe=dedupe)

    urls = processor.collect_urls(inputs)

    if not urls:
        console.print("[yellow]Warning:[/yellow] No image URLs found to process.")
        raise typer.Exit(0)

    console.print(f"Processing {len(urls)} image(s)...")

    try:
        result = asyncio.run(processor.process(urls))
    except CardOCRError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if format == "csv":
        content = processor.to_csv(result)
    else:
        content = processor.to_json(result)

    output.write_text(content, encoding="utf-8")

    console.print(
        f"[green]Done:[/green] {result.succeeded} succeeded, "
        f"{result.failed} failed, {result.total_time_ms:.1f}ms total"
    )
    if result.merged:
        console.print(f"Merged {result.merged} duplicate(s)")
    console.print(f"Output: {output}")


@app.command()
def version():
    """Show version information."""
    from card_ocr import __version__

    console.print(f"cardocr version {__version__}")


if __name__ == "__main__":
    app()
