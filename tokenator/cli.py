"""CLI entrypoints."""

import asyncio
from pathlib import Path

import click
from langsmith import traceable
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from tokenator.models.report import Report
from tokenator.models.results import InputFile
from tokenator.processors.batch_processor import BatchProcessor
from tokenator.processors.pdf_report import save_pdf_report
from tokenator.processors.report_formatter import format_report
from tokenator.processors.text_extractor import SUPPORTED_EXTENSIONS
from tokenator.tokens import DEFAULT_MODEL_IDENTIFIER, TokenCounter


console = Console()


@click.group(context_settings=dict(show_default=True))
def cli() -> None:
    """tokenator - Check whether your documents fit in a 1M token context window."""
    pass


@cli.command("count")
@click.argument("input_files", type=click.Path(exists=True, dir_okay=False), nargs=-1, required=True)
@click.option(
    "--api-key",
    type=str,
    envvar="GOOGLE_API_KEY",
    default=None,
    show_default=False,
    help="Gemini API key for exact token counts. Without it, counts are estimated.",
)
@click.option(
    "--timeout",
    type=float,
    envvar="TOKENATOR_TIMEOUT",
    default=None,
    help="Timeout in seconds for each remote count. On expiry the count is estimated.",
)
@click.option("--report", "report_file", type=click.Path(dir_okay=False), help="Write a PDF report to this path.")
@click.option("--json", "json_file", type=click.Path(dir_okay=False), help="Write a JSON report to this path.")
@click.option("--progress/--no-progress", default=False, help="Show a progress bar while processing.")
@traceable
def count(
    input_files: tuple[str, ...],
    api_key: str | None,
    timeout: float | None,
    report_file: str | None,
    json_file: str | None,
    progress: bool,
) -> None:
    """Count tokens in one or more documents.

    Supported formats: .txt, .md, .pdf and .docx.

    Examples:

        tokenator count notes.md paper.pdf

        tokenator count --report usage.pdf *.docx
    """
    method = (
        f"exact counts from [bold magenta]{DEFAULT_MODEL_IDENTIFIER}[/bold magenta]"
        if api_key
        else "[yellow]estimated counts[/yellow] (no API key)"
    )
    console.print(f"Analyzing [bold cyan]{len(input_files)}[/bold cyan] file(s) using {method}...")

    files = [InputFile.from_path(path) for path in input_files]
    processor = BatchProcessor(counter=TokenCounter(timeout=timeout), show_progress=progress)
    results = asyncio.run(processor.process(files, credential=api_key))

    report = format_report(results, processor.totals)
    _print_report(report)

    if report_file:
        try:
            save_pdf_report(report, report_file)
        except OSError as e:
            console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
            raise SystemExit(1) from e
        console.print(f"[bold green]Saved PDF report to[/bold green] [bold cyan]{escape(report_file)}[/bold cyan].")

    if json_file:
        try:
            Path(json_file).write_text(report.model_dump_json(indent=2))
        except OSError as e:
            console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
            raise SystemExit(1) from e
        console.print(f"[bold green]Saved JSON report to[/bold green] [bold cyan]{escape(json_file)}[/bold cyan].")


@cli.command("formats")
def formats() -> None:
    """List supported file extensions."""
    for extension in SUPPORTED_EXTENSIONS:
        console.print(f".{extension}")


def _print_report(report: Report) -> None:
    """Display per-file results and the total context usage."""
    console.print()

    table = Table(show_header=True, header_style="bold")
    table.add_column("File", style="cyan")
    table.add_column("Characters", justify="right")
    table.add_column("Tokens", justify="right", style="bold")
    table.add_column("Count")

    for row in report.rows:
        if row.error is not None:
            table.add_row(escape(row.file_name), "-", "-", f"[red]Failed: {escape(row.error)}[/red]")
            continue

        method = "[blue]Verified[/blue]" if row.is_exact else "[yellow]Estimated[/yellow]"
        table.add_row(escape(row.file_name), f"{row.char_count:,}", f"{row.token_count:,}", method)

    console.print(table)
    console.print()

    usage_style = "red" if report.is_over_limit else "green"
    console.print("[bold]Total Consumption:[/bold]")
    console.print(f"  Tokens: [cyan]{report.total_tokens:,}[/cyan]")
    console.print(f"  Characters: [cyan]{report.total_chars:,}[/cyan]")
    console.print(
        f"  Context usage: [{usage_style}]{report.usage_percent:.1f}%[/{usage_style}] "
        f"of {report.context_window:,} token limit"
    )

    if report.is_over_limit:
        console.print(
            "[bold red]Context window exceeded.[/bold red] "
            "You may need to split the documents or summarize them."
        )
