"""lbcscraper CLI - log in to leboncoin, search listings and contact sellers."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated, Optional

import structlog
import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from lbcscraper.config import Settings, cfg
from lbcscraper.errors import ScraperError
from lbcscraper.models import ContactResult, ListingRecord
from lbcscraper.scraper import (
    DEFAULT_KEYWORD,
    DEFAULT_LIMIT,
    DEFAULT_SEARCH_QUERY,
    ScraperSession,
)

console = Console()

app = typer.Typer(
    name="lbcscraper",
    help="lbcscraper - leboncoin listings scraper",
    no_args_is_help=True,
)


def configure_logging(verbose: bool = False, level: str = "INFO") -> None:
    """Configure structlog for console output."""
    log_level = logging.DEBUG if verbose else getattr(logging, level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False),
            structlog.processors.CallsiteParameterAdder(
                {
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                }
            ),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


@app.callback()
def cli_callback(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable debug logs.")
    ] = False,
):
    """lbcscraper - leboncoin listings scraper."""
    configure_logging(verbose=verbose, level=cfg.log_level)


@app.command("run")
def run_command(
    limit: int = typer.Option(
        DEFAULT_LIMIT, min=0, help="Maximum number of listings to extract."
    ),
    query: str = typer.Option(
        DEFAULT_SEARCH_QUERY, help="Text typed into the site search box."
    ),
    keyword: str = typer.Option(
        DEFAULT_KEYWORD, help="Keep only listings whose title contains this."
    ),
    contact: Annotated[
        bool,
        typer.Option("--contact/--no-contact", help="Open the contact form of each listing."),
    ] = False,
    headless: Annotated[
        Optional[bool],
        typer.Option("--headless/--no-headless", help="Override the headless setting."),
    ] = None,
    export: Annotated[
        Optional[Path], typer.Option(help="Write the listings to this JSON file.")
    ] = None,
):
    """Log in, search listings and optionally open their contact form."""
    settings = cfg
    if headless is not None:
        settings = cfg.model_copy(
            update={"browser": cfg.browser.model_copy(update={"headless": headless})}
        )

    console.print(
        Panel(
            f"Searching '{escape(query)}' (keyword: {escape(keyword)})",
            style="bold blue",
        )
    )

    try:
        records, contacts = asyncio.run(
            _scrape(
                settings=settings,
                limit=limit,
                query=query,
                keyword=keyword,
                contact=contact,
            )
        )
    except ScraperError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    _print_records(records)
    for result in contacts:
        if result.success:
            console.print(f"[green]✓ Contact form opened: {escape(result.link)}[/green]")
        else:
            reason = escape(result.reason or "unknown")
            console.print(f"[red]✗ Contact failed: {escape(result.link)} ({reason})[/red]")

    if export:
        write_records_to_json(records, export)
        console.print(f"[dim]  → Saved {len(records)} listings to {export}[/dim]")

    console.print(
        Panel(
            f"Completed: {len(records)} listings extracted",
            style="green" if records else "yellow",
        )
    )


@app.command("selectors")
def selectors_command():
    """Show the CSS selectors currently in use."""
    try:
        selectors = cfg.load_selectors()
    except ScraperError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    table = Table(title="Site selectors")
    table.add_column("Name", style="cyan")
    table.add_column("Selector")
    for name, selector in selectors.model_dump().items():
        table.add_row(name, escape(selector))
    console.print(table)


async def _scrape(
    settings: Settings,
    limit: int,
    query: str,
    keyword: str,
    contact: bool,
) -> tuple[list[ListingRecord], list[ContactResult]]:
    contacts: list[ContactResult] = []
    async with ScraperSession(settings=settings) as scraper:
        await scraper.authenticate()
        records = await scraper.get_latest_listings(limit, query, keyword)
        if contact:
            for record in records:
                contacts.append(await scraper.contact(record.link))
    return records, contacts


def _print_records(records: list[ListingRecord]) -> None:
    table = Table(title=f"{len(records)} listings")
    table.add_column("Title", style="bold")
    table.add_column("Price", justify="right")
    table.add_column("Link", style="dim")
    for record in records:
        table.add_row(escape(record.title), escape(record.price), escape(record.link))
    console.print(table)


def write_records_to_json(records: list[ListingRecord], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    data = [record.model_dump(mode="json") for record in records]
    path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")


def main() -> None:
    """CLI for the lbcscraper application."""
    app()
