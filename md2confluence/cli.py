"""CLI entry point for md2confluence."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import typer
import yaml
from rich import print as rprint
from rich.logging import RichHandler
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from md2confluence.config import Md2ConfluenceConfig, load_config
from md2confluence.config.loader import DEFAULT_CONFIG_TEMPLATE, PROJECT_CONFIG
from md2confluence.confluence import (
    ConfluenceError,
    PagePublisher,
    PublishReport,
    create_client,
)
from md2confluence.converter import DiagramExtractor, KrokiRenderer, MarkdownConverter
from md2confluence.converter.frontmatter import remove_front_matter

app = typer.Typer(
    name="md2confluence",
    help="Publish Markdown to Confluence, with Mermaid diagrams rendered as images.",
)

config_app = typer.Typer(help="Manage md2confluence configuration.")
app.add_typer(config_app, name="config")

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

# Global state
_config: Md2ConfluenceConfig | None = None


def _get_config() -> Md2ConfluenceConfig:
    if _config is None:
        return load_config()
    return _config


@app.callback()
def main(
    config: Annotated[
        str | None, typer.Option("--config", "-c", help="Path to md2confluence.yaml")
    ] = None,
) -> None:
    """Global options."""
    global _config
    try:
        _config = load_config(config)
    except ValueError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    logging.basicConfig(
        level=_LOG_LEVELS[_config.log_level],
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )


def _build_converter(cfg: Md2ConfluenceConfig) -> MarkdownConverter:
    return MarkdownConverter(DiagramExtractor(KrokiRenderer(cfg.renderer)))


def _read_markdown(file: Path) -> str:
    try:
        return file.read_text(encoding="utf-8")
    except OSError as e:
        rprint(f"[red]Error:[/red] Could not read '{file}': {e}")
        raise typer.Exit(1)


def _display_report(report: PublishReport, verb: str) -> None:
    page = report.page
    lines = [
        f"[dim]Title:[/dim]        {page.title}",
        f"[dim]Page ID:[/dim]      {page.id}",
        f"[dim]Version:[/dim]      {page.version}",
        f"[dim]Attachments:[/dim]  {len(report.attachments_uploaded)} uploaded, "
        f"{len(report.attachments_skipped)} unchanged",
    ]
    if page.url:
        lines.append(f"[dim]URL:[/dim]          {page.url}")
    rprint(Panel("\n".join(lines), title=f"Page {verb}", border_style="green"))
    for failure in report.failures:
        rprint(f"[yellow]Diagram not rendered:[/yellow] {failure.filename} ({failure.reason})")


@app.command()
def convert(
    file: Path = typer.Argument(..., help="Markdown file to convert"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write markup to file"),
    assets: Path | None = typer.Option(
        None, "--assets", help="Directory to write rendered diagram PNGs to"
    ),
) -> None:
    """Convert a Markdown file to Confluence storage format without uploading."""
    cfg = _get_config()
    markdown = _read_markdown(file)
    if cfg.publish.strip_front_matter:
        markdown = remove_front_matter(markdown)

    result = asyncio.run(_build_converter(cfg).convert(markdown))

    if output:
        output.write_text(result.markup, encoding="utf-8")
        rprint(f"[green]Written to[/green] {output}")
    else:
        typer.echo(result.markup)

    if assets and result.artifacts:
        assets.mkdir(parents=True, exist_ok=True)
        for artifact in result.artifacts:
            (assets / artifact.filename).write_bytes(artifact.data)
        rprint(f"[green]Wrote {len(result.artifacts)} diagram(s) to[/green] {assets}")

    for failure in result.failures:
        rprint(f"[yellow]Diagram not rendered:[/yellow] {failure.filename} ({failure.reason})")


@app.command()
def upload(
    file: Path = typer.Argument(..., help="Markdown file to publish"),
    space: str = typer.Option(..., "--space", "-s", help="Confluence space key"),
    title: str | None = typer.Option(
        None, "--title", "-t", help="Page title (default: front matter title or first H1)"
    ),
    parent: str | None = typer.Option(None, "--parent", "-p", help="Parent page ID"),
) -> None:
    """Upload Markdown as a new Confluence page."""
    cfg = _get_config()
    markdown = _read_markdown(file)
    try:
        client = create_client(cfg.confluence)
        publisher = PagePublisher(client, cfg, _build_converter(cfg))
        report = asyncio.run(publisher.create(markdown, space, title=title, parent_id=parent))
    except (ConfluenceError, ValueError) as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    _display_report(report, "created")


@app.command()
def update(
    file: Path = typer.Argument(..., help="Markdown file to publish"),
    page: str = typer.Argument(..., help="Existing page ID or page URL"),
    title: str | None = typer.Option(None, "--title", "-t", help="New title (optional)"),
) -> None:
    """Update an existing Confluence page with Markdown content."""
    cfg = _get_config()
    markdown = _read_markdown(file)
    try:
        client = create_client(cfg.confluence)
        publisher = PagePublisher(client, cfg, _build_converter(cfg))
        report = asyncio.run(publisher.update(page, markdown, title=title))
    except (ConfluenceError, ValueError) as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    _display_report(report, "updated")


@app.command()
def spaces(
    limit: int = typer.Option(25, "--limit", "-n", min=1, help="Max spaces to return"),
    space_type: str = typer.Option(
        "all", "--type", help="Space type: global, personal, or all"
    ),
) -> None:
    """List available Confluence spaces (personal space keys start with ~)."""
    if space_type not in ("global", "personal", "all"):
        rprint(f"[red]Error:[/red] Unknown space type '{space_type}'")
        raise typer.Exit(1)

    cfg = _get_config()
    try:
        client = create_client(cfg.confluence)
        found = asyncio.run(client.list_spaces(limit, space_type))  # type: ignore[arg-type]
    except (ConfluenceError, ValueError) as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    table = Table(title=f"Spaces ({len(found)}, type: {space_type})")
    table.add_column("Key", style="cyan")
    table.add_column("Name")
    table.add_column("Type", style="dim")
    for s in found:
        table.add_row(s.key, s.name, s.type)
    rprint(table)


@app.command()
def search(
    query: str = typer.Argument(..., help="Search text"),
    space: str | None = typer.Option(None, "--space", "-s", help="Limit to a space key"),
    limit: int = typer.Option(10, "--limit", "-n", min=1, help="Max results"),
) -> None:
    """Search for Confluence pages."""
    cfg = _get_config()
    try:
        client = create_client(cfg.confluence)
        hits = asyncio.run(client.search_pages(query, space, limit))
    except (ConfluenceError, ValueError) as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not hits:
        rprint(f"[dim]No pages found for '{query}'[/dim]")
        return

    table = Table(title=f"Pages ({len(hits)})")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Space", style="green")
    table.add_column("URL", style="dim")
    for hit in hits:
        table.add_row(hit.id, hit.title, hit.space_key, hit.url)
    rprint(table)


@app.command()
def whoami() -> None:
    """Show the authenticated user and their personal space key."""
    cfg = _get_config()
    try:
        client = create_client(cfg.confluence)
        user = asyncio.run(client.get_current_user())
    except (ConfluenceError, ValueError) as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    rprint(
        f"[bold]{user.display_name or user.account_id}[/bold] "
        f"{user.email or ''}\n[dim]Personal space:[/dim] ~{user.account_id}"
    )


@config_app.command("show")
def config_show() -> None:
    """Show current resolved configuration."""
    cfg = _get_config()
    rprint(Syntax(yaml.dump(cfg.model_dump(), default_flow_style=False), "yaml"))


@config_app.command("init")
def config_init(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config"),
) -> None:
    """Create default md2confluence.yaml in current directory."""
    target = Path(PROJECT_CONFIG)
    if target.exists() and not force:
        rprint("[yellow]md2confluence.yaml already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(1)
    target.write_text(DEFAULT_CONFIG_TEMPLATE)
    rprint(f"[green]Created[/green] {target}")


if __name__ == "__main__":
    app()
