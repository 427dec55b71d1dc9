"""CLI entry point for VaultSort."""

import asyncio
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.table import Table

from .config import load_config
from .errors import ConfigurationError, VaultSortError

console = Console()

STRENGTH_STYLES = {"strong": "green", "moderate": "yellow", "weak": "red"}


@click.group()
@click.option("--config", "-c", "config_path", default=None, help="Path to config file")
@click.option("--vault", default=None, help="Vault directory (overrides config)")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, config_path, vault, verbose):
    """VaultSort - recommend the best folder for your notes."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["vault"] = vault


def _get_config(ctx) -> dict:
    config = load_config(ctx.obj.get("config_path"))
    if ctx.obj.get("vault"):
        config["vault_path"] = str(Path(ctx.obj["vault"]).expanduser().resolve())
    return config


def _get_engine(ctx):
    from .engine import RecommendationEngine

    config = _get_config(ctx)
    try:
        return RecommendationEngine.from_config(config)
    except ConfigurationError as e:
        console.print(f"[red]{e}[/]")
        sys.exit(1)


def _fmt_confidence(rec) -> str:
    text = f"{rec.confidence:.0f}%"
    if not rec.has_confidence:
        text = "n/a"
    if rec.enhanced_confidence is not None and rec.enhanced_confidence != rec.confidence:
        text += f" → {rec.enhanced_confidence:.0f}%"
    return text


@cli.command()
@click.argument("note")
@click.option("--context", "user_context", default="", help="Extra guidance for the recommendation")
@click.pass_context
def recommend(ctx, note, user_context):
    """Recommend a folder for NOTE (vault-relative path)."""
    engine = _get_engine(ctx)
    if not engine.reader.exists(note):
        console.print(f"[red]Note not found: {note}[/]")
        sys.exit(1)

    console.print(f"[blue]Analyzing '{note}'...[/]\n")
    try:
        result = asyncio.run(engine.recommend_note(note, user_context))
    except VaultSortError as e:
        console.print(f"[red]✗ {type(e).__name__}: {e}[/]")
        sys.exit(1)

    table = Table(title="Folder Recommendations")
    table.add_column("", width=3)
    table.add_column("Folder", style="cyan")
    table.add_column("Confidence", justify="right")
    table.add_column("Similarity", justify="right", style="dim")
    table.add_column("Match")
    table.add_column("Reasoning", max_width=60)

    for i, rec in enumerate(result.candidates()):
        style = STRENGTH_STYLES[rec.match_strength]
        table.add_row(
            "★" if i == 0 else str(i),
            rec.folder_path or "/",
            _fmt_confidence(rec),
            f"{rec.similarity:.3f}" if rec.similarity is not None else "-",
            f"[{style}]{rec.match_strength}[/]",
            rec.reasoning,
        )
    console.print(table)

    if result.should_create_new_folder and result.suggested_new_folder:
        new = result.suggested_new_folder
        console.print(f"\n[bold]Suggested new folder:[/] {new.name}" + (f" (in {new.parent})" if new.parent else ""))
        if new.reasoning:
            console.print(f"  [dim]{new.reasoning}[/]")

    meta = result.metadata
    console.print(
        f"\n[dim]{meta.tokens_used} tokens · {meta.processing_time_ms:.0f} ms · {', '.join(meta.models_used)}[/]"
    )


@cli.command()
@click.argument("folder")
@click.option("--threshold", "-t", type=float, default=None, help="Minimum confidence to propose a move")
@click.pass_context
def classify(ctx, folder, threshold):
    """Propose destinations for every note in FOLDER. Nothing is moved."""
    engine = _get_engine(ctx)
    notes = engine.reader.list_notes(folder)
    if not notes:
        console.print("[yellow]No markdown notes to classify.[/]")
        return

    console.print(f"[blue]Classifying {len(notes)} note(s) in '{folder or '/'}'...[/]")
    try:
        outcome = asyncio.run(engine.classify_folder(folder, threshold=threshold))
    except VaultSortError as e:
        console.print(f"[red]✗ {type(e).__name__}: {e}[/]")
        sys.exit(1)

    if outcome.moves:
        table = Table(title="Proposed Moves")
        table.add_column("Note", style="cyan")
        table.add_column("Destination", style="green")
        table.add_column("Confidence", justify="right")
        table.add_column("Reasoning", max_width=60)
        for move in outcome.moves:
            table.add_row(move.source_path, move.destination, f"{move.confidence:.0f}%", move.reasoning)
        console.print(table)
    else:
        console.print("[yellow]No recommendations found above threshold.[/]")

    for path, error in outcome.failures.items():
        console.print(f"  [red]✗ {path}: {error}[/]")


@cli.command()
@click.pass_context
def profiles(ctx):
    """Show folder profiles with centroid and coherence status."""
    engine = _get_engine(ctx)
    folders = asyncio.run(engine.folder_profiles())
    if not folders:
        console.print("[yellow]No folders found in vault.[/]")
        return

    table = Table(title="Folder Profiles")
    table.add_column("Folder", style="cyan")
    table.add_column("Notes", justify="right")
    table.add_column("Coherence", justify="right", style="green")
    table.add_column("Centroid")
    table.add_column("Examples", max_width=50, style="dim")
    for fp in folders:
        table.add_row(
            fp.folder_path,
            str(fp.file_count),
            f"{fp.coherence:.3f}",
            "✓" if fp.has_valid_centroid else "-",
            ", ".join(fp.examples),
        )
    console.print(table)


@cli.command()
@click.pass_context
def status(ctx):
    """Show which embedding backends are usable."""
    engine = _get_engine(ctx)
    s = engine.store.status()
    colour = "green" if s.connected else "red"
    console.print(f"[{colour}]{s.message}[/]")
    for name, ok in s.backends.items():
        console.print(f"  {'✓' if ok else '✗'} {name}")


@cli.command()
@click.pass_context
def analyze(ctx):
    """Ask for an organization review of the whole vault."""
    engine = _get_engine(ctx)

    async def _run():
        folders = await engine.folder_profiles()
        return await engine.analyze_vault(folders)

    try:
        report = asyncio.run(_run())
    except VaultSortError as e:
        console.print(f"[red]✗ {type(e).__name__}: {e}[/]")
        sys.exit(1)

    console.print("\n[bold]📊 Vault Analysis[/]")
    console.print(f"  Notes: {report.total_notes} in {report.total_folders} folder(s)")
    console.print(f"  Average per folder: {report.avg_notes_per_folder:.1f}")
    if report.largest_folder:
        console.print(f"  Largest: {report.largest_folder[0]} ({report.largest_folder[1]})")
    if report.smallest_folder:
        console.print(f"  Smallest: {report.smallest_folder[0]} ({report.smallest_folder[1]})")
    if report.issues:
        console.print("\n[bold]Issues:[/]")
        for issue in report.issues:
            console.print(f"  \\[{issue.get('severity', 'low')}] {issue.get('description', '')}")
    if report.recommendations:
        console.print("\n[bold]Recommendations:[/]")
        for rec in report.recommendations:
            console.print(f"  → ({rec.get('type', '?')}) {rec.get('description', '')}")


@cli.command("suggest-names")
@click.argument("note")
@click.option("--context", "user_context", default="", help="Extra guidance for the suggestions")
@click.pass_context
def suggest_names(ctx, note, user_context):
    """Suggest new folder names for NOTE."""
    engine = _get_engine(ctx)

    async def _run():
        document = await engine.document_profile(note)
        return await engine.suggest_folder_names(document, user_context)

    try:
        names = asyncio.run(_run())
    except (VaultSortError, OSError) as e:
        console.print(f"[red]✗ {e}[/]")
        sys.exit(1)

    if not names:
        console.print("[yellow]No folder names suggested.[/]")
        return
    for name in names:
        console.print(f"  • {name}")


@cli.command("folder-note")
@click.argument("folder")
@click.pass_context
def folder_note(ctx, folder):
    """Draft a folder note for FOLDER and print it. Nothing is written."""
    engine = _get_engine(ctx)
    console.print(f"[blue]Generating note for '{folder}'...[/]\n")
    try:
        content = asyncio.run(engine.generate_folder_note(folder))
    except VaultSortError as e:
        console.print(f"[red]✗ {type(e).__name__}: {e}[/]")
        sys.exit(1)
    console.print(Markdown(content))


if __name__ == "__main__":
    cli()
