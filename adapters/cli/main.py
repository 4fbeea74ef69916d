"""Episode Insights CLI: surface patterns from an exported episode journal."""

import json
import sys
from datetime import datetime
from pathlib import Path
from typing import NoReturn

import click
from rich.console import Console
from rich.table import Table

from adapters.backup.codec import (
    export_backup_json,
    export_episodes_csv,
    load_backup_json,
    load_episode_file,
    merge_episodes,
)
from insights.config import get_config
from insights.domain.models import Finding
from insights.observability import configure_logging
from insights.services.pattern_engine import PatternEngine


def _parse_now(ctx, param, value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"'{value}' is not an ISO-8601 timestamp") from None
    return parsed if parsed.tzinfo is not None else parsed.astimezone()


def _fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _write(text: str, output: Path | None) -> None:
    if output is None:
        click.echo(text, nl=not text.endswith("\n"))
    else:
        output.write_text(text, encoding="utf-8")
        click.echo(f"Wrote {output}", err=True)


def _render_table(findings: list[Finding]) -> None:
    console = Console()
    if not findings:
        console.print("No patterns found yet. Keep logging and check back later.")
        return

    table = Table(title="Patterns in your journal")
    table.add_column("Observation", style="cyan", no_wrap=True)
    table.add_column("Details", style="white")
    for finding in findings:
        table.add_row(finding.title, finding.message)
    console.print(table)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log at the configured LOG_LEVEL")
@click.pass_context
def cli(ctx, verbose):
    """Episode Insights: patterns from your episode journal."""
    config = get_config()
    logging_config = config.logging
    if not verbose:
        logging_config = logging_config.model_copy(update={"level": "WARNING"})
    configure_logging(logging_config)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--now", callback=_parse_now,
              help="Reference time (ISO-8601), default: current time")
@click.option("--format", "fmt", type=click.Choice(["table", "json"]), default="table",
              help="Output format")
@click.option("--trend", type=click.Choice(["midpoint", "weekly"]), default=None,
              help="Rising intensity bucketing (overrides TREND_STRATEGY)")
@click.option("--basic", is_flag=True, help="Run only the five core rules")
@click.pass_context
def analyse(ctx, path, now, fmt, trend, basic):
    """Analyse a backup JSON or CSV export and print the patterns found."""
    result = load_episode_file(path)
    if result.is_err():
        _fail(str(result.unwrap_err()))

    overrides: dict[str, object] = {}
    if trend:
        overrides["trend_strategy"] = trend
    if basic:
        overrides["include_extended_rules"] = False
    engine_config = ctx.obj["config"].engine.model_copy(update=overrides)

    findings = PatternEngine(engine_config).analyse(result.unwrap(), now)

    if fmt == "json":
        click.echo(json.dumps([f.model_dump() for f in findings], indent=2))
    else:
        _render_table(findings)


@cli.command("export-csv")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Write to a file instead of stdout")
def export_csv(path, output):
    """Convert a backup JSON file into a CSV export."""
    result = load_backup_json(path.read_text(encoding="utf-8"))
    if result.is_err():
        _fail(str(result.unwrap_err()))
    _write(export_episodes_csv(result.unwrap().episodes), output)


@cli.command()
@click.argument("current", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("incoming", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--mode", type=click.Choice(["merge", "replace"]), default="merge",
              help="merge by episode id, or replace the current log")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Write to a file instead of stdout")
def merge(current, incoming, mode, output):
    """Import INCOMING backup into CURRENT backup and print the combined backup."""
    current_result = load_backup_json(current.read_text(encoding="utf-8"))
    incoming_result = load_backup_json(incoming.read_text(encoding="utf-8"))
    for name, result in ((current, current_result), (incoming, incoming_result)):
        if result.is_err():
            _fail(f"{name}: {result.unwrap_err()}")

    base = current_result.unwrap()
    imported = incoming_result.unwrap()
    episodes = merge_episodes(base.episodes, imported.episodes, mode=mode)
    # Imported settings win, matching the app's import behaviour
    settings = base.settings.model_copy(
        update=imported.settings.model_dump(exclude_unset=True)
    )
    _write(export_backup_json(episodes, settings), output)


if __name__ == "__main__":
    cli()
