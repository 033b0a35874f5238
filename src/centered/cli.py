"""CLI entry point for Centered."""

import json
import logging
import os
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .availability import covering_record
from .client import ModelClient, ModelRequestError
from .config import (
    CONFIG_FILE,
    VALID_ENDPOINTS,
    Config,
    LLMConfig,
    get_example_configs,
    load_config,
    save_config,
)
from .models import AnalysisRecord, JournalEntry, ParsedAnalysis
from .modes import current_window
from .parsing import parse_analysis
from .runner import AnalysisError, AnalysisRunner
from .session import SessionState, reduce_session
from .windows import format_window

console = Console()

LOG_FILE = Path.home() / ".cache" / "centered" / "debug.log"


def configure_logging(config: Config) -> None:
    """Configure logging based on config (opt-in debug logging)."""
    if config.debug_logging:
        # Debug logging enabled - use rotating file handler
        LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            LOG_FILE,
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3,
        )
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            handlers=[handler],
        )
        logging.info("Centered starting (debug logging enabled)")
    else:
        # Default: only warn+ so command output stays clean
        logging.basicConfig(
            level=logging.WARNING,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )


def _read_json_list(path: Path) -> list[dict]:
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise click.ClickException(f"Could not read {path}: {e}")
    if not isinstance(data, list):
        raise click.ClickException(f"{path} must contain a JSON list")
    return data


def load_records(path: Path | None) -> list[AnalysisRecord]:
    """Load analysis history rows from a JSON file."""
    if path is None:
        return []
    try:
        return [AnalysisRecord.from_dict(row) for row in _read_json_list(path)]
    except (KeyError, TypeError, ValueError) as e:
        raise click.ClickException(f"Invalid analysis record in {path}: {e}")


def load_entries(path: Path | None) -> list[JournalEntry]:
    """Load journal entries from a JSON file."""
    if path is None:
        return []
    try:
        return [JournalEntry.from_dict(row) for row in _read_json_list(path)]
    except (KeyError, TypeError, ValueError) as e:
        raise click.ClickException(f"Invalid journal entry in {path}: {e}")


def _reference_time(date: datetime | None) -> datetime:
    return date if date is not None else datetime.now()


def _mood_table(parsed: ParsedAnalysis) -> Table:
    table = Table(title="Moods", show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Mood", style="cyan")
    table.add_column("Count", justify="right")
    for mood in parsed.mood_counts:
        table.add_row(str(mood.order), mood.mood, str(mood.count))
    return table


def _print_parsed(parsed: ParsedAnalysis) -> None:
    if parsed.mood_counts:
        console.print(_mood_table(parsed))
    else:
        console.print("[dim]No mood tally found[/dim]")
    score = parsed.wellness_score
    console.print(f"\n[bold]Score:[/bold]   {score if score is not None else '[dim]—[/dim]'}")
    if parsed.summary:
        console.print("\n[bold]Summary:[/bold]")
        console.print(parsed.summary)


def _print_state(state: SessionState) -> None:
    console.print(f"  Last analysis:  [cyan]{state.date_range_display}[/cyan]")
    if state.latest_record is not None:
        console.print(f"  Last mode:      [cyan]{state.mode.value}[/cyan]")
        console.print(f"  Logged days:    [cyan]{state.stats.logs_count}[/cyan]")
        console.print(f"  Streak:         [cyan]{state.stats.streak_count}[/cyan]")
        console.print(f"  Favorite time:  [cyan]{state.stats.favorite_log_time}[/cyan]")
        _print_parsed(
            ParsedAnalysis(
                mood_counts=state.mood_counts,
                wellness_score=state.wellness_score,
                summary=state.summary_text,
            )
        )


@click.group(invoke_without_command=True)
@click.option("--debug-logging/--no-debug-logging", default=None, help="Enable debug logging to file")
@click.option("--version", "-v", is_flag=True, help="Show version")
@click.pass_context
def main(ctx: click.Context, debug_logging: bool | None, version: bool) -> None:
    """Centered - weekly and monthly journal analyses."""
    if version:
        console.print(f"centered v{__version__}")
        return

    config = load_config()
    # Apply CLI overrides (not saved to config file)
    if debug_logging is not None:
        config.debug_logging = debug_logging
    configure_logging(config)
    ctx.obj = config

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@main.command()
@click.option("--history", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="JSON list of past analyses")
@click.option("--entries", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="JSON list of journal entries (for stats)")
@click.option("--date", type=click.DateTime(formats=["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S"]), help="Reference date (default: now)")
def status(history: Path | None, entries: Path | None, date: datetime | None) -> None:
    """Show which analysis is due and whether it can run.

    Examples:
      centered status --history analyses.json
      centered status --history analyses.json --date 2024-04-08
    """
    now = _reference_time(date)
    records = load_records(history)
    state = reduce_session(records, now, load_entries(entries))
    window = current_window(now)

    console.print("\n[bold]Due Analysis:[/bold]")
    console.print(f"  Mode:      [cyan]{window.mode.value}[/cyan]")
    console.print(f"  Window:    [cyan]{format_window(window)}[/cyan] ({window.start} to {window.end})")
    if state.is_analysis_available:
        console.print("  Available: [green]yes[/green]")
    else:
        covering = covering_record(now, records)
        when = covering.created_at.isoformat() if covering else "?"
        console.print(f"  Available: [red]no[/red] (analyzed {when})")

    console.print("\n[bold]Latest Analysis:[/bold]")
    _print_state(state)


@main.command()
@click.argument("response_file", type=click.File("r"))
def parse(response_file) -> None:
    """Parse a model reply into moods, score, and summary.

    Pass - to read the reply from stdin.
    """
    _print_parsed(parse_analysis(response_file.read()))


@main.command()
@click.option("--entries", required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path), help="JSON list of journal entries")
@click.option("--history", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="JSON list of past analyses")
@click.option("--date", type=click.DateTime(formats=["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S"]), help="Reference date (default: now)")
@click.pass_obj
def analyze(config: Config, entries: Path, history: Path | None, date: datetime | None) -> None:
    """Run the due analysis and print the new record as JSON.

    The record is not stored; redirect the output to keep it.
    """
    runner = AnalysisRunner(ModelClient(config.llm), config)
    records = load_records(history) if history else None
    try:
        record = runner.run(load_entries(entries), history=records, now=_reference_time(date))
    except AnalysisError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)
    except ModelRequestError as e:
        console.print(f"[red]Error:[/red] {e.user_message}")
        raise SystemExit(1)

    click.echo(json.dumps(record.to_dict(), indent=2))


@main.command()
@click.option("--url", help="LLM server API base URL (e.g., http://localhost:1234/v1)")
@click.option("--model", help="LLM model name (e.g., gpt-5 or anthropic/claude-3-5-haiku-20241022)")
@click.option("--endpoint", type=click.Choice(list(VALID_ENDPOINTS)), help="Request shape: reasoning or chat")
@click.option("--llm-preset", "preset", type=click.Choice(list(get_example_configs())), help="Use preset LLM configuration")
@click.option("--show", is_flag=True, help="Show current configuration")
@click.pass_obj
def config(current_config: Config, url: str | None, model: str | None, endpoint: str | None, preset: str | None, show: bool) -> None:
    """Configure Centered settings.

    Examples:
      centered config --llm-preset anthropic     # Use Anthropic via litellm
      centered config --model gpt-5 --endpoint reasoning
      centered config --show                     # Show current config
    """
    if show:
        console.print("\n[bold]LLM Configuration:[/bold]")
        console.print(f"  Model:    [cyan]{current_config.llm.model}[/cyan]")
        console.print(f"  Endpoint: [cyan]{current_config.llm.endpoint}[/cyan]")
        if current_config.llm.api_base:
            console.print(f"  API Base: [cyan]{current_config.llm.api_base}[/cyan]")
        console.print(f"  Debug Logging: [cyan]{current_config.debug_logging}[/cyan]")
        console.print(f"\nConfig file: [dim]{CONFIG_FILE}[/dim]")

        for name in ("CENTERED_LLM_MODEL", "CENTERED_LLM_ENDPOINT", "CENTERED_LLM_API_BASE", "CENTERED_DEBUG_LOGGING"):
            if os.getenv(name):
                console.print(f"[yellow]Note:[/yellow] {name} is set: {os.getenv(name)}")
        return

    if preset:
        preset_config = get_example_configs()[preset]
        console.print(f"Using [cyan]{preset_config['description']}[/cyan] preset")
        new_llm = LLMConfig(
            model=preset_config["model"],
            endpoint=preset_config["endpoint"],
            api_base=preset_config.get("api_base"),
        )
    elif url or model or endpoint:
        # Custom LLM configuration
        new_llm = LLMConfig(
            model=model or current_config.llm.model,
            endpoint=endpoint or current_config.llm.endpoint,
            api_base=url or current_config.llm.api_base,
        )
    else:
        console.print("\n[bold]LLM Presets:[/bold]\n")
        for name, cfg in get_example_configs().items():
            console.print(f"  [cyan]{name:12}[/cyan] {cfg['description']}")
            if "api_base" in cfg:
                console.print(f"               API Base: {cfg['api_base']}")
            console.print(f"               Model:    {cfg['model']} ({cfg['endpoint']})\n")
        console.print("Use --llm-preset to apply an LLM preset.")
        console.print("Use --show to view current configuration.")
        return

    save_config(
        Config(
            llm=new_llm,
            analyzer=current_config.analyzer,
            debug_logging=current_config.debug_logging,
        )
    )

    console.print("\n[green]Configuration saved![/green]")
    console.print(f"  Model:    [cyan]{new_llm.model}[/cyan]")
    console.print(f"  Endpoint: [cyan]{new_llm.endpoint}[/cyan]")
    if new_llm.api_base:
        console.print(f"  API Base: [cyan]{new_llm.api_base}[/cyan]")
    console.print(f"\nSaved to: [dim]{CONFIG_FILE}[/dim]")


if __name__ == "__main__":
    main()
