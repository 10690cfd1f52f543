"""
CLI entry point for eventsift.

Commands:
    run     Run a sifter as a relay plugin (JSON lines on stdin/stdout)
    check   Evaluate the requests in a file and show the decisions

Architecture Note:
    The CLI is intentionally thin - it loads settings, imports the sifter
    tree and delegates to eventsift.runner. Sifter trees are regular Python
    objects and can be used without the CLI.
"""

import json
import traceback
from pathlib import Path
from typing import Annotated, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from eventsift import __version__
from eventsift.config import RunnerSettings, load_settings, resolve_sifter
from eventsift.errors import EventSiftError
from eventsift.logging import configure_logging
from eventsift.runner import Runner
from eventsift.schema import Action, load_request_from_string

app = typer.Typer(
    name="eventsift",
    help="Accept, reject or shadow-reject relay events with composable sifters.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]eventsift[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    eventsift - composable event sifters for Nostr relays.
    """
    pass


def _load(sifter_ref: str, config_path: Path | None, debug: bool) -> tuple[Runner, RunnerSettings]:
    """Load settings and sifter, exiting with code 1 on failure."""
    try:
        settings = load_settings(config_path) if config_path else RunnerSettings()
        sifter = resolve_sifter(sifter_ref)
    except EventSiftError as e:
        err_console.print(f"[red]{e}[/red]")
        if debug:
            err_console.print(f"[dim]{traceback.format_exc()}[/dim]")
        raise typer.Exit(code=1)
    return Runner(sifter, settings), settings


@app.command()
def run(
    sifter_ref: Annotated[
        str,
        typer.Argument(help='Sifter to run, as "package.module:attribute".'),
    ],
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to the runner settings YAML file.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ] = None,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Show full tracebacks on startup errors."),
    ] = False,
) -> None:
    """
    Run a sifter as a relay plugin.

    Reads one JSON request per line from stdin and writes one JSON decision
    per line to stdout. Logs go to stderr.

    Example:
        $ eventsift run my_relay.policy:build --config settings.yaml
    """
    runner, settings = _load(sifter_ref, config_path, debug)
    configure_logging(settings.log_level, settings.json_logs)
    runner.run()


@app.command()
def check(
    sifter_ref: Annotated[
        str,
        typer.Argument(help='Sifter to evaluate, as "package.module:attribute".'),
    ],
    input_path: Annotated[
        Path,
        typer.Argument(
            help="File with one JSON request per line.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output decisions in JSON format."),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Show full tracebacks on errors."),
    ] = False,
) -> None:
    """
    Evaluate every request in a file and show the decisions.

    Failures raised by the sifter are reported as errors instead of being
    turned into decisions. Exits with code 1 if any line failed.

    Example:
        $ eventsift check my_relay.policy:build requests.jsonl
    """
    runner, settings = _load(sifter_ref, None, debug)
    configure_logging("warning", settings.json_logs)

    rows: list[dict] = []
    for lineno, line in enumerate(input_path.read_text().splitlines(), start=1):
        if not line.strip():
            continue
        row: dict = {"line": lineno, "id": "", "action": None, "msg": "", "error": None}
        try:
            request = load_request_from_string(line)
            row["id"] = request.event.id
            decision = runner.process(request)
            row["action"] = decision.action.value
            row["msg"] = decision.msg
        except ValidationError as e:
            row["error"] = f"malformed input: {e.error_count()} validation error(s)"
        except EventSiftError as e:
            row["error"] = str(e)
            if debug:
                err_console.print(f"[dim]{traceback.format_exc()}[/dim]")
        except Exception as e:
            row["error"] = f"{type(e).__name__}: {e}"
            if debug:
                err_console.print(f"[dim]{traceback.format_exc()}[/dim]")
        rows.append(row)

    if json_output:
        print(json.dumps(rows, indent=2))
    else:
        _display_decisions(rows)

    if any(row["error"] for row in rows):
        raise typer.Exit(code=1)


def _display_decisions(rows: list[dict]) -> None:
    """Display decisions as a table."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("#", style="dim", width=4)
    table.add_column("Event", style="cyan")
    table.add_column("Decision", width=14)
    table.add_column("Details")

    styles = {
        Action.ACCEPT.value: "green",
        Action.REJECT.value: "red",
        Action.SHADOW_REJECT.value: "yellow",
    }

    for row in rows:
        event_id = row["id"]
        if len(event_id) > 16:
            event_id = event_id[:13] + "..."
        if row["error"]:
            status = "[red]error[/red]"
            details = row["error"]
        else:
            style = styles[row["action"]]
            status = f"[{style}]{row['action']}[/{style}]"
            details = row["msg"]
        table.add_row(str(row["line"]), event_id, status, details)

    console.print(table)

    errors = sum(1 for row in rows if row["error"])
    accepted = sum(1 for row in rows if row["action"] == Action.ACCEPT.value)
    console.print(f"[dim]Total: {len(rows)} | Accepted: {accepted} | Rejected: {len(rows) - accepted - errors} | Errors: {errors}[/dim]")


if __name__ == "__main__":
    app()
