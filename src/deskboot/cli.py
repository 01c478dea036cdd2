"""CLI entrypoint.

Primary command:
- deskboot run ...

Utilities:
- deskboot plan
- deskboot doctor
- deskboot init

CONTRACT
- Inputs: Command line arguments (parsed by Typer)
- Outputs (required):
  - Exit code 0 on success (warnings allowed), 1 on fatal abort,
    2 on bad configuration or failed doctor checks, 130 on interrupt
  - Console output (stdout/stderr) describing progress/results
- Invariants:
  - Configuration is loaded once and validated before any step runs
  - The run log is printed (or emitted as JSON) and never written to disk
  - `plan` runs checks only; checks may use the network (e.g. git fetch)
- Failure:
  - Invalid arguments raise Typer exit/error
  - The failing step and its cause are printed to stderr on abort
"""

from __future__ import annotations

import sys
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from .artifacts.schemas import plan_report, run_report
from .catalog import build_steps, select_steps
from .config import BootstrapConfig, default_config_path, load_config
from .doctor import doctor_report
from .orchestrator import RunEntry, plan_steps, run_steps
from .steps.base import Outcome

app = typer.Typer(add_completion=False, help="Idempotent Debian desktop bootstrap (safe to re-run).")

console = Console()
err_console = Console(stderr=True)

_MARKERS = {
    Outcome.APPLIED: "[bold green][ OK ][/bold green]",
    Outcome.SATISFIED: "[dim][SKIP][/dim]",
    Outcome.WARNED: "[bold yellow][WARN][/bold yellow]",
    Outcome.FAILED: "[bold red][FAIL][/bold red]",
}


def _version_callback(value: bool):
    if value:
        from . import __version__

        console.print(f"deskboot version: {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version."
    )
):
    pass


_CONFIG_OPTION = typer.Option(
    None,
    "--config",
    "-c",
    help="deskboot.yaml (default: ./deskboot.yaml if present).",
)
_ONLY_OPTION = typer.Option(
    None,
    "--only",
    help="Run only these steps (name or prefix, e.g. docker). Repeatable.",
)
_SKIP_OPTION = typer.Option(
    None,
    "--skip",
    help="Skip these steps (name or prefix). Repeatable.",
)
_JSON_OPTION = typer.Option(
    False,
    "--json",
    help="Print a machine-readable report on stdout.",
)
_VERBOSE_OPTION = typer.Option(
    False,
    "--verbose",
    "-v",
    help="Show commands and debug logs.",
)
_LOG_FILE_OPTION = typer.Option(
    None,
    "--log-file",
    help="Also write debug logs to this file.",
)


def setup_logging(verbose: bool = False, log_file: Path | None = None) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else "WARNING",
        format="<level>{level: <8}</level> {message}",
    )
    if log_file is not None:
        logger.add(str(log_file), level="DEBUG", encoding="utf-8")


def _load(config: Path | None) -> BootstrapConfig:
    path = config or default_config_path()
    try:
        return load_config(path)
    except ValueError as e:
        err_console.print(f"[red]Config error:[/red] {e}")
        raise typer.Exit(code=2)


def _select(cfg: BootstrapConfig, only: list[str] | None, skip: list[str] | None):
    try:
        return select_steps(build_steps(cfg), only or (), skip or ())
    except ValueError as e:
        raise typer.BadParameter(str(e))


def _print_entry(entry: RunEntry) -> None:
    line = f"{_MARKERS[entry.outcome]} [{entry.index:02d}] {entry.name}"
    if entry.message:
        line += f" [dim]- {entry.message}[/dim]"
    err_console.print(line, highlight=False)


@app.command()
def run(
    config: Path | None = _CONFIG_OPTION,
    only: list[str] | None = _ONLY_OPTION,
    skip: list[str] | None = _SKIP_OPTION,
    json_out: bool = _JSON_OPTION,
    verbose: bool = _VERBOSE_OPTION,
    log_file: Path | None = _LOG_FILE_OPTION,
) -> None:
    """Converge this machine to the configured desktop setup."""
    setup_logging(verbose, log_file)
    cfg = _load(config)
    steps = _select(cfg, only, skip)

    try:
        result = run_steps(steps, on_entry=None if json_out else _print_entry)
    except KeyboardInterrupt:
        err_console.print("[red]Interrupted.[/red]")
        raise typer.Exit(code=130)

    if json_out:
        console.print_json(run_report(result).model_dump_json())
    else:
        counts = {o: len(result.log.by_outcome(o)) for o in Outcome}
        console.print(
            f"{counts[Outcome.APPLIED]} applied, {counts[Outcome.SATISFIED]} already satisfied, "
            f"{counts[Outcome.WARNED]} warned"
        )

    if result.aborted is not None:
        err_console.print(f"[bold red][FAIL][/bold red] {result.aborted}", highlight=False)
        raise typer.Exit(code=result.exit_code)

    if not json_out:
        console.print("[bold green]Bootstrap complete![/bold green]")
        console.print("If you were added to 'docker' or 'wireshark', log out/in (or run newgrp).")
        console.print("Open a new terminal so PATH and prompt changes take effect.")


@app.command()
def plan(
    config: Path | None = _CONFIG_OPTION,
    only: list[str] | None = _ONLY_OPTION,
    skip: list[str] | None = _SKIP_OPTION,
    json_out: bool = _JSON_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Show which steps would run, without installing or editing anything.

    Checks run for real, so this needs the network (git fetch of the dotfiles
    repo, latest Neovim tag, Node LTS) and may refresh remote-tracking refs.
    """
    setup_logging(verbose)
    cfg = _load(config)
    items = plan_steps(_select(cfg, only, skip))

    if json_out:
        console.print_json(plan_report(items).model_dump_json())
        return

    table = Table(title="deskboot plan")
    table.add_column("#", justify="right")
    table.add_column("Step")
    table.add_column("Policy")
    table.add_column("State")
    table.add_column("Details")
    for item in items:
        state = "[yellow]pending[/yellow]" if item.pending else "[green]satisfied[/green]"
        table.add_row(
            str(item.index),
            item.name,
            "fatal" if item.fatal else "advisory",
            state,
            item.error or item.description,
        )
    console.print(table)
    console.print(f"{sum(1 for i in items if i.pending)} of {len(items)} steps pending")


@app.command()
def doctor(
    config: Path | None = _CONFIG_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Environment and preflight checks."""
    setup_logging(verbose)
    report = doctor_report(_load(config), verbose=verbose)
    table = Table(title="deskboot doctor")
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("Details")
    for item in report.items:
        table.add_row(item.name, item.status, item.details)
    console.print(table)
    if report.ok:
        console.print("[green]OK[/green]")
    else:
        raise typer.Exit(code=2)


@app.command()
def init(
    dest: Path = typer.Option(Path("."), "--dest", help="Directory for deskboot.yaml."),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file."),
) -> None:
    """Write a deskboot.yaml template."""
    from .init import write_template

    path, written = write_template(dest, force=force)
    if written:
        console.print(f"[green]Wrote[/green] {path}")
    else:
        console.print(f"[yellow]Exists, not overwritten:[/yellow] {path} (use --force)")


if __name__ == "__main__":
    app()
