"""CLI entry point for cubetimer.

Uses Click to expose the ``cubetimer`` command group.  The commands manage
the recorded solve history and the timer settings, and print the
competition averages computed by the statistics engine.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Callable, Optional, TypeVar

import click

import cubetimer
from cubetimer.core.config import TimerSettings
from cubetimer.core.solve import Penalty, Solve, effective_time, format_time, parse_time
from cubetimer.core.stats import is_dnf_average
from cubetimer.history import HistoryError, SolveHistory, load_settings, save_settings

T = TypeVar("T")


def _run(action: Callable[[], T]) -> T:
    """Execute *action*, converting ``HistoryError`` to a CLI error.

    On ``HistoryError`` the message is printed to stderr and the
    process exits with code 1.
    """
    try:
        return action()
    except HistoryError as exc:
        click.echo(str(exc), err=True)
        sys.exit(1)


def _parse_penalty(ctx: click.Context, param: click.Parameter, value: str) -> Penalty:
    try:
        return Penalty.parse(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc


def _parse_time(ctx: click.Context, param: click.Parameter, value: str) -> int:
    try:
        return parse_time(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc


def _format_solve(time_ms: int, penalty: Penalty) -> str:
    if penalty is Penalty.DNF:
        return f"DNF({format_time(time_ms)})"
    if penalty is Penalty.PLUS2:
        return f"{format_time(int(effective_time(Solve(time_ms, penalty))))}+"
    return format_time(time_ms)


def _format_stat(value: Optional[int]) -> str:
    if value is None:
        return "-"
    if is_dnf_average(value):
        return "DNF"
    return format_time(value)


def _history(ctx: click.Context) -> SolveHistory:
    return SolveHistory(ctx.obj["config_dir"])


@click.group()
@click.version_option(version=cubetimer.__version__, prog_name="cubetimer")
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="CUBETIMER_HOME",
    default=None,
    help="Directory holding solves.json and settings.json.",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def cli(ctx: click.Context, config_dir: Optional[Path], verbose: bool) -> None:
    """cubetimer: solve timing statistics with WCA-style averages."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    ctx.ensure_object(dict)
    ctx.obj["config_dir"] = config_dir


@cli.command()
@click.argument("time", callback=_parse_time)
@click.option("--penalty", "-p", default="ok", callback=_parse_penalty, help="ok, +2 or dnf.")
@click.option("--scramble", "-s", default="", help="Scramble the solve was done on.")
@click.pass_context
def add(ctx: click.Context, time: int, penalty: Penalty, scramble: str) -> None:
    """Record a solve of TIME (SS.CC or M:SS.CC)."""
    result = _history(ctx).add(time, penalty, scramble)
    click.echo(f"Solve {result.index}: {_format_solve(time, penalty)}")
    for record in result.personal_bests:
        click.echo(f"New personal best: {record}")


@cli.command(name="list")
@click.pass_context
def list_solves(ctx: click.Context) -> None:
    """List recorded solves."""
    entries = _history(ctx).entries
    if not entries:
        click.echo("No solves recorded")
        return
    for number, entry in enumerate(entries, start=1):
        line = f"{number:>4}. {_format_solve(entry.solve.time_ms, entry.solve.penalty)}"
        if entry.scramble:
            line += f"   {entry.scramble}"
        click.echo(line)


@cli.command()
@click.argument("index", type=int)
@click.argument("penalty", callback=_parse_penalty)
@click.pass_context
def penalty(ctx: click.Context, index: int, penalty: Penalty) -> None:
    """Set the PENALTY (ok, +2, dnf) of solve INDEX."""
    history = _history(ctx)
    entry = _run(lambda: history.set_penalty(index, penalty))
    click.echo(f"Solve {index}: {_format_solve(entry.solve.time_ms, entry.solve.penalty)}")


@cli.command()
@click.argument("index", type=int)
@click.pass_context
def delete(ctx: click.Context, index: int) -> None:
    """Delete solve INDEX."""
    history = _history(ctx)
    entry = _run(lambda: history.delete(index))
    click.echo(f"Deleted solve {index}: {_format_solve(entry.solve.time_ms, entry.solve.penalty)}")


@cli.command()
@click.confirmation_option(prompt="Delete every recorded solve?")
@click.pass_context
def clear(ctx: click.Context) -> None:
    """Delete every recorded solve."""
    count = _history(ctx).clear()
    click.echo(f"Cleared {count} solves")


@cli.command()
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Show current and best averages, plus session mean and spread."""
    history = _history(ctx)
    averages = history.averages()
    click.echo(f"solves: {len(history)}")
    click.echo(f"best:   {_format_stat(averages.best)}")
    click.echo(f"worst:  {_format_stat(averages.worst)}")
    for name, window in (("ao5", 5), ("ao12", 12), ("ao100", 100)):
        current = _format_stat(getattr(averages, name))
        best = _format_stat(history.best_average(window))
        click.echo(f"{name + ':':<7} {current} (best {best})")

    session = history.session_stats()
    if session is None:
        return
    click.echo(f"mean:   {format_time(round(session.mean))}")
    click.echo(f"stdev:  {format_time(round(session.std_dev))}")
    click.echo(f"total:  {format_time(session.total_time)}")
    click.echo(f"improvement: {format_time(session.improvement)}")


@cli.command()
@click.option("--inspection/--no-inspection", default=None, help="Enable the inspection countdown.")
@click.option("--inspection-ms", type=click.IntRange(min=0), default=None, help="Inspection length.")
@click.option("--hold-ms", type=click.IntRange(min=0), default=None, help="Minimum hold to arm.")
@click.option("--touch", is_flag=True, help="Reset to touch-device defaults first.")
@click.pass_context
def config(
    ctx: click.Context,
    inspection: Optional[bool],
    inspection_ms: Optional[int],
    hold_ms: Optional[int],
    touch: bool,
) -> None:
    """Show or update the timer settings.

    The settings are stored in settings.json for hosts that embed the
    timer; load them with cubetimer.history.load_settings and pass them
    to TimerStateMachine.
    """
    config_dir = ctx.obj["config_dir"]
    settings = TimerSettings.for_device(touch_primary=True) if touch else load_settings(config_dir)
    settings = settings.updated(
        inspection_duration_ms=inspection_ms,
        hold_duration_ms=hold_ms,
        inspection_enabled=inspection,
    )
    if touch or any(value is not None for value in (inspection, inspection_ms, hold_ms)):
        save_settings(settings, config_dir)
    click.echo(f"inspection:     {'on' if settings.inspection_enabled else 'off'}")
    click.echo(f"inspection ms:  {settings.inspection_duration_ms}")
    click.echo(f"hold ms:        {settings.min_hold_time_ms}")
