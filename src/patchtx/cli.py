"""Command line access to the undoable patch action."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import typer

from .action import ACTION_METADATA, apply_action, check_dependencies, patch
from .config import DEFAULT_CONFIG_NAME, PatchSettings, SettingsError, load_settings
from .envelope import Envelope
from .schema import TxAction
from .tools.program import PatchError

app = typer.Typer(help=ACTION_METADATA["summary"])

_FILE_ARGUMENT = typer.Argument(..., help="Path to file to be patched.")
_PATCH_ARGUMENT = typer.Argument(..., help="Path to patch file (unified or context format).")
_REVERSE_OPTION = typer.Option(False, "--reverse", "-R", help="Apply the reverse of the patch.")
_CONFIG_OPTION = typer.Option(
    DEFAULT_CONFIG_NAME,
    "--config",
    "-c",
    help="Path to a YAML file with a 'patch' settings section.",
)
_VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Log progress to stderr.")


def _settings(config: str, verbose: bool) -> PatchSettings:
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    try:
        return load_settings(Path(config))
    except SettingsError as error:
        typer.echo(str(error), err=True)
        raise typer.Exit(code=1) from error


def _report(envelope: Envelope) -> None:
    typer.echo(json.dumps(envelope.to_dict(), indent=2, default=str))
    raise typer.Exit(code=0 if envelope.ok else 1)


@app.command()
def check(
    file: str = _FILE_ARGUMENT,
    patch_file: str = _PATCH_ARGUMENT,
    reverse: bool = _REVERSE_OPTION,
    dry_run: bool = typer.Option(False, "--dry-run", help="Log what a fix would do."),
    config: str = _CONFIG_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Report whether FILE already has PATCH_FILE applied."""
    settings = _settings(config, verbose)
    _report(patch(file, patch_file, reverse, tx_action=TxAction.CHECK_STATE, dry_run=dry_run, settings=settings))


@app.command()
def fix(
    file: str = _FILE_ARGUMENT,
    patch_file: str = _PATCH_ARGUMENT,
    reverse: bool = _REVERSE_OPTION,
    config: str = _CONFIG_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Apply PATCH_FILE to FILE without checking its state first."""
    settings = _settings(config, verbose)
    _report(patch(file, patch_file, reverse, tx_action=TxAction.FIX_STATE, settings=settings))


@app.command()
def apply(
    file: str = _FILE_ARGUMENT,
    patch_file: str = _PATCH_ARGUMENT,
    reverse: bool = _REVERSE_OPTION,
    dry_run: bool = typer.Option(False, "--dry-run", help="Only check the state."),
    config: str = _CONFIG_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Patch FILE unless PATCH_FILE is already applied; prints the undo action."""
    settings = _settings(config, verbose)
    _report(apply_action(file, patch_file, reverse, dry_run=dry_run, settings=settings))


@app.command()
def undo(
    file: str = _FILE_ARGUMENT,
    patch_file: str = _PATCH_ARGUMENT,
    reverse: bool = _REVERSE_OPTION,
    config: str = _CONFIG_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Revert a previous ``apply`` of PATCH_FILE to FILE."""
    settings = _settings(config, verbose)
    _report(apply_action(file, patch_file, not reverse, settings=settings))


@app.command()
def deps(
    config: str = _CONFIG_OPTION,
) -> None:
    """Verify that the patch program is available."""
    settings = _settings(config, False)
    try:
        location = check_dependencies(settings)
    except PatchError as error:
        typer.echo(str(error), err=True)
        raise typer.Exit(code=1) from error
    typer.echo(location)


if __name__ == "__main__":
    app()
