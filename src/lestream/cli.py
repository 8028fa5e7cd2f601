"""CLI interface for the listening and royalty settlement engine."""

import json
import logging
from pathlib import Path
from typing import NoReturn
from uuid import uuid4

import typer
from pydantic import ValidationError

from .domain.errors import SettlementEngineError
from .domain.policies import SplitPolicy
from .interfaces import cli_handlers
from .song_catalog import SongRegistrationError

app = typer.Typer(help="Lestream listening and royalty settlement command line interface")


@app.callback()
def configure(
    log_level: str = typer.Option("WARNING", "--log-level", help="Python logging level, e.g. INFO or DEBUG."),
) -> None:
    logging.basicConfig(level=log_level.upper(), format="%(asctime)s %(levelname)s %(name)s %(message)s")


def _emit(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2))


def _fail(error: Exception) -> NoReturn:
    code = getattr(error, "code", "error")
    typer.echo(f"Error [{code}]: {error}", err=True)
    raise typer.Exit(code=1) from error


@app.command("listen")
def listen_command(
    listener: str = typer.Option(..., "--listener", "-l", help="Listener identifier or address"),
    song_id: str = typer.Option(..., "--song", "-s", help="Song id from the catalog"),
    seconds: float = typer.Option(..., "--seconds", help="Listened seconds to credit"),
) -> None:
    """Record listened seconds for every collaborator of a song."""

    try:
        _emit(cli_handlers.record_listening(listener, song_id, seconds, correlation_id=str(uuid4())))
    except SettlementEngineError as error:
        _fail(error)


@app.command("pay")
def pay_command(
    song_id: str = typer.Option(..., "--song", "-s", help="Song id from the catalog"),
    seconds: float = typer.Option(..., "--seconds", help="Listened seconds to pay for"),
    policy: SplitPolicy | None = typer.Option(
        None,
        "--policy",
        case_sensitive=False,
        help="Split policy: configured-percentage or equal-split.",
    ),
) -> None:
    """Pay a song's collaborators for listened seconds."""

    correlation_id = str(uuid4())
    try:
        result = cli_handlers.pay_for_listen(song_id, seconds, policy, correlation_id=correlation_id)
    except SettlementEngineError as error:
        _fail(error)
    _emit(result)
    typer.echo(f"Correlation ID: {correlation_id}")


@app.command("settle")
def settle_command(
    total_amount: str = typer.Option(..., "--amount", "-a", help="Total owed amount, e.g. 0.10"),
    splits: list[str] = typer.Option(
        ...,
        "--split",
        help="Repeatable recipient=percentage[@domain] entry.",
    ),
    policy: SplitPolicy | None = typer.Option(
        None,
        "--policy",
        case_sensitive=False,
        help="Split policy: configured-percentage or equal-split.",
    ),
) -> None:
    """Split an owed amount over explicit collaborator splits."""

    try:
        _emit(cli_handlers.settle_splits(total_amount, splits, policy, correlation_id=str(uuid4())))
    except SettlementEngineError as error:
        _fail(error)


@app.command("badge")
def badge_command(
    listener: str = typer.Option(..., "--listener", "-l", help="Listener identifier or address"),
    artist: str = typer.Option(..., "--artist", help="Artist name"),
) -> None:
    """Mint or upgrade a listener's badge for an artist."""

    try:
        _emit(cli_handlers.mint_badge(listener, artist, correlation_id=str(uuid4())))
    except SettlementEngineError as error:
        _fail(error)


@app.command("stats")
def stats_command(
    listener: str = typer.Option(..., "--listener", "-l", help="Listener identifier or address"),
) -> None:
    """Show cumulative listening time per artist."""

    _emit(cli_handlers.listener_stats(listener))


@app.command("badges")
def badges_command(
    listener: str = typer.Option(..., "--listener", "-l", help="Listener identifier or address"),
) -> None:
    """List stored badges and the on-chain badge count."""

    _emit(cli_handlers.list_badges(listener))


@app.command("top-listeners")
def top_listeners_command(
    artist: str = typer.Option(..., "--artist", help="Artist name"),
    limit: int = typer.Option(10, "--limit", min=1, help="Number of listeners to show."),
) -> None:
    """Rank an artist's listeners by cumulative seconds."""

    try:
        _emit(cli_handlers.top_listeners(artist, limit))
    except SettlementEngineError as error:
        _fail(error)


@app.command("register-song")
def register_song_command(
    song_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file with one song entry"),
) -> None:
    """Validate splits and add a song to the catalog."""

    try:
        _emit(cli_handlers.register_song_from_file(song_file))
    except (SongRegistrationError, ValidationError, ValueError) as error:
        _fail(error)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
