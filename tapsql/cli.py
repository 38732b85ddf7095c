"""tapsql CLI - Command-line interface for incremental table extraction."""

import sys
from typing import NoReturn, Optional

import typer
from pathlib import Path
from typing_extensions import Annotated

from tapsql import __version__
from tapsql.core.config import config
from tapsql.core.logging import configure_logging
from tapsql.exceptions import (
    ConnectionError,
    EncodingError,
    QueryError,
    TapSQLError,
    ValidationError,
)
from tapsql.pool import ConnectionPool
from tapsql.runner import run_extract
from tapsql.utils.yaml_utils import load_state, load_tap_config, save_state

app = typer.Typer(
    name="tapsql",
    help="tapsql - Incremental SQL table extraction to JSON, JSONLD or CSV",
    add_completion=True,
)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"tapsql version {__version__}")
        raise typer.Exit()


def _fail(label: str, error: Exception) -> NoReturn:
    typer.secho(f"{label}: {error}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """tapsql - Stream a table as records and remember where it stopped."""
    pass


@app.command()
def extract(
    config_path: Annotated[
        Path,
        typer.Argument(
            help="Path to the YAML tap configuration",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
        ),
    ],
    state_path: Annotated[
        Optional[Path],
        typer.Option("--state", "-s", help="Resume state file (read before, written after)"),
    ] = None,
    encoding: Annotated[
        Optional[str],
        typer.Option("--encoding", "-e", help="Output encoding: json, jsonld, csv"),
    ] = None,
    log_level: Annotated[
        Optional[str],
        typer.Option("--log-level", help="Override TAPSQL_LOG_LEVEL"),
    ] = None,
) -> None:
    """Extract a table to stdout, resuming after the last run's sync value."""
    configure_logging(level=log_level)

    try:
        tap_config = load_tap_config(config_path)
        state = load_state(state_path) if state_path else None
    except ValidationError as e:
        _fail("Validation error", e)

    with ConnectionPool() as pool:
        try:
            result = run_extract(
                tap_config,
                pool,
                sys.stdout,
                encoding=encoding or config.default_encoding,
                last_record=state.last_record if state else None,
            )
        except ValidationError as e:
            _fail("Validation error", e)
        except ConnectionError as e:
            _fail("Error connecting to database", e)
        except QueryError as e:
            _fail("Error executing query", e)
        except EncodingError as e:
            _fail("Error encoding output", e)
        sys.stdout.flush()

    if state_path and result.last_record is not None:
        state.last_record = result.last_record
        try:
            save_state(state, state_path)
        except TapSQLError as e:
            _fail("Error writing state file", e)


@app.command()
def serve(
    host: Annotated[
        Optional[str],
        typer.Option("--host", help="Host of the agent"),
    ] = None,
    port: Annotated[
        Optional[int],
        typer.Option("--port", "-p", help="Port of the agent"),
    ] = None,
) -> None:
    """Serve extractions over HTTP."""
    import uvicorn

    from tapsql.server import create_app

    configure_logging()
    host = host or config.host
    port = port or config.port
    typer.echo(f"* Listening on {host}:{port}...", err=True)
    uvicorn.run(create_app(), host=host, port=port, log_level=config.log_level.lower())


if __name__ == "__main__":
    app()
