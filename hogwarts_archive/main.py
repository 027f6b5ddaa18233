import logging
import sys
from pathlib import Path
from typing import Optional

import typer

from hogwarts_archive.archive import Archive
from hogwarts_archive.commands import HELP_TEXT, CommandDispatcher
from hogwarts_archive.config import settings
from hogwarts_archive.ui_helpers import BlockWriter, set_output_mode

APP_NAME = settings.app_name


def configure_logging(level: Optional[str] = None) -> None:
    """Send log records to stderr so stdout only carries response blocks."""
    level_name = (level or settings.log_level).upper()
    if settings.debug:
        level_name = "DEBUG"
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def run_session(source=None, output=None) -> None:
    """Run one archive session: fresh state, commands from ``source``, blocks to ``output``."""
    source = source if source is not None else sys.stdin
    if hasattr(source, "reconfigure"):
        # Undecodable input bytes become U+FFFD instead of ending the session
        source.reconfigure(errors=settings.file_errors)
    dispatcher = CommandDispatcher(Archive(), BlockWriter(stream=output))
    dispatcher.run(source)


# --- Typer CLI application ---
app = typer.Typer(help=f"{APP_NAME} CLI")


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level for stderr"),
):
    """Global options for the CLI (output mode, logging)."""
    if output:
        set_output_mode(output)
    configure_logging(log_level)


@app.command("run")
def cli_run(
    input_file: Optional[Path] = typer.Option(None, "--input", "-i", help="Read commands from a file instead of stdin"),
):
    """Read archive commands line by line and print a response block for each."""
    if input_file is None:
        run_session(sys.stdin, sys.stdout)
        return
    try:
        with open(input_file, "r", encoding=settings.file_encoding, errors=settings.file_errors) as f:
            run_session(f, sys.stdout)
    except OSError as e:
        print(f"Could not open {input_file}: {e}", file=sys.stderr)
        raise typer.Exit(code=1)


@app.command("commands")
def cli_commands():
    """Print the list of archive commands."""
    BlockWriter(stream=sys.stdout).write(HELP_TEXT)


def main() -> None:
    if len(sys.argv) > 1:
        app()
    else:
        configure_logging()
        run_session(sys.stdin, sys.stdout)


if __name__ == "__main__":
    main()
