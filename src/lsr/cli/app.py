"""Lockstep Reader CLI entry point."""

from typing import Annotated, Optional

import typer
from dotenv import load_dotenv

from lsr import __version__
from lsr.cli.cache import cache_app
from lsr.cli.info import info
from lsr.cli.translate import translate

app = typer.Typer(
    name="lsr",
    help="Lockstep Reader: side-by-side PDF translation with lock-step scrolling.",
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"lsr {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-V",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
) -> None:
    """Lockstep Reader: side-by-side PDF translation with lock-step scrolling."""
    # Load .env file for API keys (GEMINI_API_KEY, OPENAI_API_KEY, etc.)
    # Does not override existing env vars; shell exports take precedence
    load_dotenv(override=False)


app.command("translate")(translate)
app.command("info")(info)
app.add_typer(cache_app, name="cache")
