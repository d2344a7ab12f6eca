"""Root CLI application for aabconv."""

import typer

from aabconv import __version__
from aabconv.cli import convert

app = typer.Typer(
    name="aabconv",
    help="Convert Android App Bundles (.aab) to installable APKs.",
    no_args_is_help=True,
)

# Register commands
app.command("convert")(convert.convert_bundle)
app.command("doctor")(convert.doctor)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"aabconv {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """aabconv - AAB to APK conversion through bundletool or apktool."""
    pass


if __name__ == "__main__":
    app()
