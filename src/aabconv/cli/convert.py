"""CLI commands for converting bundles and checking the tool setup."""

import json
import logging
import queue
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path

import typer
from rich.progress import Progress, TaskID
from rich.table import Table

from aabconv.core.converter import AabConverter
from aabconv.core.reporter import Notification, QueueReporter
from aabconv.exceptions import AabconvError
from aabconv.models.conversion import ConversionMethod, ConversionRequest, ProgressEvent
from aabconv.utils.deps import ToolPaths, find_java, require_java, resolve_tools_dir
from aabconv.utils.log import setup_logging
from aabconv.utils.output import console

logger = logging.getLogger(__name__)

# How long the UI thread waits for a notification before rechecking the worker
POLL_INTERVAL = 0.1


def _handle(
    note: Notification,
    progress: Progress,
    task: TaskID,
    errors: list[str],
) -> None:
    if isinstance(note.payload, ProgressEvent):
        progress.update(
            task, completed=note.payload.percent, description=note.payload.message
        )
    elif note.kind == "output":
        logger.info("%s", note.payload)
    else:
        errors.append(str(note.payload))
        console.print_error(str(note.payload))


def _run_with_progress(
    converter: AabConverter,
    request: ConversionRequest,
    reporter: QueueReporter,
) -> tuple[bool, list[str]]:
    """Run the conversion on a worker thread, rendering events on this one."""
    errors: list[str] = []

    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="aabconv") as pool:
        future: Future[bool] = pool.submit(converter.convert, request)

        with console.progress() as progress:
            task = progress.add_task("Starting conversion...", total=100)
            while True:
                try:
                    note = reporter.events.get(timeout=POLL_INTERVAL)
                except queue.Empty:
                    if future.done():
                        break
                    continue
                _handle(note, progress, task, errors)

            for note in reporter.drain():
                _handle(note, progress, task, errors)

        return future.result(), errors


def convert_bundle(
    bundle_path: Path = typer.Argument(
        ...,
        help="Path to the .aab file to convert.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    output_dir: Path = typer.Option(
        None,
        "--output-dir",
        "-o",
        help="Directory for the APK (default: the bundle's directory).",
    ),
    manual: bool = typer.Option(
        False,
        "--manual",
        "-m",
        help="Decompile and recompile the base APK with apktool instead of "
        "using bundletool.",
    ),
    keystore: Path = typer.Option(
        None,
        "--keystore",
        "-k",
        help="Keystore used to sign the APK set (bundletool only).",
    ),
    keystore_pass: str = typer.Option(
        None,
        "--ks-pass",
        help="Keystore password.",
    ),
    key_alias: str = typer.Option(
        None,
        "--key-alias",
        help="Key alias in keystore.",
    ),
    key_pass: str = typer.Option(
        None,
        "--key-pass",
        help="Key password.",
    ),
    java: str = typer.Option(
        None,
        "--java",
        help="Java runtime to run the tools with (default: auto-detect).",
    ),
    tools_dir: Path = typer.Option(
        None,
        "--tools-dir",
        "-t",
        help="Directory containing bundletool.jar and apktool.jar.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        help="Show tool output and debug logs.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output as JSON.",
    ),
) -> None:
    """Convert an Android App Bundle (.aab) to an installable APK.

    By default runs `bundletool build-apks` and extracts the universal APK.
    Signing requires all of --keystore, --ks-pass, --key-alias and --key-pass.

    Examples:

        # Unsigned universal APK next to the bundle
        aabconv convert app.aab

        # Signed, into ./out
        aabconv convert app.aab -o out -k release.jks --ks-pass secret \\
            --key-alias upload --key-pass secret

        # Fallback through apktool
        aabconv convert app.aab --manual
    """
    console.set_json_mode(json_output)
    setup_logging(verbose, quiet=json_output)

    if bundle_path.suffix.lower() != ".aab":
        console.print_warning(f"{bundle_path.name} does not have an .aab extension")

    method = ConversionMethod.MANUAL if manual else ConversionMethod.BUNDLETOOL
    credentials = {
        "keystore": keystore.resolve() if keystore else None,
        "keystore_pass": keystore_pass,
        "key_alias": key_alias,
        "key_pass": key_pass,
    }
    if manual:
        if any(value is not None for value in credentials.values()):
            console.print_warning("Signing options are ignored by the manual conversion")
        credentials = {}

    try:
        request = ConversionRequest.from_credentials(
            bundle_path.resolve(),
            (output_dir or bundle_path.parent).resolve(),
            method=method,
            **credentials,
        )
        java_path = require_java(java)
    except (ValueError, AabconvError) as e:
        console.print_error(str(e))
        raise typer.Exit(1) from None

    reporter = QueueReporter()
    converter = AabConverter(java_path, resolve_tools_dir(tools_dir), reporter)
    output_path = converter.output_path(request)

    console.print_info(f"Converting {bundle_path.name} ({method.value})...")
    success, errors = _run_with_progress(converter, request, reporter)

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "success": success,
                    "method": method.value,
                    "output_path": str(output_path) if success else None,
                    "errors": errors,
                },
                indent=2,
            )
        )
    elif success:
        console.print_success(f"APK written to {output_path}")
    else:
        console.print_error("Conversion failed. Run with --verbose for details.")

    if not success:
        raise typer.Exit(1)


def doctor(
    java: str = typer.Option(
        None,
        "--java",
        help="Java runtime to check (default: auto-detect).",
    ),
    tools_dir: Path = typer.Option(
        None,
        "--tools-dir",
        "-t",
        help="Tools directory to check.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output as JSON.",
    ),
) -> None:
    """Check that Java and the tool jars are where aabconv expects them."""
    console.set_json_mode(json_output)

    java_path = find_java(java)
    tools = ToolPaths(resolve_tools_dir(tools_dir))
    status = tools.status()
    required_ok = java_path is not None and status["bundletool.jar"]

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "java": java_path,
                    "tools_dir": str(tools.tools_dir),
                    "tools": status,
                },
                indent=2,
            )
        )
    else:
        table = Table()
        table.add_column("Tool", style="cyan")
        table.add_column("Status")
        table.add_column("Location")

        table.add_row(
            "java",
            "[green]found[/green]" if java_path else "[red]missing[/red]",
            java_path or "-",
        )
        locations = {
            "bundletool.jar": tools.bundletool,
            "apktool.jar": tools.apktool,
            "aapt2": tools.aapt2,
            "android.jar": tools.android_jar,
        }
        for name, present in status.items():
            table.add_row(
                name,
                "[green]found[/green]" if present else "[yellow]missing[/yellow]",
                str(locations[name]),
            )

        console.print(table)

    if not required_ok:
        raise typer.Exit(1)
