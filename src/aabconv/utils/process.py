"""Subprocess wrapper for all external tool invocations."""

import logging
import subprocess
import threading
from collections.abc import Callable
from typing import IO

from aabconv.exceptions import ProcessError
from aabconv.models.conversion import ToolInvocation, ToolResult

logger = logging.getLogger(__name__)

LineCallback = Callable[[str], None]


def _pump(stream: IO[str], sink: list[str], callback: LineCallback | None) -> None:
    """Read a pipe line by line until EOF, forwarding non-empty lines.

    A failing callback is logged and the pipe keeps draining, so the child
    never blocks on a full pipe and no captured line is lost.
    """
    try:
        for raw in iter(stream.readline, ""):
            line = raw.rstrip("\r\n")
            if not line:
                continue
            sink.append(line)
            if callback is None:
                continue
            try:
                callback(line)
            except Exception:
                logger.exception("Line callback %r failed on %r", callback, line)
    finally:
        stream.close()


def run_tool(
    invocation: ToolInvocation,
    *,
    on_stdout: LineCallback | None = None,
    on_stderr: LineCallback | None = None,
    check: bool = False,
) -> ToolResult:
    """Run an external tool, streaming its output as it is produced.

    stdout and stderr are drained concurrently by one reader thread each so a
    chatty process never blocks on a full pipe. Each non-empty line reaches
    its callback as soon as it is read, in the order the process wrote it.

    Args:
        invocation: Command, arguments and working directory.
        on_stdout: Called with every non-empty stdout line.
        on_stderr: Called with every non-empty stderr line.
        check: If True, raise ProcessError on non-zero exit.

    Returns:
        ToolResult with exit code and captured lines.

    Raises:
        ProcessError: If the process cannot be started, or check=True and
            it returns non-zero.
    """
    redacted = invocation.redacted_command_line
    logger.debug("Running %s (cwd=%s)", redacted, invocation.cwd)

    try:
        process = subprocess.Popen(
            invocation.command,
            cwd=invocation.cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except FileNotFoundError as e:
        raise ProcessError(
            [redacted], -1, f"Command not found: {invocation.executable}"
        ) from e
    except OSError as e:
        raise ProcessError([redacted], -1, f"Failed to start command: {e}") from e

    stdout_lines: list[str] = []
    stderr_lines: list[str] = []
    readers = [
        threading.Thread(
            target=_pump,
            args=(process.stdout, stdout_lines, on_stdout),
            name="tool-stdout",
            daemon=True,
        ),
        threading.Thread(
            target=_pump,
            args=(process.stderr, stderr_lines, on_stderr),
            name="tool-stderr",
            daemon=True,
        ),
    ]
    for reader in readers:
        reader.start()

    returncode = process.wait()
    for reader in readers:
        reader.join()

    logger.debug("Command exited with %d: %s", returncode, redacted)

    result = ToolResult(
        invocation=invocation,
        returncode=returncode,
        stdout_lines=stdout_lines,
        stderr_lines=stderr_lines,
    )

    if check and not result.success:
        raise ProcessError([redacted], returncode, "\n".join(stderr_lines))

    return result
