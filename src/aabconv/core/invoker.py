"""Runs the Java tool jars and forwards their output to a reporter."""

import logging
import os
from pathlib import Path

from aabconv.core.reporter import Reporter
from aabconv.exceptions import ProcessError
from aabconv.models.conversion import ToolInvocation
from aabconv.utils.process import run_tool

logger = logging.getLogger(__name__)


class ToolInvoker:
    """Launch `java <args>` inside the tools directory."""

    def __init__(self, java_path: str, tools_dir: Path, reporter: Reporter):
        # Bare names go through PATH; paths must not be read relative to
        # the tools directory
        if os.path.dirname(java_path):
            java_path = os.path.abspath(java_path)
        self.java_path = java_path
        self.tools_dir = tools_dir
        self.reporter = reporter

    def invocation(self, args: list[str]) -> ToolInvocation:
        """Build the invocation for a list of java arguments."""
        return ToolInvocation(
            executable=self.java_path,
            args=tuple(args),
            cwd=self.tools_dir,
        )

    def jar_args(self, jar: Path, *args: str) -> list[str]:
        """Build `-jar <jar> <args...>`."""
        return ["-jar", str(jar), *args]

    def invoke(self, args: list[str]) -> bool:
        """Run java with the given arguments.

        Returns:
            True if the process exited with code 0. Launch failures and
            non-zero exits are reported on the error stream and return False.
        """
        invocation = self.invocation(args)

        try:
            result = run_tool(
                invocation,
                on_stdout=self.reporter.on_output,
                on_stderr=self.reporter.on_error,
            )
        except ProcessError as e:
            logger.debug("Could not run %s: %s", invocation.redacted_command_line, e)
            self.reporter.on_error(f"Error running command: {e.stderr}")
            return False

        if not result.success:
            logger.debug(
                "Command exited with %d: %s",
                result.returncode,
                invocation.redacted_command_line,
            )
            self.reporter.on_error(f"Command exited with code {result.returncode}")
        return result.success
