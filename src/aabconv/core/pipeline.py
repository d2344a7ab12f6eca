"""Step discipline shared by the bundletool and manual conversion pipelines."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from aabconv.core.archive import is_zip_file
from aabconv.core.invoker import ToolInvoker
from aabconv.core.scratch import ScratchSpace
from aabconv.exceptions import AabconvError, ConversionError, ToolNotFoundError
from aabconv.models.conversion import ConversionStep, ProgressEvent
from aabconv.utils.deps import TOOL_INSTALL_HINTS, ToolPaths

logger = logging.getLogger(__name__)


class ConversionPipeline(ABC):
    """One conversion run: validate, run steps in a scratch space, report.

    Steps run strictly in order; the first one that raises short-circuits the
    rest. Whatever happens, the scratch space is released before run()
    returns and the caller only sees True or False. Details travel through
    the reporter.
    """

    complete_message = "Conversion completed successfully"

    def __init__(
        self,
        bundle_path: Path,
        output_dir: Path,
        invoker: ToolInvoker,
        tools: ToolPaths,
        *,
        scratch_base: Path | None = None,
    ):
        # The tools run with the tools directory as their cwd
        self.bundle_path = bundle_path.resolve()
        self.output_dir = output_dir.resolve()
        self.invoker = invoker
        self.reporter = invoker.reporter
        self.tools = tools
        self.scratch_base = scratch_base.resolve() if scratch_base else None
        self._percent = 0

    @staticmethod
    @abstractmethod
    def output_path_for(bundle_path: Path, output_dir: Path) -> Path:
        """Get the path of the APK a successful run writes."""

    @abstractmethod
    def run_steps(self, scratch_dir: Path) -> Path:
        """Run the conversion steps and return the final APK path."""

    def validate(self) -> None:
        """Check preconditions before anything touches the disk.

        Raises:
            ConversionError: If the bundle is missing or not a ZIP.
            ToolNotFoundError: If a required jar is missing.
        """
        if not self.bundle_path.is_file():
            raise ConversionError(f"AAB file does not exist: {self.bundle_path}")

        if not is_zip_file(self.bundle_path):
            raise ConversionError(f"Not a valid AAB (ZIP) file: {self.bundle_path}")

    def require_jar(self, jar: Path) -> None:
        if not jar.is_file():
            raise ToolNotFoundError(
                f"{jar.name} (expected at {jar})", TOOL_INSTALL_HINTS.get(jar.name)
            )

    def progress(self, step: ConversionStep, message: str, percent: int) -> None:
        """Emit a progress event. Percent never decreases except on error."""
        if step is ConversionStep.ERROR:
            percent = 0
        else:
            percent = max(percent, self._percent)
        self._percent = percent
        logger.info("[%3d%%] %s", percent, message)
        self.reporter.on_progress(
            ProgressEvent(step=step, message=message, percent=percent)
        )

    def fail(self, message: str) -> bool:
        """Report a failure and emit the terminal error event."""
        logger.info("Conversion of %s failed: %s", self.bundle_path, message)
        self.reporter.on_error(message)
        self.progress(ConversionStep.ERROR, "Conversion failed", 0)
        return False

    def run_tool(self, args: list[str], failure: str) -> None:
        """Run a java tool step.

        Raises:
            ConversionError: If the tool fails.
        """
        if not self.invoker.invoke(args):
            raise ConversionError(failure)

    def run(self) -> bool:
        """Execute the pipeline.

        Returns:
            True if the APK was written to the output directory.
        """
        self._percent = 0

        try:
            self.validate()
        except AabconvError as e:
            return self.fail(str(e))

        try:
            with ScratchSpace(self.reporter, self.scratch_base) as scratch_dir:
                self.run_steps(scratch_dir)
                self.progress(ConversionStep.COMPLETE, self.complete_message, 100)
        except AabconvError as e:
            return self.fail(str(e))
        except OSError as e:
            return self.fail(f"File operation failed: {e}")
        except Exception as e:
            logger.exception("Unexpected error converting %s", self.bundle_path)
            return self.fail(f"Error during conversion: {e}")

        return True
