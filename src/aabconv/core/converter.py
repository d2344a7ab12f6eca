"""Caller-facing entry point for AAB to APK conversion."""

from pathlib import Path

from aabconv.core.bundletool import BundletoolPipeline
from aabconv.core.invoker import ToolInvoker
from aabconv.core.manual import ManualPipeline
from aabconv.core.reporter import EventReporter, LineCallback, ProgressCallback, Reporter
from aabconv.models.conversion import ConversionMethod, ConversionRequest
from aabconv.utils.deps import ToolPaths


class AabConverter:
    """Convert Android App Bundles to APKs using the jars in a tools directory.

    Calls are synchronous and block until the external tools exit. To keep an
    interactive caller responsive, submit them to a worker thread and consume
    notifications through a QueueReporter.

    Example:
        converter = AabConverter("java", Path("tools"))
        converter.subscribe(progress=print, error=print)
        converter.convert_via_bundletool(request)
    """

    def __init__(
        self,
        java_path: str,
        tools_dir: Path,
        reporter: Reporter | None = None,
        *,
        scratch_base: Path | None = None,
    ):
        """Initialize converter.

        Args:
            java_path: Java runtime used to run the jars.
            tools_dir: Directory holding bundletool.jar and apktool.jar.
            reporter: Optional sink subscribed to every notification.
            scratch_base: Parent of the per-run scratch directories.
                Defaults to the system temp directory.
        """
        self.java_path = java_path
        self.tools = ToolPaths(tools_dir.resolve())
        self.scratch_base = scratch_base
        self.events = EventReporter()
        if reporter is not None:
            self.events.add(reporter)

    def subscribe(
        self,
        *,
        progress: ProgressCallback | None = None,
        output: LineCallback | None = None,
        error: LineCallback | None = None,
    ) -> None:
        """Register callbacks for progress events, output lines and error lines."""
        self.events.subscribe(progress=progress, output=output, error=error)

    def add_reporter(self, reporter: Reporter) -> None:
        """Register a reporter for all three notification kinds."""
        self.events.add(reporter)

    def _invoker(self) -> ToolInvoker:
        return ToolInvoker(self.java_path, self.tools.tools_dir, self.events)

    def convert_via_bundletool(self, request: ConversionRequest) -> bool:
        """Convert with bundletool build-apks (signed if the request carries keys)."""
        return BundletoolPipeline(
            request.bundle_path,
            request.output_dir,
            self._invoker(),
            self.tools,
            signing=request.signing,
            scratch_base=self.scratch_base,
        ).run()

    def convert_manually(self, bundle_path: Path, output_dir: Path) -> bool:
        """Convert by decompiling and recompiling the bundle's base APK."""
        return ManualPipeline(
            bundle_path,
            output_dir,
            self._invoker(),
            self.tools,
            scratch_base=self.scratch_base,
        ).run()

    def convert(self, request: ConversionRequest) -> bool:
        """Convert with the pipeline selected by request.method."""
        if request.method is ConversionMethod.MANUAL:
            return self.convert_manually(request.bundle_path, request.output_dir)
        return self.convert_via_bundletool(request)

    def output_path(self, request: ConversionRequest) -> Path:
        """Get the APK path a successful convert(request) writes."""
        bundle_path = request.bundle_path.resolve()
        output_dir = request.output_dir.resolve()
        if request.method is ConversionMethod.MANUAL:
            return ManualPipeline.output_path_for(bundle_path, output_dir)
        return BundletoolPipeline.output_path_for(bundle_path, output_dir)
