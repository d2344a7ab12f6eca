"""Fallback path: unzip the AAB, then decompile and rebuild its base APK."""

import logging
import shutil
from pathlib import Path

from aabconv.core.archive import extract_archive
from aabconv.core.pipeline import ConversionPipeline
from aabconv.exceptions import ConversionError, PayloadNotFoundError
from aabconv.models.conversion import ConversionStep

logger = logging.getLogger(__name__)

# Where the base APK may sit inside an extracted bundle, in search order
BASE_APK_LOCATIONS: tuple[tuple[str, ...], ...] = (
    ("base", "base.apk"),
    ("base.apk",),
    ("splits", "base.apk"),
)

CONVERTED_SUFFIX = "_converted"


def locate_base_apk(extracted_dir: Path) -> Path:
    """Find the base APK in an extracted bundle. First match wins.

    Raises:
        PayloadNotFoundError: If none of the known locations holds it.
    """
    for parts in BASE_APK_LOCATIONS:
        candidate = extracted_dir.joinpath(*parts)
        if candidate.is_file():
            logger.debug("Base APK found at %s", candidate)
            return candidate

    raise PayloadNotFoundError("Could not find base.apk in the AAB")


class ManualPipeline(ConversionPipeline):
    """Convert an AAB by decompiling and recompiling its base APK with apktool."""

    complete_message = "Manual conversion completed"

    @staticmethod
    def output_path_for(bundle_path: Path, output_dir: Path) -> Path:
        return output_dir / f"{bundle_path.stem}{CONVERTED_SUFFIX}.apk"

    def validate(self) -> None:
        super().validate()
        self.require_jar(self.tools.apktool)

    def run_steps(self, scratch_dir: Path) -> Path:
        self.progress(ConversionStep.EXTRACTING_AAB, "Extracting AAB...", 10)
        extracted_dir = scratch_dir / "aab_extracted"
        extract_archive(self.bundle_path, extracted_dir)
        base_apk = locate_base_apk(extracted_dir)

        self.progress(ConversionStep.DECOMPILING_APK, "Decompiling base APK...", 30)
        decompiled_dir = scratch_dir / "decompiled"
        self.run_tool(
            self.invoker.jar_args(
                self.tools.apktool, "d", str(base_apk), "-o", str(decompiled_dir), "-f"
            ),
            "Failed to decompile the base APK",
        )

        self.progress(ConversionStep.COMPILING_RESOURCES, "Recompiling APK...", 70)
        recompiled_apk = scratch_dir / "recompiled.apk"
        self.run_tool(
            self.invoker.jar_args(
                self.tools.apktool, "b", str(decompiled_dir), "-o", str(recompiled_apk)
            ),
            "Failed to recompile the APK",
        )
        if not recompiled_apk.is_file():
            raise ConversionError(
                f"apktool reported success but APK not found: {recompiled_apk}"
            )

        output_path = self.output_path_for(self.bundle_path, self.output_dir)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(recompiled_apk, output_path)

        self.reporter.on_output(f"APK rebuilt successfully: {output_path}")
        return output_path
