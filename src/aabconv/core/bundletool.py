"""Fast path: bundletool build-apks, then pull the universal APK out of the set."""

import logging
import shutil
from pathlib import Path

from aabconv.core.archive import extract_archive
from aabconv.core.invoker import ToolInvoker
from aabconv.core.pipeline import ConversionPipeline
from aabconv.exceptions import ConversionError, PayloadNotFoundError
from aabconv.models.conversion import ConversionStep, SigningConfig
from aabconv.utils.deps import ToolPaths

logger = logging.getLogger(__name__)

UNIVERSAL_APK_NAME = "universal.apk"


def build_apks_args(
    bundletool: Path,
    bundle_path: Path,
    apks_path: Path,
    signing: SigningConfig | None = None,
) -> list[str]:
    """Build the java arguments for `bundletool build-apks`.

    Signed sets carry the four keystore flags; unsigned ones ask for a
    single universal APK instead.
    """
    args = [
        "-jar",
        str(bundletool),
        "build-apks",
        f"--bundle={bundle_path}",
        f"--output={apks_path}",
    ]
    if signing is not None:
        args += [
            f"--ks={signing.keystore}",
            f"--ks-pass=pass:{signing.keystore_pass}",
            f"--ks-key-alias={signing.key_alias}",
            f"--key-pass=pass:{signing.key_pass}",
        ]
    else:
        args.append("--mode=universal")
    return args


def select_apk(extracted_dir: Path) -> Path:
    """Pick the APK to ship from an extracted APK set.

    Prefers universal.apk at the top of the set; otherwise takes the first
    .apk by sorted relative path so the choice does not depend on directory
    listing order.

    Raises:
        PayloadNotFoundError: If the set holds no APK at all.
    """
    universal = extracted_dir / UNIVERSAL_APK_NAME
    if universal.is_file():
        return universal

    candidates = sorted(
        (p for p in extracted_dir.rglob("*.apk") if p.is_file()),
        key=lambda p: p.relative_to(extracted_dir).as_posix(),
    )
    if not candidates:
        raise PayloadNotFoundError(f"No APK found in generated APK set: {extracted_dir}")

    logger.debug("No %s in APK set, falling back to %s", UNIVERSAL_APK_NAME, candidates[0])
    return candidates[0]


class BundletoolPipeline(ConversionPipeline):
    """Convert an AAB with bundletool."""

    def __init__(
        self,
        bundle_path: Path,
        output_dir: Path,
        invoker: ToolInvoker,
        tools: ToolPaths,
        *,
        signing: SigningConfig | None = None,
        scratch_base: Path | None = None,
    ):
        super().__init__(
            bundle_path, output_dir, invoker, tools, scratch_base=scratch_base
        )
        if signing is not None:
            signing = signing.model_copy(
                update={"keystore": signing.keystore.resolve()}
            )
        self.signing = signing

    @staticmethod
    def output_path_for(bundle_path: Path, output_dir: Path) -> Path:
        return output_dir / f"{bundle_path.stem}.apk"

    def validate(self) -> None:
        super().validate()
        self.require_jar(self.tools.bundletool)

        if self.signing is not None and not self.signing.keystore.is_file():
            raise ConversionError(f"Keystore not found: {self.signing.keystore}")

    def run_steps(self, scratch_dir: Path) -> Path:
        self.progress(
            ConversionStep.EXTRACTING_AAB, "Starting AAB to APK conversion...", 10
        )

        apks_path = scratch_dir / f"{self.bundle_path.stem}.apks"
        self.progress(ConversionStep.GENERATING_APKS, "Generating APKs from AAB...", 30)
        self.run_tool(
            build_apks_args(
                self.tools.bundletool, self.bundle_path, apks_path, self.signing
            ),
            "Failed to generate APKs from AAB",
        )
        if not apks_path.is_file():
            raise ConversionError(
                f"bundletool reported success but APK set not found: {apks_path}"
            )

        self.progress(ConversionStep.GENERATING_APKS, "Extracting universal APK...", 60)
        return self.extract_universal_apk(apks_path, scratch_dir / "apks_extracted")

    def extract_universal_apk(self, apks_path: Path, extract_dir: Path) -> Path:
        """Unpack the APK set and copy the chosen APK to the output directory."""
        extract_archive(apks_path, extract_dir)
        chosen = select_apk(extract_dir)

        output_path = self.output_path_for(self.bundle_path, self.output_dir)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(chosen, output_path)

        self.reporter.on_output(f"APK extracted successfully: {output_path}")
        return output_path
