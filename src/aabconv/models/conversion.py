"""Pydantic models for AAB conversion requests, progress and tool runs."""

import re
import shlex
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

# Matches the secret half of bundletool/apksigner "pass:<secret>" arguments
_PASSWORD_PATTERN = re.compile(r"(pass:).*")


class ConversionMethod(str, Enum):
    """Which pipeline converts the bundle."""

    BUNDLETOOL = "bundletool"
    MANUAL = "manual"


class ConversionStep(str, Enum):
    """Phase of a conversion run."""

    EXTRACTING_AAB = "extracting_aab"
    DECOMPILING_APK = "decompiling_apk"
    COMPILING_RESOURCES = "compiling_resources"
    LINKING_RESOURCES = "linking_resources"
    CREATING_BUNDLE = "creating_bundle"
    GENERATING_APKS = "generating_apks"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        """Check if no further step can follow this one."""
        return self in (ConversionStep.COMPLETE, ConversionStep.ERROR)


class SigningConfig(BaseModel):
    """Keystore material passed to bundletool."""

    model_config = ConfigDict(frozen=True)

    keystore: Path
    """Path to the keystore file (.jks / .keystore)."""

    keystore_pass: str
    """Keystore password."""

    key_alias: str
    """Alias of the signing key inside the keystore."""

    key_pass: str
    """Password of the signing key."""


class ConversionRequest(BaseModel):
    """Input of a single conversion run. Not mutated while the run executes."""

    model_config = ConfigDict(frozen=True)

    bundle_path: Path
    """Path to the .aab file."""

    output_dir: Path
    """Directory the converted APK is written to."""

    signing: SigningConfig | None = None
    """Signing material (bundletool pipeline only)."""

    method: ConversionMethod = ConversionMethod.BUNDLETOOL
    """Pipeline used by AabConverter.convert()."""

    @classmethod
    def from_credentials(
        cls,
        bundle_path: Path,
        output_dir: Path,
        *,
        keystore: Path | None = None,
        keystore_pass: str | None = None,
        key_alias: str | None = None,
        key_pass: str | None = None,
        method: ConversionMethod = ConversionMethod.BUNDLETOOL,
    ) -> "ConversionRequest":
        """Build a request from loose signing fields.

        Signing material is all-or-nothing: when every field is empty the
        request is unsigned, when every field is set it is signed.

        Raises:
            ValueError: If only some of the signing fields are set.
        """
        fields = {
            "keystore": keystore,
            "keystore_pass": keystore_pass,
            "key_alias": key_alias,
            "key_pass": key_pass,
        }
        provided = [name for name, value in fields.items() if value not in (None, "")]

        signing = None
        if len(provided) == len(fields):
            signing = SigningConfig(**fields)
        elif provided:
            missing = ", ".join(name for name in fields if name not in provided)
            raise ValueError(f"Incomplete signing credentials, missing: {missing}")

        return cls(
            bundle_path=bundle_path,
            output_dir=output_dir,
            signing=signing,
            method=method,
        )


class ProgressEvent(BaseModel):
    """A progress notification emitted by a pipeline."""

    model_config = ConfigDict(frozen=True)

    step: ConversionStep
    message: str
    percent: int = Field(ge=0, le=100)


class ToolInvocation(BaseModel):
    """An external command to run: executable, arguments, working directory."""

    model_config = ConfigDict(frozen=True)

    executable: str
    args: tuple[str, ...] = ()
    cwd: Path | None = None

    @property
    def command(self) -> list[str]:
        """Get the full argv list."""
        return [self.executable, *self.args]

    @property
    def command_line(self) -> str:
        """Get the command as a shell-quoted string."""
        return shlex.join(self.command)

    @property
    def redacted_command_line(self) -> str:
        """Get the command line with pass:<secret> values masked."""
        return shlex.join(
            _PASSWORD_PATTERN.sub(r"\1****", arg) for arg in self.command
        )


class ToolResult(BaseModel):
    """Outcome of a finished external command."""

    invocation: ToolInvocation
    returncode: int
    stdout_lines: list[str] = Field(default_factory=list)
    stderr_lines: list[str] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        """Check if the command succeeded."""
        return self.returncode == 0
