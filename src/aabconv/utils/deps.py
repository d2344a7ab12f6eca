"""Resolution of the Java runtime and the tools directory holding the jars."""

from __future__ import annotations

import os
import platform
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from aabconv.exceptions import ToolNotFoundError
from aabconv.utils.config import CONFIG_DIR, get_config_path

# Install hints for required tools
TOOL_INSTALL_HINTS: dict[str, str] = {
    "java": "Install a JDK/JRE and put java on PATH, or set JAVA_HOME",
    "bundletool.jar": "https://github.com/google/bundletool/releases",
    "apktool.jar": "https://apktool.ibotpeaches.com/",
    "aapt2": "Part of Android SDK build-tools",
    "android.jar": "Part of Android SDK platforms",
}

JAVA_ENV_VAR: Final[str] = "AABCONV_JAVA"
JAVA_CONFIG_KEY: Final[str] = "java_path"
TOOLS_DIR_ENV_VAR: Final[str] = "AABCONV_TOOLS_DIR"
TOOLS_DIR_CONFIG_KEY: Final[str] = "tools_dir"
DEFAULT_TOOLS_DIR: Final[Path] = CONFIG_DIR / "tools"


@dataclass(frozen=True)
class ToolPaths:
    """Locations of the external tools inside a tools directory."""

    tools_dir: Path

    @property
    def bundletool(self) -> Path:
        return self.tools_dir / "bundletool.jar"

    @property
    def apktool(self) -> Path:
        return self.tools_dir / "apktool.jar"

    @property
    def aapt2(self) -> Path:
        # Reserved for resource linking, not used by the current pipelines
        name = "aapt2.exe" if platform.system() == "Windows" else "aapt2"
        return self.tools_dir / name

    @property
    def android_jar(self) -> Path:
        return self.tools_dir / "android.jar"

    def status(self) -> dict[str, bool]:
        """Report which tool files exist."""
        return {
            "bundletool.jar": self.bundletool.is_file(),
            "apktool.jar": self.apktool.is_file(),
            "aapt2": self.aapt2.is_file(),
            "android.jar": self.android_jar.is_file(),
        }


def resolve_tools_dir(explicit: Path | None = None) -> Path:
    """Resolve the tools directory via option/env/config/default."""

    if explicit is not None:
        return explicit.expanduser()

    if value := os.environ.get(TOOLS_DIR_ENV_VAR):
        return Path(value).expanduser()

    return get_config_path(TOOLS_DIR_CONFIG_KEY) or DEFAULT_TOOLS_DIR


def find_java(explicit: str | None = None) -> str | None:
    """Locate the Java runtime via option/env/config/JAVA_HOME/PATH."""

    candidates: list[str] = []
    if explicit:
        candidates.append(explicit)
    if value := os.environ.get(JAVA_ENV_VAR):
        candidates.append(value)
    if (configured := get_config_path(JAVA_CONFIG_KEY)) is not None:
        candidates.append(str(configured))
    if java_home := os.environ.get("JAVA_HOME"):
        exe = "java.exe" if platform.system() == "Windows" else "java"
        candidates.append(str(Path(java_home) / "bin" / exe))

    for candidate in candidates:
        if Path(candidate).is_file():
            return candidate
        if found := shutil.which(candidate):
            return found

    return shutil.which("java")


def require_java(explicit: str | None = None) -> str:
    """Get the Java runtime path.

    Raises:
        ToolNotFoundError: If no Java runtime can be found.
    """
    java = find_java(explicit)
    if java is None:
        raise ToolNotFoundError("java", TOOL_INSTALL_HINTS["java"])
    return java
