"""Test configuration for aabconv."""

import stat
import sys
import zipfile
from pathlib import Path

import pytest

from aabconv.models.conversion import ProgressEvent

# Stand-in for `java -jar <tool>.jar ...`. Emulates the parts of bundletool
# build-apks and apktool d/b that the pipelines rely on. Input paths are
# checked from the process working directory, as the real tools would.
FAKE_JAVA_SOURCE = '''
import os
import sys
import zipfile
from pathlib import Path

args = sys.argv[1:]
log = os.environ.get("FAKE_JAVA_LOG")
if log:
    with open(log, "a") as f:
        f.write(" ".join(args) + "\\n")


def require(path, what):
    if not os.path.exists(path):
        print(f"{what} not found from cwd {os.getcwd()}: {path}", file=sys.stderr)
        sys.exit(1)


require(args[1], "jar")
command, rest = args[2], args[3:]
print(f"running {command}")
print(f"{command} warming up", file=sys.stderr)

if command == os.environ.get("FAKE_JAVA_FAIL"):
    print(f"{command} exploded", file=sys.stderr)
    sys.exit(2)

if command == "build-apks":
    opts = dict(a[2:].split("=", 1) for a in rest if a.startswith("--") and "=" in a)
    require(opts["bundle"], "bundle")
    require(os.path.dirname(opts["output"]) or ".", "output directory")
    if "ks" in opts:
        require(opts["ks"], "keystore")
    entries = os.environ.get("FAKE_APKS_ENTRIES", "universal.apk,toc.pb")
    with zipfile.ZipFile(opts["output"], "w") as zf:
        for name in filter(None, entries.split(",")):
            zf.writestr(name, f"payload of {name}")
elif command == "d":
    require(rest[0], "apk")
    out = Path(rest[rest.index("-o") + 1])
    out.mkdir(parents=True, exist_ok=True)
    (out / "apktool.yml").write_text(f"source: {rest[0]}\\n")
elif command == "b":
    require(rest[0], "decompiled directory")
    out = Path(rest[rest.index("-o") + 1])
    out.write_text(f"rebuilt from {rest[0]}")
print("done")
'''


class RecordingReporter:
    """Reporter that keeps every notification it receives."""

    def __init__(self) -> None:
        self.events: list[ProgressEvent] = []
        self.output: list[str] = []
        self.errors: list[str] = []

    def on_progress(self, event: ProgressEvent) -> None:
        self.events.append(event)

    def on_output(self, line: str) -> None:
        self.output.append(line)

    def on_error(self, line: str) -> None:
        self.errors.append(line)

    @property
    def percents(self) -> list[int]:
        return [event.percent for event in self.events]

    @property
    def last(self) -> ProgressEvent:
        return self.events[-1]


def write_zip(path: Path, entries: dict[str, str | bytes]) -> Path:
    """Create a ZIP container with the given entries."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return path


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def bundle(tmp_path: Path) -> Path:
    """An app.aab holding its payload at the canonical base/base.apk path."""
    return write_zip(
        tmp_path / "input" / "app.aab",
        {
            "base/manifest/AndroidManifest.xml": "<manifest/>",
            "base/base.apk": b"PK-base-apk",
            "BundleConfig.pb": b"",
        },
    )


@pytest.fixture
def tools_dir(tmp_path: Path) -> Path:
    """A tools directory with placeholder jars."""
    tools = tmp_path / "tools"
    tools.mkdir()
    (tools / "bundletool.jar").write_bytes(b"jar")
    (tools / "apktool.jar").write_bytes(b"jar")
    return tools


@pytest.fixture
def scratch_base(tmp_path: Path) -> Path:
    """Parent directory for scratch spaces, so tests can see leftovers."""
    base = tmp_path / "scratch"
    base.mkdir()
    return base


@pytest.fixture
def java_log(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """File the fake java appends its argument lists to."""
    log = tmp_path / "java.log"
    monkeypatch.setenv("FAKE_JAVA_LOG", str(log))
    return log


@pytest.fixture
def fake_java(tmp_path: Path, java_log: Path) -> str:
    """Path to an executable that behaves like `java -jar bundletool/apktool`."""
    if sys.platform == "win32":
        pytest.skip("fake java launcher is a POSIX shell script")

    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    script = bin_dir / "fake_java.py"
    script.write_text(FAKE_JAVA_SOURCE)

    launcher = bin_dir / "java"
    launcher.write_text(f'#!/bin/sh\nexec "{sys.executable}" "{script}" "$@"\n')
    launcher.chmod(launcher.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(launcher)


def read_log(log: Path) -> list[str]:
    """Argument lines recorded by the fake java, one per invocation."""
    if not log.exists():
        return []
    return log.read_text().splitlines()
