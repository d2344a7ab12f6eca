"""Tests for the manual (apktool) conversion pipeline."""

from pathlib import Path

import pytest

from aabconv.core.converter import AabConverter
from aabconv.core.manual import locate_base_apk
from aabconv.exceptions import PayloadNotFoundError
from aabconv.models.conversion import ConversionStep

from conftest import read_log, write_zip


class TestLocateBaseApk:
    """Tests for the base payload search order."""

    def test_canonical_location_wins(self, tmp_path):
        for parts in (("base", "base.apk"), ("base.apk",), ("splits", "base.apk")):
            path = tmp_path.joinpath(*parts)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(b"apk")

        assert locate_base_apk(tmp_path) == tmp_path / "base" / "base.apk"

    def test_flat_location_before_splits(self, tmp_path):
        (tmp_path / "splits").mkdir()
        (tmp_path / "splits" / "base.apk").write_bytes(b"apk")
        (tmp_path / "base.apk").write_bytes(b"apk")

        assert locate_base_apk(tmp_path) == tmp_path / "base.apk"

    def test_splits_location(self, tmp_path):
        (tmp_path / "splits").mkdir()
        (tmp_path / "splits" / "base.apk").write_bytes(b"apk")

        assert locate_base_apk(tmp_path) == tmp_path / "splits" / "base.apk"

    def test_nothing_found(self, tmp_path):
        (tmp_path / "base").mkdir()
        with pytest.raises(PayloadNotFoundError):
            locate_base_apk(tmp_path)


class TestManualPipeline:
    """End-to-end runs against a fake java executable."""

    def _converter(self, fake_java, tools_dir, scratch_base, reporter):
        return AabConverter(fake_java, tools_dir, reporter, scratch_base=scratch_base)

    def test_decompile_then_recompile(
        self, fake_java, tools_dir, scratch_base, reporter, bundle, java_log, tmp_path
    ):
        out = tmp_path / "out"

        ok = self._converter(fake_java, tools_dir, scratch_base, reporter).convert_manually(
            bundle, out
        )

        assert ok
        decompile, build = read_log(java_log)
        assert decompile.startswith(f"-jar {tools_dir / 'apktool.jar'} d ")
        assert "aab_extracted/base/base.apk -o " in decompile
        assert decompile.endswith("/decompiled -f")
        assert build.startswith(f"-jar {tools_dir / 'apktool.jar'} b ")
        assert build.endswith("/recompiled.apk")

        result = out / "app_converted.apk"
        assert result.read_text().startswith("rebuilt from ")
        assert [e.step for e in reporter.events] == [
            ConversionStep.EXTRACTING_AAB,
            ConversionStep.DECOMPILING_APK,
            ConversionStep.COMPILING_RESOURCES,
            ConversionStep.COMPLETE,
        ]
        assert reporter.percents == [10, 30, 70, 100]
        assert list(scratch_base.iterdir()) == []

    def test_relative_paths_resolve_against_caller_cwd(
        self, fake_java, tools_dir, scratch_base, reporter, bundle, monkeypatch
    ):
        monkeypatch.chdir(bundle.parent)
        converter = self._converter(fake_java, tools_dir, scratch_base, reporter)

        ok = converter.convert_manually(Path("app.aab"), Path("out"))

        assert ok, reporter.errors
        assert (bundle.parent / "out" / "app_converted.apk").is_file()
        assert reporter.output[-1] == (
            f"APK rebuilt successfully: {bundle.parent / 'out' / 'app_converted.apk'}"
        )

    def test_overwrites_existing_output(
        self, fake_java, tools_dir, scratch_base, reporter, bundle, tmp_path
    ):
        out = tmp_path / "out"
        out.mkdir()
        (out / "app_converted.apk").write_text("stale")

        ok = self._converter(fake_java, tools_dir, scratch_base, reporter).convert_manually(
            bundle, out
        )

        assert ok
        assert (out / "app_converted.apk").read_text() != "stale"

    def test_flat_payload_is_used(
        self, fake_java, tools_dir, scratch_base, reporter, java_log, tmp_path
    ):
        bundle = write_zip(tmp_path / "flat.aab", {"base.apk": b"apk", "splits/x": b""})

        ok = self._converter(fake_java, tools_dir, scratch_base, reporter).convert_manually(
            bundle, tmp_path / "out"
        )

        assert ok
        decompile = read_log(java_log)[0]
        assert "aab_extracted/base.apk -o " in decompile
        assert (tmp_path / "out" / "flat_converted.apk").is_file()

    def test_missing_payload_fails_before_decompiling(
        self, fake_java, tools_dir, scratch_base, reporter, java_log, tmp_path
    ):
        bundle = write_zip(tmp_path / "empty.aab", {"BundleConfig.pb": b""})

        ok = self._converter(fake_java, tools_dir, scratch_base, reporter).convert_manually(
            bundle, tmp_path / "out"
        )

        assert not ok
        assert read_log(java_log) == []
        assert ConversionStep.DECOMPILING_APK not in [e.step for e in reporter.events]
        assert reporter.last.step is ConversionStep.ERROR
        assert "Could not find base.apk in the AAB" in reporter.errors
        assert list(scratch_base.iterdir()) == []

    def test_recompile_failure_aborts(
        self, fake_java, tools_dir, scratch_base, reporter, bundle, tmp_path, monkeypatch
    ):
        monkeypatch.setenv("FAKE_JAVA_FAIL", "b")

        ok = self._converter(fake_java, tools_dir, scratch_base, reporter).convert_manually(
            bundle, tmp_path / "out"
        )

        assert not ok
        assert "Failed to recompile the APK" in reporter.errors
        assert reporter.last.step is ConversionStep.ERROR
        assert reporter.last.percent == 0
        assert not (tmp_path / "out" / "app_converted.apk").exists()
        assert list(scratch_base.iterdir()) == []

    def test_missing_bundle_fails_before_any_work(
        self, fake_java, tools_dir, scratch_base, reporter, java_log, tmp_path
    ):
        ok = self._converter(fake_java, tools_dir, scratch_base, reporter).convert_manually(
            tmp_path / "nope.aab", tmp_path / "out"
        )

        assert not ok
        assert read_log(java_log) == []
        assert list(scratch_base.iterdir()) == []
        assert reporter.last.step is ConversionStep.ERROR

    def test_corrupt_bundle_fails(
        self, fake_java, tools_dir, scratch_base, reporter, java_log, tmp_path
    ):
        bundle = tmp_path / "broken.aab"
        bundle.write_bytes(b"PK\x03\x04 truncated")

        ok = self._converter(fake_java, tools_dir, scratch_base, reporter).convert_manually(
            bundle, tmp_path / "out"
        )

        assert not ok
        assert read_log(java_log) == []
        assert any("Failed to extract broken.aab" in line for line in reporter.errors)
        assert list(scratch_base.iterdir()) == []
