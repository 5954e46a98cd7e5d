"""Tests for CLI commands (click CliRunner, real temp files)."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from cargo_patch_source.cli import main, run

from conftest import TARGET_MANIFEST, load


@pytest.fixture(autouse=True)
def _no_logging_setup(monkeypatch):
    monkeypatch.setattr("cargo_patch_source.cli.setup_logging", lambda verbose=False: None)


@pytest.fixture
def runner():
    return CliRunner()


# ── apply ──


class TestApply:
    def test_local_apply(self, runner, source_workspace: Path, target_manifest: Path):
        result = runner.invoke(
            main,
            [
                "apply",
                "--path", str(source_workspace),
                "--pattern", "rattler-*",
                "--manifest-path", str(target_manifest),
            ],
        )
        assert result.exit_code == 0, result.output
        assert "Patching rattler-one 1.1.0 ->" in result.output
        assert "Patching rattler-two 2.1.0 ->" in result.output
        assert f"Successfully applied patches to {target_manifest}" in result.output
        assert load(target_manifest)["dependencies"]["rattler-one"] == "1.1.0"

    def test_manifest_path_directory(self, runner, source_workspace: Path, target_manifest: Path):
        result = runner.invoke(
            main,
            ["apply", "--path", str(source_workspace), "--manifest-path", str(target_manifest.parent)],
        )
        assert result.exit_code == 0, result.output
        assert "other-crate" in load(target_manifest)["patch"]["crates-io"]

    def test_default_manifest_is_cwd(self, runner, source_workspace: Path, target_manifest: Path, monkeypatch):
        monkeypatch.chdir(target_manifest.parent)
        result = runner.invoke(main, ["apply", "--path", str(source_workspace), "--pattern", "other-*"])
        assert result.exit_code == 0, result.output
        assert load(target_manifest)["dependencies"]["other-crate"] == "3.1.0"

    def test_warning_printed(self, runner, source_workspace: Path, tmp_path: Path):
        manifest = tmp_path / "Cargo.toml"
        manifest.write_text(
            '[package]\nname = "p"\nversion = "0.1.0"\n\n'
            '[dependencies]\nrattler-one = { path = "../x" }\n'
        )
        result = runner.invoke(
            main, ["apply", "--path", str(source_workspace), "--manifest-path", str(manifest)]
        )
        assert result.exit_code == 0, result.output
        assert "Warning: rattler-one has no version field" in result.output

    def test_everything_skipped(self, runner, source_workspace: Path, tmp_path: Path):
        manifest = tmp_path / "Cargo.toml"
        content = (
            '[package]\nname = "p"\nversion = "0.1.0"\n\n'
            '[dependencies]\nrattler-one = "1.0.0"\n\n'
            '[patch.crates-io]\nrattler-one = { path = "/mine" }\n'
        )
        manifest.write_text(content)
        result = runner.invoke(
            main, ["apply", "--path", str(source_workspace), "--manifest-path", str(manifest)]
        )
        assert result.exit_code == 0, result.output
        assert "No crates to patch after skipping existing patch entries" in result.output
        assert manifest.read_text() == content


class TestApplyUsage:
    def test_neither_path_nor_git(self, runner, target_manifest: Path):
        result = runner.invoke(main, ["apply", "--manifest-path", str(target_manifest)])
        assert result.exit_code == 2
        assert "exactly one of --path or --git" in result.output

    def test_both_path_and_git(self, runner, source_workspace: Path, target_manifest: Path):
        result = runner.invoke(
            main,
            ["apply", "--path", str(source_workspace), "--git", "https://x/y", "--pattern", "a"],
        )
        assert result.exit_code == 2

    def test_ref_without_git(self, runner, source_workspace: Path):
        result = runner.invoke(main, ["apply", "--path", str(source_workspace), "--branch", "main"])
        assert result.exit_code == 2
        assert "require --git" in result.output

    def test_two_refs(self, runner):
        result = runner.invoke(
            main, ["apply", "--git", "https://x/y", "--branch", "main", "--tag", "v1", "--pattern", "a"]
        )
        assert result.exit_code == 2
        assert "only one of branch, tag or rev" in result.output

    def test_empty_ref(self, runner):
        result = runner.invoke(main, ["apply", "--git", "https://x/y", "--branch", "", "--pattern", "a"])
        assert result.exit_code == 2
        assert "must not be empty" in result.output


class TestApplyErrors:
    def test_missing_source(self, runner, tmp_path: Path, target_manifest: Path):
        result = runner.invoke(
            main,
            ["apply", "--path", str(tmp_path / "missing"), "--manifest-path", str(target_manifest)],
        )
        assert result.exit_code == 3
        assert "Error: Source path does not exist" in result.output

    def test_missing_target(self, runner, source_workspace: Path, tmp_path: Path):
        result = runner.invoke(
            main,
            ["apply", "--path", str(source_workspace), "--manifest-path", str(tmp_path / "nope.toml")],
        )
        assert result.exit_code == 4

    def test_git_without_pattern(self, runner, target_manifest: Path):
        result = runner.invoke(
            main,
            ["apply", "--git", "https://github.com/org/rattler", "--manifest-path", str(target_manifest)],
        )
        assert result.exit_code == 6
        assert "--pattern is required" in result.output
        assert target_manifest.read_text() == TARGET_MANIFEST

    def test_no_matching_crates(self, runner, source_workspace: Path, target_manifest: Path):
        result = runner.invoke(
            main,
            [
                "apply",
                "--path", str(source_workspace),
                "--pattern", "tokio-*",
                "--manifest-path", str(target_manifest),
            ],
        )
        assert result.exit_code == 7
        assert "tokio-*" in result.output
        assert target_manifest.read_text() == TARGET_MANIFEST


# ── remove ──


class TestRemove:
    def test_round_trip(self, runner, source_workspace: Path, target_manifest: Path):
        before = load(target_manifest)
        runner.invoke(main, ["apply", "--path", str(source_workspace), "--manifest-path", str(target_manifest)])

        result = runner.invoke(main, ["remove", "--manifest-path", str(target_manifest)])

        assert result.exit_code == 0, result.output
        assert "Restored original versions for 3 crates" in result.output
        assert f"Successfully removed patches from {target_manifest}" in result.output
        assert load(target_manifest) == before

    def test_pattern_reports_remaining(self, runner, source_workspace: Path, target_manifest: Path):
        runner.invoke(main, ["apply", "--path", str(source_workspace), "--manifest-path", str(target_manifest)])

        result = runner.invoke(
            main, ["remove", "--pattern", "rattler-*", "--manifest-path", str(target_manifest)]
        )

        assert result.exit_code == 0, result.output
        assert "Restored original versions for 2 crates" in result.output
        assert "Still patched: other-crate" in result.output

    def test_nothing_to_remove(self, runner, target_manifest: Path):
        result = runner.invoke(main, ["remove", "--manifest-path", str(target_manifest)])
        assert result.exit_code == 0
        assert "No managed patches to remove" in result.output
        assert target_manifest.read_text() == TARGET_MANIFEST

    def test_missing_manifest(self, runner, tmp_path: Path):
        result = runner.invoke(main, ["remove", "--manifest-path", str(tmp_path / "Cargo.toml")])
        assert result.exit_code == 4
        assert "Target manifest not found" in result.output


# ── entry point ──


class TestRun:
    def test_strips_cargo_subcommand(self, monkeypatch):
        monkeypatch.setattr("sys.argv", ["cargo-patch-source", "patch-source", "remove"])
        with patch("cargo_patch_source.cli.main") as group:
            run()
        group.assert_called_once_with(args=["remove"], prog_name="cargo-patch-source")

    def test_plain_invocation(self, monkeypatch):
        monkeypatch.setattr("sys.argv", ["cargo-patch-source", "apply", "--path", "x"])
        with patch("cargo_patch_source.cli.main") as group:
            run()
        group.assert_called_once_with(args=["apply", "--path", "x"], prog_name="cargo-patch-source")

    def test_help_lists_commands(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "apply" in result.output
        assert "remove" in result.output
