"""Shared pytest fixtures for cargo-patch-source tests."""

from __future__ import annotations

import tomllib
from pathlib import Path

import pytest

TARGET_MANIFEST = """\
[package]
name = "target-project"
version = "0.1.0"
edition = "2021"

[dependencies]
# crates we expect to patch
rattler-one = "1.0.0"
rattler-two = { version = "2.0.0", features = ["serde"] }
other-crate = "3.0.0"
serde = "1"
"""


def write_crate(directory: Path, name: str, version: str) -> Path:
    """Create a minimal package at *directory*."""
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "Cargo.toml").write_text(
        f'[package]\nname = "{name}"\nversion = "{version}"\nedition = "2021"\n'
    )
    (directory / "src").mkdir(exist_ok=True)
    (directory / "src" / "lib.rs").write_text("")
    return directory


def make_workspace(root: Path, crates: dict[str, str]) -> Path:
    """Create a workspace at *root* with one member per ``name -> version``."""
    root.mkdir(parents=True, exist_ok=True)
    (root / "Cargo.toml").write_text('[workspace]\nmembers = ["crates/*"]\n')
    for name, version in crates.items():
        write_crate(root / "crates" / name, name, version)
    return root


def load(path: Path) -> dict:
    return tomllib.loads(path.read_text())


@pytest.fixture
def source_workspace(tmp_path: Path) -> Path:
    return make_workspace(
        tmp_path / "rattler",
        {"rattler-one": "1.1.0", "rattler-two": "2.1.0", "other-crate": "3.1.0"},
    )


@pytest.fixture
def target_manifest(tmp_path: Path) -> Path:
    project = tmp_path / "target-project"
    project.mkdir()
    manifest = project / "Cargo.toml"
    manifest.write_text(TARGET_MANIFEST)
    return manifest
