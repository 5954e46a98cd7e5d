"""Constants and environment-driven settings."""

from __future__ import annotations

import os
from dataclasses import dataclass

TOOL_ID = "cargo-patch-source"
MANIFEST_NAME = "Cargo.toml"

# Override table used when a dependency comes from the default registry.
DEFAULT_OVERRIDE_TABLE = "crates-io"

ORIGINAL_VERSIONS_KEY = "original-versions"
MANAGED_OVERRIDES_KEY = "managed-overrides"

# Version Cargo assumes for a package that omits one.
DEFAULT_PACKAGE_VERSION = "0.0.0"


@dataclass(frozen=True)
class Settings:
    """Runtime settings read from the environment.

    Environment variables:
        CARGO_PATCH_SOURCE_LOG_LEVEL   log level (default: INFO)
        CARGO_PATCH_SOURCE_LOG_FORMAT  console | json (default: console)
        CARGO_PATCH_SOURCE_GIT         git executable (default: git)
    """

    log_level: str = "INFO"
    log_format: str = "console"
    git_executable: str = "git"

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            log_level=os.environ.get("CARGO_PATCH_SOURCE_LOG_LEVEL", "INFO").upper(),
            log_format=os.environ.get("CARGO_PATCH_SOURCE_LOG_FORMAT", "console").lower(),
            git_executable=os.environ.get("CARGO_PATCH_SOURCE_GIT", "git"),
        )
