"""The tool's bookkeeping block inside the target manifest.

Lives at ``workspace.metadata.cargo-patch-source`` when the manifest has a
``[workspace]`` section, otherwise at ``package.metadata.cargo-patch-source``.
A workspace root that is also a package uses the workspace location, since
only workspace-level patches apply to every member.
"""

from __future__ import annotations

from typing import Any

import tomlkit

from cargo_patch_source.core.config import (
    MANAGED_OVERRIDES_KEY,
    ORIGINAL_VERSIONS_KEY,
    TOOL_ID,
)
from cargo_patch_source.manifest import ensure_table, get_path, is_table, remove_path
from cargo_patch_source.models import ManagedMetadata, VersionCapture


def metadata_root(doc: Any) -> str:
    """``"workspace"`` or ``"package"``, whichever owns the block."""
    return "workspace" if "workspace" in doc else "package"


def _other_root(root: str) -> str:
    return "package" if root == "workspace" else "workspace"


def _parse_capture(value: Any) -> VersionCapture | None:
    if isinstance(value, str):
        return str(value)
    if is_table(value):
        return {str(k): str(v) for k, v in value.items() if isinstance(v, str)}
    return None


def read_metadata(doc: Any) -> ManagedMetadata | None:
    root = metadata_root(doc)
    block = get_path(doc, root, "metadata", TOOL_ID)
    if not is_table(block):
        block = get_path(doc, _other_root(root), "metadata", TOOL_ID)
    if not is_table(block):
        return None

    meta = ManagedMetadata()
    versions = block.get(ORIGINAL_VERSIONS_KEY)
    if is_table(versions):
        for name, value in versions.items():
            capture = _parse_capture(value)
            if capture is not None:
                meta.original_versions[str(name)] = capture

    managed = block.get(MANAGED_OVERRIDES_KEY)
    if isinstance(managed, list):
        for table_name in managed:
            if isinstance(table_name, str):
                meta.add_override(str(table_name))
    return meta


def write_metadata(doc: Any, meta: ManagedMetadata) -> None:
    """Persist *meta*; an empty one removes the block instead."""
    if meta.is_empty():
        clear_metadata(doc)
        return

    root = metadata_root(doc)
    remove_path(doc, _other_root(root), "metadata", TOOL_ID, keep=1)
    created = not is_table(get_path(doc, root, "metadata", TOOL_ID))
    block = ensure_table(doc, root, "metadata", TOOL_ID)

    versions = tomlkit.inline_table()
    for name in sorted(meta.original_versions):
        capture = meta.original_versions[name]
        if isinstance(capture, str):
            versions[name] = capture
        else:
            per_section = tomlkit.inline_table()
            for section in sorted(capture):
                per_section[section] = capture[section]
            versions[name] = per_section
    block[ORIGINAL_VERSIONS_KEY] = versions

    managed = tomlkit.array()
    managed.extend(meta.managed_overrides)
    block[MANAGED_OVERRIDES_KEY] = managed
    if created:
        # blank line before whichever header follows the new block
        block.add(tomlkit.nl())


def clear_metadata(doc: Any) -> None:
    """Remove the block (from either location) and any emptied namespace."""
    for root in ("workspace", "package"):
        remove_path(doc, root, "metadata", TOOL_ID, keep=1)
