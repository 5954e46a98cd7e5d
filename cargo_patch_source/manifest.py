"""Cargo.toml access through a format-preserving tomlkit document.

The engine only touches the manifest through the helpers below: path lookups,
table creation and removal, and reading/writing a dependency's ``version``.
Everything else in the document round-trips untouched.
"""

from __future__ import annotations

import contextlib
import os
import stat
import tempfile
from collections.abc import Iterator, MutableMapping
from pathlib import Path
from typing import Any

import structlog
import tomlkit
from tomlkit import TOMLDocument
from tomlkit.exceptions import TOMLKitError

from cargo_patch_source.core.config import DEFAULT_OVERRIDE_TABLE, MANIFEST_NAME
from cargo_patch_source.exceptions import IoFailure, ManifestParseError, TargetManifestNotFound

log = structlog.get_logger("cargo_patch_source.manifest")

_DEP_SECTIONS = ("dependencies", "dev-dependencies", "build-dependencies")


def resolve_manifest_path(manifest_path: Path | str | None) -> Path:
    """Default to ``./Cargo.toml``; a directory means its Cargo.toml."""
    if manifest_path is None:
        return Path.cwd() / MANIFEST_NAME
    path = Path(manifest_path)
    if path.is_dir():
        return path / MANIFEST_NAME
    return path


def load_manifest(path: Path) -> TOMLDocument:
    if not path.is_file():
        raise TargetManifestNotFound(path)
    try:
        # bytes + decode keeps CRLF line endings for write_manifest to detect
        content = path.read_bytes().decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ManifestParseError(path, str(exc)) from exc
    except OSError as exc:
        raise IoFailure(path, str(exc)) from exc
    try:
        return tomlkit.parse(content)
    except TOMLKitError as exc:
        raise ManifestParseError(path, str(exc)) from exc


def _normalize_line_endings(content: str) -> str:
    """A CRLF document stays all-CRLF, including lines tomlkit added with ``\\n``.

    Trailing blank lines left by a pruned final table collapse to one ending.
    """
    eol = "\r\n" if "\r\n" in content else "\n"
    content = content.replace("\r\n", "\n")
    if content.endswith("\n"):
        content = content.rstrip("\n") + "\n"
    if eol != "\n":
        content = content.replace("\n", eol)
    return content


def write_manifest(path: Path, doc: TOMLDocument) -> None:
    """Serialize *doc* to a sibling temp file and rename it over *path*.

    An interrupted write leaves either the old or the new content, never a
    truncated file.
    """
    content = _normalize_line_endings(tomlkit.dumps(doc))
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
        with contextlib.suppress(FileNotFoundError):
            os.chmod(tmp_name, stat.S_IMODE(path.stat().st_mode))
        os.replace(tmp_name, path)
    except OSError as exc:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise IoFailure(path, str(exc)) from exc
    log.debug("manifest.written", path=str(path), size=len(content))


# ── generic tree access ──────────────────────────────────────────────────


def is_table(value: Any) -> bool:
    return isinstance(value, MutableMapping)


def get_path(container: Any, *keys: str) -> Any | None:
    """Return the item at ``container[k1][k2]...`` or None."""
    current = container
    for key in keys:
        if not is_table(current) or key not in current:
            return None
        current = current[key]
    return current


def ensure_table(container: Any, *keys: str) -> Any:
    """Walk/create nested tables; intermediates are created as super tables.

    ``ensure_table(doc, "patch", "crates-io")`` renders as
    ``[patch.crates-io]`` without an empty ``[patch]`` header.
    """
    current = container
    for index, key in enumerate(keys):
        if key not in current:
            is_leaf = index == len(keys) - 1
            current[key] = tomlkit.table(is_super_table=not is_leaf)
        current = current[key]
    return current


def remove_path(container: Any, *keys: str, keep: int = 0) -> bool:
    """Delete the item at the path, pruning parent tables left empty.

    The first *keep* path components are never pruned.
    """
    parents = []
    current = container
    for key in keys[:-1]:
        if not is_table(current) or key not in current:
            return False
        parents.append((current, key))
        current = current[key]
    if not is_table(current) or keys[-1] not in current:
        return False
    del current[keys[-1]]
    for parent, key in reversed(parents[keep:]):
        if len(parent[key]) == 0:
            del parent[key]
        else:
            break
    return True


# ── dependency declarations ──────────────────────────────────────────────


def iter_dependency_tables(doc: Any) -> Iterator[tuple[str, Any]]:
    """Yield ``(section_path, table)`` for every dependency table in *doc*.

    Covers ``workspace.dependencies``, the top-level sections, and their
    ``target.<cfg>.*`` variants.
    """
    workspace_deps = get_path(doc, "workspace", "dependencies")
    if is_table(workspace_deps):
        yield "workspace.dependencies", workspace_deps

    for section in _DEP_SECTIONS:
        table = get_path(doc, section)
        if is_table(table):
            yield section, table

    targets = get_path(doc, "target")
    if is_table(targets):
        for cfg in list(targets.keys()):
            for section in _DEP_SECTIONS:
                table = get_path(targets, cfg, section)
                if is_table(table):
                    yield f"target.{cfg}.{section}", table


def declared_crate_name(key: str, declaration: Any) -> str:
    """The real crate name; ``foo = { package = "bar" }`` declares ``bar``."""
    if is_table(declaration) and isinstance(declaration.get("package"), str):
        return str(declaration["package"])
    return key


def iter_declarations(doc: Any) -> Iterator[tuple[str, Any, str, str]]:
    """Yield ``(section_path, table, key, crate_name)`` for each declaration."""
    for section_path, table in iter_dependency_tables(doc):
        for key in list(table.keys()):
            declaration = table[key]
            if isinstance(declaration, str) or is_table(declaration):
                yield section_path, table, key, declared_crate_name(key, declaration)


def get_dependency_version(declaration: Any) -> str | None:
    """Return the version requirement of a declaration, if it has one."""
    if isinstance(declaration, str):
        return str(declaration)
    if is_table(declaration):
        version = declaration.get("version")
        if isinstance(version, str):
            return str(version)
    return None


def set_dependency_version(table: Any, key: str, version: str) -> bool:
    """Rewrite ``table[key]``'s version, leaving every other field alone.

    Returns False when the declaration has no version field to rewrite.
    """
    declaration = table[key]
    if isinstance(declaration, str):
        table[key] = version
        return True
    if is_table(declaration) and "version" in declaration:
        declaration["version"] = version
        return True
    return False


def override_table_name(declaration: Any) -> str:
    """The ``[patch.<name>]`` table that overrides this declaration's origin."""
    if is_table(declaration):
        registry = declaration.get("registry")
        if isinstance(registry, str):
            return str(registry)
        git = declaration.get("git")
        if isinstance(git, str):
            return str(git)
    return DEFAULT_OVERRIDE_TABLE
