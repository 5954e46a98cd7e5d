"""Intersect discovered crates with the target manifest's declarations."""

from __future__ import annotations

from typing import Any

import structlog

from cargo_patch_source.exceptions import NoMatchingCrates
from cargo_patch_source.manifest import iter_declarations
from cargo_patch_source.models import CrateToPatch, SourceCrate
from cargo_patch_source.pattern import Matcher

log = structlog.get_logger("cargo_patch_source.selector")


def select_crates(
    source_crates: list[SourceCrate],
    target_doc: Any,
    matcher: Matcher,
) -> list[CrateToPatch]:
    """Return one CrateToPatch per declared dependency the source provides.

    Only dependencies the target already declares (in any dependency section)
    are selected; source crates the target does not use are skipped.

    Raises:
        NoMatchingCrates: nothing survived the intersection.
    """
    available = {c.name: c for c in source_crates}
    selected: dict[str, CrateToPatch] = {}

    for section_path, _table, _key, crate_name in iter_declarations(target_doc):
        if crate_name in selected:
            continue
        if not matcher.matches(crate_name):
            continue
        source = available.get(crate_name)
        if source is None:
            continue
        log.debug("selector.selected", crate=crate_name, section=section_path)
        selected[crate_name] = CrateToPatch(
            name=source.name,
            version=source.version,
            location=source.location,
        )

    if not selected:
        raise NoMatchingCrates(matcher.pattern)
    return list(selected.values())
