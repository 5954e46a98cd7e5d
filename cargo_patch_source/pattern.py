"""Anchored glob matching over crate names."""

from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class Matcher:
    """Compiled crate-name pattern. ``regex`` is None when matching everything."""

    pattern: str | None
    regex: re.Pattern[str] | None

    def matches(self, name: str) -> bool:
        if self.regex is None:
            return True
        return self.regex.fullmatch(name) is not None


def glob_to_regex(pattern: str) -> str:
    """Translate ``*`` and ``?`` to regex; everything else is literal.

    The result is anchored at both ends, so ``rattler-*`` does not match
    ``my-rattler-one``.
    """
    parts = ["^"]
    for ch in pattern:
        if ch == "*":
            parts.append(".*")
        elif ch == "?":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    parts.append("$")
    return "".join(parts)


def compile_pattern(pattern: str | None) -> Matcher:
    if pattern is None:
        return Matcher(pattern=None, regex=None)
    return Matcher(pattern=pattern, regex=re.compile(glob_to_regex(pattern), re.DOTALL))


def matches(matcher: Matcher, name: str) -> bool:
    return matcher.matches(name)
