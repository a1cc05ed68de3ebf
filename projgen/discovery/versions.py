"""Semantic version parsing and comparison for probed tool output.

Tool ``--version`` output is free text (``go version go1.24.1 linux/amd64``,
``Gradle 8.5``, ``Terraform v1.6.0``); the first ``major.minor[.patch][-pre]``
token found is taken as the tool's version.
"""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass, field
from typing import Optional

_VERSION_RE = re.compile(r"(\d+)\.(\d+)(?:\.(\d+))?(?:-([0-9A-Za-z.-]+))?")


@functools.total_ordering
@dataclass(frozen=True)
class Version:
    """A ``major.minor.patch[-prerelease]`` version.

    Ordering follows semver precedence: a pre-release sorts below the release
    it precedes (``1.0.0-rc.1 < 1.0.0``), numeric pre-release identifiers
    compare numerically and sort below alphanumeric ones.
    """

    major: int
    minor: int
    patch: int = 0
    prerelease: tuple[str, ...] = field(default=())

    def _key(self) -> tuple:
        pre: tuple = tuple((0, int(p), "") if p.isdigit() else (1, 0, p) for p in self.prerelease)
        # Releases outrank every pre-release of the same triple.
        return (self.major, self.minor, self.patch, 0 if self.prerelease else 1, pre)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        return text


def parse_version(text: str, pattern: str = "") -> Optional[Version]:
    """Extract the first version found in *text*, or ``None`` if there is none.

    With *pattern*, only the text captured by its first group is considered;
    tools that print several versions use this to select the right one.
    """
    if not text:
        return None
    if pattern:
        selected = re.search(pattern, text)
        if selected is None:
            return None
        text = selected.group(1)
    match = _VERSION_RE.search(text)
    if match is None:
        return None
    major, minor, patch, pre = match.groups()
    return Version(
        major=int(major),
        minor=int(minor),
        patch=int(patch) if patch else 0,
        prerelease=tuple(pre.split(".")) if pre else (),
    )


def parse_minimum(min_version: str) -> Optional[Version]:
    """Parse a minimum-version constraint. Bare majors (``"15"``) are accepted."""
    text = (min_version or "").strip().lstrip("v")
    if not text:
        return None
    if text.isdigit():
        return Version(int(text), 0, 0)
    parsed = parse_version(text)
    if parsed is None:
        raise ValueError(f"invalid minimum version: {min_version!r}")
    return parsed


def satisfies(version: Optional[str], min_version: str) -> bool:
    """Return ``True`` if *version* meets *min_version*. An empty minimum accepts anything."""
    minimum = parse_minimum(min_version)
    if minimum is None:
        return True
    parsed = parse_version(version or "")
    if parsed is None:
        return False
    return parsed >= minimum


def max_minimum(a: str, b: str) -> str:
    """The stricter of two minimum-version constraints ("" means none)."""
    va, vb = parse_minimum(a), parse_minimum(b)
    if va is None:
        return b
    if vb is None:
        return a
    return a if va >= vb else b
