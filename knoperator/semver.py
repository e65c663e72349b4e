"""Semantic version helpers for versions written with a leading 'v'.

Shorthand versions such as v1 and v1.2 are accepted and stand for v1.0.0
and v1.2.0. Invalid versions sort before all valid ones.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

_VERSION = re.compile(
    r"""
    v(?P<major>0|[1-9][0-9]*)
    (?:\.(?P<minor>0|[1-9][0-9]*)
      (?:\.(?P<patch>0|[1-9][0-9]*)
        (?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?
        (?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?
      )?
    )?
    """,
    re.VERBOSE,
)


@dataclass(frozen=True)
class _Parsed:
    major: int
    minor: int
    patch: int
    prerelease: tuple[str, ...]


def _parse(version: str) -> Optional[_Parsed]:
    match = _VERSION.fullmatch(version)
    if match is None:
        return None
    pre = match.group("pre")
    identifiers = tuple(pre.split(".")) if pre else ()
    if any(i.isdigit() and len(i) > 1 and i.startswith("0") for i in identifiers):
        return None
    return _Parsed(
        int(match.group("major")),
        int(match.group("minor") or 0),
        int(match.group("patch") or 0),
        identifiers,
    )


def is_valid(version: str) -> bool:
    return _parse(version) is not None


def major(version: str) -> str:
    """Return 'vMAJOR', or '' if the version is invalid."""
    parsed = _parse(version)
    return f"v{parsed.major}" if parsed else ""


def major_minor(version: str) -> str:
    """Return 'vMAJOR.MINOR', or '' if the version is invalid."""
    parsed = _parse(version)
    return f"v{parsed.major}.{parsed.minor}" if parsed else ""


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


def _compare_prerelease(first: tuple[str, ...], second: tuple[str, ...]) -> int:
    if first == second:
        return 0
    if not first:
        return 1
    if not second:
        return -1
    for a, b in zip(first, second):
        if a == b:
            continue
        a_num, b_num = a.isdigit(), b.isdigit()
        if a_num and not b_num:
            return -1
        if b_num and not a_num:
            return 1
        if a_num:
            return _sign(int(a) - int(b))
        return -1 if a < b else 1
    return _sign(len(first) - len(second))


def compare(first: str, second: str) -> int:
    """Return -1, 0 or 1 as first is less than, equal to or greater than second."""
    a, b = _parse(first), _parse(second)
    if a is None and b is None:
        return 0
    if a is None:
        return -1
    if b is None:
        return 1
    core = _sign(
        (a.major, a.minor, a.patch) > (b.major, b.minor, b.patch)
    ) - _sign((a.major, a.minor, a.patch) < (b.major, b.minor, b.patch))
    if core:
        return core
    return _compare_prerelease(a.prerelease, b.prerelease)