# pml/semver/semver.py
from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Literal

__all__ = [
    "ModVersion",
    "VersionComparator",
    "VersionRequirement",
    "parseModVersion",
    "parseVersionRequirement",
    "versionSatisfies",
    "dependencyVersionMatches",
]



_NUMERIC_RE = re.compile(r"0|[1-9]\d*")
_SUFFIX_RE = re.compile(
    r"^(?:-(?P<prerelease>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)

Operator = Literal["<", "<=", ">", ">=", "=="]



@total_ordering
@dataclass(frozen=True)
class ModVersion:
    major: int
    minor: int
    patch: int
    prerelease: tuple[str, ...] = ()
    build: tuple[str, ...] = ()

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        prerelease = f"-{'.'.join(self.prerelease)}" if self.prerelease else ""
        build = f"+{'.'.join(self.build)}" if self.build else ""
        return f"{base}{prerelease}{build}"

    def _cmpKey(self) -> tuple:
        # Build is ignored for ordering; a release sorts above its prereleases.
        # Numeric prerelease identifiers sort below alphanumeric ones.
        pre = tuple((0, int(ident)) if ident.isdigit() else (1, ident) for ident in self.prerelease)
        return (self.major, self.minor, self.patch, 0 if self.prerelease else 1, pre)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ModVersion):
            return NotImplemented
        return self._cmpKey() == other._cmpKey()

    def __hash__(self) -> int:
        return hash(self._cmpKey())

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ModVersion):
            return NotImplemented
        return self._cmpKey() < other._cmpKey()



def parseModVersion(raw: str) -> ModVersion:
    """
    Parse a mod version string.

    Accepted: "1", "1.2", "1.2.3", "v1.2.3", "1.2.3-beta.1", "1.2.3+build.5".
    Rejected: ".1", "1.", "1..3", "1.2.3.4", "01.2.3", "latest".
    """
    if not isinstance(raw, str):
        raise TypeError(f"Version string must be a string type, got {type(raw).__name__}")

    text = raw.strip()
    if not text:
        raise ValueError("Version string cannot be empty or whitespace only")

    if text.startswith("v") and len(text) > 1 and text[1].isdigit():
        text = text[1:]

    sepIndex = len(text)
    for ch in ("-", "+"):
        idx = text.find(ch)
        if idx != -1 and idx < sepIndex:
            sepIndex = idx
    core, suffix = text[:sepIndex], text[sepIndex:]

    coreParts = core.split(".")
    if not 1 <= len(coreParts) <= 3:
        raise ValueError(f"Invalid version core {core!r} in {raw!r}")
    if not all(_NUMERIC_RE.fullmatch(part) for part in coreParts):
        raise ValueError(f"Invalid numeric component in version {raw!r}")
    numbers = [int(part) for part in coreParts] + [0] * (3 - len(coreParts))

    mtch = _SUFFIX_RE.match(suffix)
    if not mtch:
        raise ValueError(f"Invalid prerelease/build suffix in version {raw!r}")
    prerelease = tuple(mtch.group("prerelease").split(".")) if mtch.group("prerelease") else ()
    build = tuple(mtch.group("build").split(".")) if mtch.group("build") else ()

    return ModVersion(numbers[0], numbers[1], numbers[2], prerelease, build)



@dataclass(frozen=True)
class VersionComparator:
    operator: Operator
    version: ModVersion

    def test(self, version: ModVersion) -> bool:
        if self.operator == "==":
            return version == self.version
        if self.operator == ">=":
            return version >= self.version
        if self.operator == "<=":
            return version <= self.version
        if self.operator == ">":
            return version > self.version
        return version < self.version



@dataclass(frozen=True)
class VersionRequirement:
    # All comparators are AND-ed.
    comparators: tuple[VersionComparator, ...] = ()



def _caret(version: ModVersion) -> tuple[VersionComparator, VersionComparator]:
    # ^M.m.p keeps the left-most non-zero component fixed
    if version.major > 0:
        upper = ModVersion(version.major + 1, 0, 0)
    elif version.minor > 0:
        upper = ModVersion(0, version.minor + 1, 0)
    else:
        upper = ModVersion(0, 0, version.patch + 1)
    return VersionComparator(">=", version), VersionComparator("<", upper)



def _tilde(version: ModVersion) -> tuple[VersionComparator, VersionComparator]:
    if version.minor > 0 or version.patch > 0:
        upper = ModVersion(version.major, version.minor + 1, 0)
    else:
        upper = ModVersion(version.major + 1, 0, 0)
    return VersionComparator(">=", version), VersionComparator("<", upper)



def parseVersionRequirement(raw: str | None) -> VersionRequirement | None:
    """
    Parse a dependency requirement.

        None, "", "*"      -> no constraint (returns None)
        "1.2.3"            -> == 1.2.3
        ">=1.2.0 <2.0.0"   -> AND of both
        "^1.2.3", "~1.2.3" -> caret / tilde ranges
        "1.0.0 - 2.0.0"    -> inclusive hyphen range
    """
    if raw is None:
        return None
    text = raw.strip()
    if not text or text == "*":
        return None

    mtch = re.match(r"^(?P<left>\S+)\s+-\s+(?P<right>\S+)$", text)
    if mtch:
        left = parseModVersion(mtch.group("left"))
        right = parseModVersion(mtch.group("right"))
        if right < left:
            raise ValueError(f"Invalid hyphen range {raw!r}: upper < lower")
        return VersionRequirement((VersionComparator(">=", left), VersionComparator("<=", right)))

    comparators: list[VersionComparator] = []
    for token in text.split():
        if token[0] in ("^", "~"):
            if len(token) == 1:
                raise ValueError(f"Missing version after {token[0]!r} in requirement {raw!r}")
            version = parseModVersion(token[1:])
            comparators.extend(_caret(version) if token[0] == "^" else _tilde(version))
            continue
        for op in ("<=", ">=", "==", "<", ">", "="):
            if token.startswith(op):
                rest = token[len(op):]
                if not rest:
                    raise ValueError(f"Missing version after operator {op!r} in requirement {raw!r}")
                comparators.append(VersionComparator("==" if op == "=" else op, parseModVersion(rest)))
                break
        else:
            comparators.append(VersionComparator("==", parseModVersion(token)))

    return VersionRequirement(tuple(comparators))



def versionSatisfies(version: ModVersion, requirement: VersionRequirement | None) -> bool:
    if requirement is None:
        return True
    return all(comparator.test(version) for comparator in requirement.comparators)



def dependencyVersionMatches(required: str, present: str) -> bool:
    """
    Decide whether a present mod version satisfies a declared dependency version.

    Identical strings always match. Otherwise both sides must parse: the
    declared side as a requirement, the present side as a version. Anything
    unparsable (e.g. "latest", "beta-3") only matches by exact string.
    """
    if required == present:
        return True
    try:
        requirement = parseVersionRequirement(required)
        version = parseModVersion(present)
    except (TypeError, ValueError):
        return False
    return versionSatisfies(version, requirement)
