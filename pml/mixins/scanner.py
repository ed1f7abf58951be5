# pml/mixins/scanner.py
from __future__ import annotations

import bisect
import logging
import re
from dataclasses import dataclass, replace
from typing import Literal

logger = logging.getLogger(__name__)

__all__ = ["Region", "SourceIndex", "scanNonCodeSpans", "findMatching"]

RegionKind = Literal["function", "class", "method", "module"]

_IDENT = r"[A-Za-z_$][\w$]*"

# Previous words after which a "/" starts a regex literal, not a division
_REGEX_KEYWORDS = frozenset({
    "return", "typeof", "case", "do", "else", "in", "of", "new", "delete",
    "void", "throw", "instanceof", "yield", "await",
})

_FUNCTION_DECL_RE = re.compile(rf"\b(?:async\s+)?function\s*\*?\s*({_IDENT})\s*\(")
_CLASS_DECL_RE = re.compile(rf"\bclass\s+({_IDENT})(?:\s+extends\s+[^{{]+?)?\s*\{{")
# X.prototype.m = function(...) / X.m = async function / m = function
_ASSIGN_FUNCTION_RE = re.compile(
    rf"(?<![\w$.])((?:{_IDENT}\.)*{_IDENT})\s*=\s*(?:async\s+)?function\s*\*?\s*(?:{_IDENT})?\s*\("
)
# m = (a, b) => {  /  m = a => {
_ASSIGN_ARROW_RE = re.compile(
    rf"(?<![\w$.])((?:{_IDENT}\.)*{_IDENT})\s*=\s*(?:async\s*)?(?:\([^()]*\)|{_IDENT})\s*=>\s*\{{"
)
_MEMBER_RE = re.compile(
    rf"((?:static\s+)?)(?:async\s+)?(?:[gs]et\s+(?=[#\w$]))?(?:\*\s*)?(#?{_IDENT})\s*\("
)
_FIELD_ARROW_RE = re.compile(
    rf"((?:static\s+)?)(#?{_IDENT})\s*=\s*(?:async\s*)?(?:\([^()]*\)|{_IDENT})\s*=>\s*\{{"
)
_CONTROL_WORDS = frozenset({"if", "for", "while", "switch", "catch", "with", "function", "return"})



@dataclass(frozen=True)
class Region:
    """
    One addressable region of the host text.

    `start` is where the header begins, `bodyOpen` the index of the opening
    brace and `close` the index of the matching closing brace.
    """
    id: str
    kind: RegionKind
    start: int
    bodyOpen: int
    close: int

    @property
    def bodyStart(self) -> int:
        return self.bodyOpen + 1

    def contains(self, pos: int) -> bool:
        return self.start <= pos <= self.close



# ------------------------------------------------------------------ #
# Lexing
# ------------------------------------------------------------------ #

def _skipString(text: str, i: int, quote: str) -> int:
    j = i + 1
    n = len(text)
    while j < n:
        c = text[j]
        if c == "\\":
            j += 2
            continue
        if c == quote or c == "\n":
            return j + 1
        j += 1
    return n


def _skipRegex(text: str, i: int) -> int | None:
    """Return the end of a regex literal starting at `i`, or None if it is not one."""
    j = i + 1
    n = len(text)
    inClass = False
    while j < n:
        c = text[j]
        if c == "\n":
            return None
        if c == "\\":
            j += 2
            continue
        if inClass:
            if c == "]":
                inClass = False
        elif c == "[":
            inClass = True
        elif c == "/":
            j += 1
            while j < n and (text[j].isalnum() or text[j] in "_$"):
                j += 1
            return j
        j += 1
    return None


def _regexAllowed(text: str, lastIdx: int) -> bool:
    if lastIdx < 0:
        return True
    last = text[lastIdx]
    if last in ")]}":
        return False
    if last.isalnum() or last in "_$":
        mtch = re.search(r"[\w$]+$", text[max(0, lastIdx - 16):lastIdx + 1])
        return bool(mtch) and mtch.group(0) in _REGEX_KEYWORDS
    # A value ending a string or template also forbids it
    return last not in "'\"`"


def scanNonCodeSpans(text: str) -> list[tuple[int, int]]:
    """
    Return sorted, non-overlapping [start, end) spans of text that is not code:
    string literals, template literal chunks, comments and regex literals.

    Template substitutions (`${...}`) are code; the chunks around them are not.
    """
    spans: list[tuple[int, int]] = []
    templateDepths: list[int] = []
    n = len(text)
    i = 0
    lastIdx = -1

    while i < n:
        ch = text[i]

        if ch == "`" or (ch == "}" and templateDepths and templateDepths[-1] == 0):
            if ch == "}":
                templateDepths.pop()
            start = i
            j = i + 1
            while j < n:
                c = text[j]
                if c == "\\":
                    j += 2
                    continue
                if c == "`":
                    j += 1
                    break
                if c == "$" and text.startswith("{", j + 1):
                    j += 2
                    templateDepths.append(0)
                    break
                j += 1
            j = min(j, n)
            spans.append((start, j))
            lastIdx = j - 1
            i = j
            continue

        if ch in ("'", '"'):
            end = _skipString(text, i, ch)
            spans.append((i, end))
            lastIdx = end - 1
            i = end
            continue

        if ch == "/":
            nxt = text[i + 1:i + 2]
            if nxt == "/":
                end = text.find("\n", i)
                end = n if end == -1 else end
                spans.append((i, end))
                i = end
                continue
            if nxt == "*":
                end = text.find("*/", i + 2)
                end = n if end == -1 else end + 2
                spans.append((i, end))
                i = end
                continue
            if _regexAllowed(text, lastIdx):
                end = _skipRegex(text, i)
                if end is not None:
                    spans.append((i, end))
                    lastIdx = end - 1
                    i = end
                    continue

        if templateDepths:
            if ch == "{":
                templateDepths[-1] += 1
            elif ch == "}":
                templateDepths[-1] -= 1

        if not ch.isspace():
            lastIdx = i
        i += 1

    return spans


def findMatching(text: str, openPos: int, spans: list[tuple[int, int]], spanStarts: list[int] | None = None) -> int:
    """
    Index of the bracket closing the one at `openPos`, skipping non-code spans.
    Returns -1 when unbalanced.
    """
    opener = text[openPos]
    closer = {"{": "}", "(": ")", "[": "]"}[opener]
    if spanStarts is None:
        spanStarts = [s for s, _ in spans]
    k = bisect.bisect_right(spanStarts, openPos)
    depth = 0
    i = openPos
    n = len(text)
    while i < n:
        if k < len(spans) and i >= spans[k][0]:
            i = max(i, spans[k][1])
            k += 1
            continue
        c = text[i]
        if c == opener:
            depth += 1
        elif c == closer:
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1



# ------------------------------------------------------------------ #
# Index
# ------------------------------------------------------------------ #

class SourceIndex:
    """
    Region table of one host text: free functions, classes and methods.

    Methods get synthetic ids such as "GN.prototype::init" (instance) or
    "GN::create" (static). The first occurrence of an id wins.

    After every splice the caller reports it through `shift()`. Offsets of
    regions after the splice move; a splice that cuts through a region
    boundary marks the index dirty and the next lookup rebuilds it.
    """

    def __init__(self, text: str):
        self.text = text
        self._regions: dict[str, Region] = {}
        self._classes: dict[str, Region] = {}
        self.dirty = False
        self.builds = 0
        self._build()

    @classmethod
    def build(cls, text: str) -> "SourceIndex":
        return cls(text)

    # ----- Build -----

    def _build(self) -> None:
        text = self.text
        spans = scanNonCodeSpans(text)
        spanStarts = [s for s, _ in spans]
        self._spans = spans
        self._spanStarts = spanStarts
        self._regions = {}
        self._classes = {}

        def inCode(pos: int) -> bool:
            k = bisect.bisect_right(spanStarts, pos) - 1
            return k < 0 or pos >= spans[k][1]

        def add(region: Region) -> None:
            if region.id not in self._regions:
                self._regions[region.id] = region

        for mtch in _FUNCTION_DECL_RE.finditer(text):
            if not inCode(mtch.start()):
                continue
            region = self._functionFrom(mtch.group(1), mtch.start(), mtch.end() - 1)
            if region:
                add(region)

        for regex in (_ASSIGN_FUNCTION_RE, _ASSIGN_ARROW_RE):
            for mtch in regex.finditer(text):
                if not inCode(mtch.start()):
                    continue
                target = mtch.group(1)
                if regex is _ASSIGN_ARROW_RE:
                    region = self._regionAt(self._assignedId(target), "function", mtch.start(), mtch.end() - 1)
                else:
                    region = self._functionFrom(self._assignedId(target), mtch.start(), mtch.end() - 1)
                if region:
                    add(region)

        for mtch in _CLASS_DECL_RE.finditer(text):
            if not inCode(mtch.start()):
                continue
            name = mtch.group(1)
            classRegion = self._regionAt(f"class {name}", "class", mtch.start(), mtch.end() - 1)
            if classRegion is None:
                continue
            if name not in self._classes:
                self._classes[name] = classRegion
            for method in self._scanClassBody(name, classRegion):
                add(method)

        self.dirty = False
        self.builds += 1
        logger.debug("Indexed %d regions and %d classes in %d chars", len(self._regions), len(self._classes), len(text))

    @staticmethod
    def _assignedId(target: str) -> str:
        # "X.prototype.m" -> "X.prototype::m", "X.m" -> "X::m"
        parts = target.split(".")
        if len(parts) >= 2:
            return f"{'.'.join(parts[:-1])}::{parts[-1]}"
        return target

    def _regionAt(self, regionId: str, kind: RegionKind, start: int, bodyOpen: int) -> Region | None:
        close = findMatching(self.text, bodyOpen, self._spans, self._spanStarts)
        if close == -1:
            return None
        return Region(regionId, kind, start, bodyOpen, close)

    def _functionFrom(self, regionId: str, start: int, parenOpen: int) -> Region | None:
        # Skip the parameter list, then expect the body
        parenClose = findMatching(self.text, parenOpen, self._spans, self._spanStarts)
        if parenClose == -1:
            return None
        bodyOpen = self.text.find("{", parenClose)
        if bodyOpen == -1 or self.text[parenClose + 1:bodyOpen].strip():
            return None
        return self._regionAt(regionId, "function", start, bodyOpen)

    def _scanClassBody(self, className: str, classRegion: Region) -> list[Region]:
        text = self.text
        out: list[Region] = []
        i = classRegion.bodyOpen + 1
        end = classRegion.close
        while i < end:
            while i < end and (text[i].isspace() or text[i] == ";"):
                i += 1
            if i >= end:
                break

            k = bisect.bisect_right(self._spanStarts, i) - 1
            if k >= 0 and self._spans[k][0] <= i < self._spans[k][1]:
                i = self._spans[k][1]
                continue

            arrow = _FIELD_ARROW_RE.match(text, i, end)
            if arrow:
                region = self._memberRegion(className, arrow.group(1), arrow.group(2), i, arrow.end() - 1, isArrow=True)
                if region:
                    out.append(region)
                    i = region.close + 1
                    continue

            member = _MEMBER_RE.match(text, i, end)
            if member and member.group(2) not in _CONTROL_WORDS:
                region = self._memberRegion(className, member.group(1), member.group(2), i, member.end() - 1, isArrow=False)
                if region:
                    out.append(region)
                    i = region.close + 1
                    continue

            # Field or static block: skip to the next ";" at this depth
            i = self._skipMember(i, end)
        return out

    def _memberRegion(self, className: str, static: str, name: str, start: int, openPos: int, *, isArrow: bool) -> Region | None:
        ownerId = className if static.strip() else f"{className}.prototype"
        regionId = f"{ownerId}::{name}"
        if isArrow:
            return self._regionAt(regionId, "method", start, openPos)
        region = self._functionFrom(regionId, start, openPos)
        return replace(region, kind="method") if region else None

    def _skipMember(self, i: int, end: int) -> int:
        text = self.text
        while i < end:
            k = bisect.bisect_right(self._spanStarts, i) - 1
            if k >= 0 and self._spans[k][0] <= i < self._spans[k][1]:
                i = self._spans[k][1]
                continue
            c = text[i]
            if c in "{([":
                close = findMatching(text, i, self._spans, self._spanStarts)
                if close == -1:
                    return end
                if c == "{":
                    # static {} blocks and computed methods end with their body
                    return close + 1
                i = close + 1
                continue
            if c == ";":
                return i + 1
            i += 1
        return end

    # ----- Lookup -----

    def _ensureFresh(self) -> None:
        if self.dirty:
            self._build()

    def lookup(self, scope: str | None, path: str) -> Region | None:
        """
        Resolve a (scope, path) address to a region.

            scope "X.prototype" -> method path of class X, or X.prototype.path = function
            scope "X"           -> static X.path first, then instance X.prototype.path
            no scope            -> function path / path = function / path = () => {}
        """
        self._ensureFresh()
        for candidate in self._candidateIds(scope, path):
            region = self._regions.get(candidate)
            if region is not None:
                return region
        return None

    def classRegion(self, name: str) -> Region | None:
        self._ensureFresh()
        return self._classes.get(name)

    @staticmethod
    def _candidateIds(scope: str | None, path: str) -> list[str]:
        if not scope:
            return [path]
        if scope.endswith(".prototype"):
            owner = scope[: -len(".prototype")]
            return [f"{scope}::{path}", f"{owner}::{path}"]
        return [f"{scope}::{path}", f"{scope}.prototype::{path}"]

    @property
    def regions(self) -> list[Region]:
        self._ensureFresh()
        return list(self._regions.values())

    # ----- Mutation tracking -----

    def shift(self, newText: str, pos: int, removedLen: int, insertedLen: int) -> None:
        """Record a splice of `removedLen` chars at `pos` replaced by `insertedLen` chars."""
        self.text = newText
        if self.dirty:
            return
        delta = insertedLen - removedLen
        cutEnd = pos + removedLen

        def move(x: int) -> int | None:
            if x < pos:
                return x
            if x >= cutEnd:
                return x + delta
            return None

        def moved(region: Region) -> Region | None:
            start, bodyOpen, close = move(region.start), move(region.bodyOpen), move(region.close)
            if start is None or bodyOpen is None or close is None:
                return None
            return Region(region.id, region.kind, start, bodyOpen, close)

        regions: dict[str, Region] = {}
        for key, region in self._regions.items():
            out = moved(region)
            if out is None:
                self.dirty = True
                return
            regions[key] = out
        classes: dict[str, Region] = {}
        for key, region in self._classes.items():
            out = moved(region)
            if out is None:
                self.dirty = True
                return
            classes[key] = out
        self._regions = regions
        self._classes = classes

    def rebuild(self) -> None:
        self._build()
