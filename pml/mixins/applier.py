# pml/mixins/applier.py
from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from pml.config.settings import MODULE_REGION
from pml.core.errors import AnchorNotFoundError
from .scanner import Region, SourceIndex
from .types import CLASS_WIDE_TYPES, MixinDescriptor, MixinType, Surface

logger = logging.getLogger(__name__)

__all__ = ["PatchApplier", "PatchResult", "PatchMiss", "applyMixins"]



@dataclass(frozen=True)
class PatchMiss:
    descriptor: MixinDescriptor
    reason: str



@dataclass
class PatchResult:
    text: str
    applied: list[MixinDescriptor] = field(default_factory=list)
    missed: list[PatchMiss] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missed



class _Miss(Exception):
    pass



def _accessorPrologue(descriptor: MixinDescriptor) -> str:
    accessors = descriptor.accessorList
    if not accessors:
        return ""
    return f"const accessors = [{', '.join(accessors)}];"


def _injection(descriptor: MixinDescriptor) -> str:
    """Code spliced by HEAD and TAIL. An accessor prologue gets its own block."""
    prologue = _accessorPrologue(descriptor)
    if not prologue:
        return descriptor.code
    return "{" + prologue + descriptor.code + "}"



class PatchApplier:
    """
    Splices registered mixins into a host text.

    Mixins apply in the order given, each against the text produced by the
    previous one. An anchor that cannot be found is recorded as a miss and
    logged; in strict mode it raises AnchorNotFoundError instead.
    """

    def __init__(self, *, strict: bool = False) -> None:
        self.strict = strict

    def apply(self, text: str, descriptors: Iterable[MixinDescriptor], *, surface: Surface | None = None) -> PatchResult:
        index = SourceIndex.build(text)
        result = PatchResult(text=text)
        self._splicesSinceBuild = 0
        where = Surface(surface).value if surface else "host"

        for descriptor in descriptors:
            try:
                self._applyOne(index, descriptor)
            except _Miss as miss:
                reason = str(miss)
                if self.strict:
                    raise AnchorNotFoundError(
                        f"Mixin #{descriptor.seq} ({descriptor.mixinType.name}) on {where} {descriptor.target}: {reason}",
                        target=descriptor.target,
                        token=descriptor.startToken or None,
                    ) from None
                result.missed.append(PatchMiss(descriptor, reason))
                logger.warning(
                    "Mixin #%d (%s) on %s %s%s did not apply: %s",
                    descriptor.seq, descriptor.mixinType.name, where, descriptor.target,
                    f" from {descriptor.owner}" if descriptor.owner else "", reason,
                )
                continue
            result.applied.append(descriptor)

        result.text = index.text
        logger.info("Patched %s: %d applied, %d missed", where, len(result.applied), len(result.missed))
        return result

    # ----- Resolution -----

    def _resolve(self, index: SourceIndex, descriptor: MixinDescriptor) -> Region:
        region = self._lookup(index, descriptor)
        if region is None and self._splicesSinceBuild:
            # Earlier mixins may have added the target
            index.rebuild()
            self._splicesSinceBuild = 0
            region = self._lookup(index, descriptor)
        if region is None:
            raise _Miss(f"region '{descriptor.target}' not found")
        return region

    @staticmethod
    def _lookup(index: SourceIndex, descriptor: MixinDescriptor) -> Region | None:
        if descriptor.path == MODULE_REGION:
            return Region(MODULE_REGION, "module", 0, -1, len(index.text))
        if descriptor.classWide:
            name = descriptor.scope or descriptor.path
            if name.endswith(".prototype"):
                name = name[: -len(".prototype")]
            return index.classRegion(name) or index.lookup(None, name)
        return index.lookup(descriptor.scope, descriptor.path)

    # ----- Splicing -----

    def _splice(self, index: SourceIndex, start: int, end: int, insert: str) -> None:
        text = index.text
        index.shift(text[:start] + insert + text[end:], start, end - start, len(insert))
        self._splicesSinceBuild += 1

    def _applyOne(self, index: SourceIndex, descriptor: MixinDescriptor) -> None:
        region = self._resolve(index, descriptor)
        mixinType = descriptor.mixinType
        isModule = region.kind == "module"

        if mixinType == MixinType.HEAD:
            pos = 0 if isModule else region.bodyStart
            self._splice(index, pos, pos, _injection(descriptor))
        elif mixinType == MixinType.TAIL:
            self._splice(index, region.close, region.close, _injection(descriptor))
        elif mixinType == MixinType.OVERRIDE:
            if isModule:
                raise _Miss("OVERRIDE cannot target the whole module")
            self._splice(index, region.bodyStart, region.close, _accessorPrologue(descriptor) + descriptor.code)
        elif mixinType in CLASS_WIDE_TYPES:
            self._applyEvery(index, region, descriptor)
        else:
            self._applyFirst(index, region, descriptor)

    def _span(self, text: str, descriptor: MixinDescriptor, fromPos: int, limit: int) -> tuple[int, int] | None:
        token = descriptor.startToken
        if not token:
            raise _Miss("empty anchor token")
        start = text.find(token, fromPos, limit)
        if start == -1:
            return None
        if descriptor.mixinType in (MixinType.INSERT, MixinType.CLASSINSERT):
            return start, start + len(token)
        endToken = descriptor.endToken
        if not endToken:
            return start, start + len(token)
        # The end token may be the start token itself
        end = text.find(endToken, start, limit)
        if end == -1:
            raise _Miss(f"end token {endToken[:60]!r} not found after {token[:60]!r}")
        return start, end + len(endToken)

    def _edit(self, index: SourceIndex, descriptor: MixinDescriptor, span: tuple[int, int]) -> None:
        start, end = span
        mixinType = descriptor.mixinType
        if mixinType in (MixinType.INSERT, MixinType.CLASSINSERT):
            self._splice(index, end, end, descriptor.code)
        elif mixinType in (MixinType.REPLACEBETWEEN, MixinType.CLASSREPLACE):
            self._splice(index, start, end, descriptor.code)
        else:
            self._splice(index, start, end, "")

    def _applyFirst(self, index: SourceIndex, region: Region, descriptor: MixinDescriptor) -> None:
        span = self._span(index.text, descriptor, region.start, region.close + 1)
        if span is None:
            raise _Miss(f"token {descriptor.startToken[:60]!r} not found")
        self._edit(index, descriptor, span)

    def _applyEvery(self, index: SourceIndex, region: Region, descriptor: MixinDescriptor) -> None:
        # Every occurrence must resolve before the text is touched
        spans: list[tuple[int, int]] = []
        pos = region.start
        limit = region.close + 1
        while True:
            span = self._span(index.text, descriptor, pos, limit)
            if span is None:
                break
            spans.append(span)
            pos = span[1]
        if not spans:
            raise _Miss(f"token {descriptor.startToken[:60]!r} not found in class body")
        # Last occurrence first so earlier spans keep their offsets
        for span in reversed(spans):
            self._edit(index, descriptor, span)
        logger.debug("Class-wide %s on %s applied %d time(s)", descriptor.mixinType.name, descriptor.target, len(spans))



def applyMixins(text: str, descriptors: Iterable[MixinDescriptor], *, strict: bool = False, surface: Surface | None = None) -> PatchResult:
    return PatchApplier(strict=strict).apply(text, descriptors, surface=surface)
