# pml/mixins/store.py
from __future__ import annotations

import logging
from collections.abc import Sequence

from .types import CLASS_WIDE_TYPES, MixinDescriptor, MixinType, Surface

logger = logging.getLogger(__name__)

__all__ = ["MixinStore", "Accessors"]

Accessors = Sequence[str] | str

# Function-level types turned class wide by registerClassWideMixin
_CLASS_WIDE_EQUIVALENT = {
    MixinType.INSERT: MixinType.CLASSINSERT,
    MixinType.REPLACEBETWEEN: MixinType.CLASSREPLACE,
    MixinType.REMOVEBETWEEN: MixinType.CLASSREMOVE,
}



def _normalizeAccessors(accessors: Accessors | None) -> tuple[str, ...] | str:
    if accessors is None:
        return ()
    if isinstance(accessors, str):
        return accessors
    out = tuple(accessors)
    for item in out:
        if not isinstance(item, str):
            raise TypeError(f"Accessor entries must be strings, got {type(item).__name__}")
    return out



def _requireText(name: str, value: object, *, optional: bool = False) -> str | None:
    if value is None and optional:
        return None
    if not isinstance(value, str):
        raise TypeError(f"Mixin {name} must be a string, got {type(value).__name__}")
    return value



class MixinStore:
    """
    Append-only store of patch requests, one ordered list per surface.

    Registration order is application order. Nothing is deduplicated: the
    same request registered twice is applied twice.
    """

    def __init__(self) -> None:
        self._mixins: dict[Surface, list[MixinDescriptor]] = {
            Surface.MAIN: [],
            Surface.SIMULATION: [],
        }
        self._seq = 0
        self.owner: str | None = None

    # ----- Registration -----

    def register(
        self,
        surface: Surface,
        scope: str | None,
        path: str,
        mixinType: MixinType | int,
        accessors: Accessors | None,
        code: str,
        code2: str | None = None,
        *,
        classWide: bool = False,
    ) -> MixinDescriptor:
        if not path or not isinstance(path, str):
            raise ValueError("Mixin path must be a non-empty string")
        mixinType = MixinType(mixinType)
        if classWide:
            if mixinType not in CLASS_WIDE_TYPES:
                if mixinType not in _CLASS_WIDE_EQUIVALENT:
                    raise ValueError(f"{mixinType.name} cannot be applied class wide")
                mixinType = _CLASS_WIDE_EQUIVALENT[mixinType]
        elif mixinType in CLASS_WIDE_TYPES:
            classWide = True

        self._seq += 1
        descriptor = MixinDescriptor(
            scope=scope or None,
            path=path,
            mixinType=mixinType,
            accessors=_normalizeAccessors(accessors),
            code=_requireText("code", code) or "",
            code2=_requireText("code2", code2, optional=True),
            classWide=classWide,
            seq=self._seq,
            owner=self.owner,
        )
        self._mixins[Surface(surface)].append(descriptor)
        logger.debug(
            "Registered %s mixin #%d on %s -> %s%s",
            mixinType.name, descriptor.seq, Surface(surface).value, descriptor.target,
            f" (by {self.owner})" if self.owner else "",
        )
        return descriptor

    def registerClassMixin(self, scope: str, path: str, mixinType: MixinType | int, accessors: Accessors | None, code: str, code2: str | None = None) -> MixinDescriptor:
        """Inject into method `path` of `scope` (e.g. "GN.prototype") in the main bundle."""
        return self.register(Surface.MAIN, scope, path, mixinType, accessors, code, code2)

    def registerFuncMixin(self, path: str, mixinType: MixinType | int, accessors: Accessors | None, code: str, code2: str | None = None) -> MixinDescriptor:
        """Inject into free function `path` in the main bundle."""
        return self.register(Surface.MAIN, None, path, mixinType, accessors, code, code2)

    def registerClassWideMixin(self, path: str, mixinType: MixinType | int, firstToken: str, code: str, code2: str | None = None) -> MixinDescriptor:
        """Apply at every occurrence of `firstToken` inside class `path` in the main bundle."""
        return self.register(Surface.MAIN, None, path, mixinType, firstToken, code, code2, classWide=True)

    def registerSimWorkerClassMixin(self, scope: str, path: str, mixinType: MixinType | int, accessors: Accessors | None, code: str, code2: str | None = None) -> MixinDescriptor:
        return self.register(Surface.SIMULATION, scope, path, mixinType, accessors, code, code2)

    def registerSimWorkerFuncMixin(self, path: str, mixinType: MixinType | int, accessors: Accessors | None, code: str, code2: str | None = None) -> MixinDescriptor:
        return self.register(Surface.SIMULATION, None, path, mixinType, accessors, code, code2)

    def registerSimWorkerClassWideMixin(self, path: str, mixinType: MixinType | int, firstToken: str, code: str, code2: str | None = None) -> MixinDescriptor:
        return self.register(Surface.SIMULATION, None, path, mixinType, firstToken, code, code2, classWide=True)

    # ----- Access -----

    def mixinsFor(self, surface: Surface) -> list[MixinDescriptor]:
        """Copy of the registered mixins of a surface, in registration order."""
        return list(self._mixins[Surface(surface)])

    @property
    def mainMixins(self) -> list[MixinDescriptor]:
        return self.mixinsFor(Surface.MAIN)

    @property
    def simWorkerMixins(self) -> list[MixinDescriptor]:
        return self.mixinsFor(Surface.SIMULATION)

    def __len__(self) -> int:
        return sum(len(items) for items in self._mixins.values())
