# pml/mixins/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum

__all__ = ["MixinType", "Surface", "MixinDescriptor", "CLASS_WIDE_TYPES", "TWO_TOKEN_TYPES"]



class MixinType(IntEnum):
    """Where a mixin injects code. Values are part of the plugin-facing API."""
    # Inject at the start of the target function.
    HEAD = 0
    # Inject at the end of the target function.
    TAIL = 1
    # Replace the body of the target function.
    OVERRIDE = 2
    # Insert code after a given token.
    INSERT = 3
    # Remove code between 2 given tokens, class wide. Inclusive.
    CLASSREMOVE = 4
    # Replace code between 2 given tokens. Inclusive.
    REPLACEBETWEEN = 5
    # Remove code between 2 given tokens. Inclusive.
    REMOVEBETWEEN = 6
    # Replace code between 2 given tokens, class wide. Inclusive.
    CLASSREPLACE = 7
    # Insert code after a given token, class wide.
    CLASSINSERT = 8



CLASS_WIDE_TYPES = frozenset({MixinType.CLASSINSERT, MixinType.CLASSREPLACE, MixinType.CLASSREMOVE})
TWO_TOKEN_TYPES = frozenset({
    MixinType.REPLACEBETWEEN,
    MixinType.REMOVEBETWEEN,
    MixinType.CLASSREPLACE,
    MixinType.CLASSREMOVE,
})



class Surface(str, Enum):
    """The two execution contexts of the host."""
    MAIN = "main"
    SIMULATION = "simulation"



@dataclass(frozen=True)
class MixinDescriptor:
    """
    One registered patch request.

    For the two-token types `accessors` holds the start token, `code2` the end
    token and `code` the replacement. For REMOVE types without `code2`, `code`
    is the end token.
    """
    scope: str | None
    path: str
    mixinType: MixinType
    accessors: tuple[str, ...] | str
    code: str
    code2: str | None = None
    classWide: bool = False
    seq: int = 0
    owner: str | None = field(default=None, compare=False)

    @property
    def target(self) -> str:
        """Synthetic id of the addressed region, e.g. 'GN.prototype::init'."""
        return f"{self.scope}::{self.path}" if self.scope else self.path

    @property
    def startToken(self) -> str:
        if isinstance(self.accessors, str):
            return self.accessors
        return self.accessors[0] if self.accessors else ""

    @property
    def endToken(self) -> str | None:
        if self.code2 is not None:
            return self.code2
        if self.mixinType in (MixinType.REMOVEBETWEEN, MixinType.CLASSREMOVE) and self.code:
            return self.code
        return None

    @property
    def accessorList(self) -> tuple[str, ...]:
        if isinstance(self.accessors, str):
            return (self.accessors,) if self.accessors else ()
        return self.accessors
