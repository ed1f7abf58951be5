# pml/mixins/__init__.py
from .types import CLASS_WIDE_TYPES, TWO_TOKEN_TYPES, MixinDescriptor, MixinType, Surface
from .store import MixinStore
from .scanner import Region, SourceIndex
from .applier import PatchApplier, PatchMiss, PatchResult, applyMixins

__all__ = [
    "CLASS_WIDE_TYPES",
    "TWO_TOKEN_TYPES",
    "MixinDescriptor",
    "MixinType",
    "Surface",
    "MixinStore",
    "Region",
    "SourceIndex",
    "PatchApplier",
    "PatchMiss",
    "PatchResult",
    "applyMixins",
]
