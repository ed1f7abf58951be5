# pml/core/config_stack.py
from __future__ import annotations
from typing import Any, Literal, cast
from collections.abc import Mapping
import copy

__all__ = ["MergeStrategy", "mergeWithStrategy"]



MergeStrategy = Literal["deep", "replace", "append", "prepend", "uniqueAppend"]
_LIST_STRATEGIES: tuple[str, ...] = ("replace", "append", "prepend", "uniqueAppend")



def _validateMergeStrategy(strategy: str, *, context: str, listContext: bool) -> None:
    allowed = _LIST_STRATEGIES if listContext else ("deep", "replace")
    if strategy not in allowed:
        raise ValueError(f'Invalid merge strategy "{strategy}" for {context}; expected one of {allowed}')



def mergeWithStrategy(left: Any, right: Any) -> Any:
    """
    Deep merge with an optional per-object directive:
      - dicts: if right has __merge, apply behavior:
        "deep" (default): recurse on dicts, replace other types
        "replace": replace left entirely with right (minus __merge)
      - lists: use a sibling key e.g. {"coreMods": [...], "coreMods__merge": "append"}
      - scalars: right replaces left

    Used to layer the loader configuration: defaults <- user file <- overrides.
    Neither input is mutated.
    """
    if isinstance(left, Mapping) and isinstance(right, Mapping):
        strategy = cast(MergeStrategy, right.get("__merge", "deep"))
        _validateMergeStrategy(strategy, context="object", listContext=False)
        if strategy == "replace":
            return {key: copy.deepcopy(value) for key, value in right.items() if key != "__merge"}

        for key in right:
            if key.endswith("__merge") and key != "__merge":
                base = key[:-len("__merge")]
                if base not in right:
                    raise ValueError(
                        f'Unexpected reserved key "{key}" without matching base key "{base}".'
                    )

        out: dict[str, Any] = {key: copy.deepcopy(value) for key, value in left.items()}
        for key, rightValue in right.items():
            if key == "__merge" or key.endswith("__merge"):
                continue
            leftValue = out.get(key)
            listStrategyKey = f"{key}__merge"
            if listStrategyKey in right and isinstance(rightValue, list):
                listStrategy = cast(MergeStrategy, right[listStrategyKey])
                _validateMergeStrategy(listStrategy, context=f'key "{key}"', listContext=True)
                out[key] = _mergeLists(leftValue, rightValue, listStrategy)
                continue
            if isinstance(leftValue, Mapping) and isinstance(rightValue, Mapping):
                out[key] = mergeWithStrategy(leftValue, rightValue)
            else:
                out[key] = copy.deepcopy(rightValue)
        return out

    if isinstance(left, list) and isinstance(right, list):
        return copy.deepcopy(right)

    return copy.deepcopy(right)



def _mergeLists(left: Any, right: Any, strategy: MergeStrategy) -> list[Any]:
    left = copy.deepcopy(list(left or []))
    right = copy.deepcopy(list(right or []))
    if strategy == "append":
        return left + right
    if strategy == "prepend":
        return right + left
    if strategy == "uniqueAppend":
        # Items are often dicts (mod references), so compare by equality
        out = left[:]
        for item in right:
            if not any(item == existing for existing in out):
                out.append(item)
        return out
    return right
