# scormbridge/core/dictpath.py
from __future__ import annotations
from typing import Any
from collections.abc import Mapping, MutableMapping

__all__ = ["getByPath", "setByPath", "deleteByPath", "deepMerge"]



# ----------------------------------------------
#                  path parsing
# ----------------------------------------------

def _splitPath(path: str) -> list[str]:
    """
    Splits a dotted config path. Empty segments are rejected.

    Examples:
      - bridge.timeoutMs       -> ["bridge", "timeoutMs"]
      - host.functions.log     -> ["host", "functions", "log"]
    """
    if not isinstance(path, str) or not path:
        raise ValueError("Path must be a non-empty string")
    parts = path.split(".")
    if any(part == "" for part in parts):
        raise ValueError(f"Path '{path}' contains empty segment(s)")
    return parts



# ----------------------------------------------
#                   Public API
# ----------------------------------------------

def getByPath(obj: Any, path: str, default: Any | None = None) -> Any:
    """
    Returns the value at `path` inside nested mappings, or `default` when
    any hop is missing or the path is invalid.
    """
    try:
        parts = _splitPath(path)
    except ValueError:
        return default

    current: Any = obj
    for part in parts:
        if isinstance(current, Mapping) and part in current:
            current = current[part]
            continue
        return default
    return current



def setByPath(obj: MutableMapping[str, Any], path: str, value: Any, *, createIfMissing: bool = False) -> None:
    """
    Sets the value at `path`. Missing intermediate dicts are created only
    when `createIfMissing` is True, otherwise KeyError is raised.
    """
    parts = _splitPath(path)
    current: Any = obj
    for part in parts[:-1]:
        if not isinstance(current, MutableMapping):
            raise TypeError(f"Cannot descend into '{part}' of read-only {type(current).__name__}")
        if part not in current:
            if not createIfMissing:
                raise KeyError(f"path segment '{part}' not found in mapping")
            current[part] = {}
        current = current[part]

    if not isinstance(current, MutableMapping):
        raise TypeError(f"Cannot write '{parts[-1]}' into {type(current).__name__}")
    current[parts[-1]] = value



def deleteByPath(obj: MutableMapping[str, Any], path: str, *, pruneEmptyParents: bool = True) -> bool:
    """
    Deletes the value at `path`. Returns True if something was removed.
    Empty parent dicts (below the root) are pruned when `pruneEmptyParents`.
    """
    parts = _splitPath(path)
    stack: list[tuple[MutableMapping[str, Any], str]] = []
    current: Any = obj
    for part in parts[:-1]:
        if not isinstance(current, MutableMapping) or part not in current:
            return False
        stack.append((current, part))
        current = current[part]

    if not isinstance(current, MutableMapping) or parts[-1] not in current:
        return False
    del current[parts[-1]]

    if pruneEmptyParents:
        for parent, key in reversed(stack):
            child = parent.get(key)
            if isinstance(child, MutableMapping) and not child:
                del parent[key]
            else:
                break
    return True



def deepMerge(left: Mapping[str, Any], right: Mapping[str, Any]) -> dict[str, Any]:
    """
    Recursively merges `right` over `left` into a new dict.
    Mappings merge key by key; every other type in `right` replaces `left`.
    """
    out: dict[str, Any] = dict(left)
    for key, rightValue in right.items():
        leftValue = out.get(key)
        if isinstance(leftValue, Mapping) and isinstance(rightValue, Mapping):
            out[key] = deepMerge(leftValue, rightValue)
        else:
            out[key] = rightValue
    return out
