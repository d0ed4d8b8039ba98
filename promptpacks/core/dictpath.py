# promptpacks/core/dictpath.py
from __future__ import annotations
from typing import Any
from collections.abc import Mapping, MutableMapping

__all__ = ["splitPath", "getByPath", "setByPath", "deleteByPath"]



# ----------------------------------------------
#                  path parsing
# ----------------------------------------------

def splitPath(path: str) -> list[str]:
    """
    Splits a dotted settings key into segments.

    Examples:
      - sync.timeoutMs -> ["sync", "timeoutMs"]
      - "" / "a..b" / ".a" -> ValueError
    """
    if not isinstance(path, str) or not path:
        raise ValueError("Path must be a non-empty string")
    parts = path.split(".")
    if any(not part for part in parts):
        raise ValueError(f"Path '{path}' contains empty segment(s)")
    return parts



# ----------------------------------------------
#                   Public API
# ----------------------------------------------

def getByPath(obj: Mapping[str, Any], path: str, default: Any | None = None) -> Any:
    """
    Returns the value at `path` from nested mappings, or `default` when any hop
    is missing or the path itself is invalid.
    """
    try:
        parts = splitPath(path)
    except ValueError:
        return default

    current: Any = obj
    for part in parts:
        if not isinstance(current, Mapping) or part not in current:
            return default
        current = current[part]
    return current



def setByPath(obj: MutableMapping[str, Any], path: str, value: Any, *, createIfMissing: bool = False) -> None:
    """
    Sets the value at `path`. Intermediate dicts are created only when
    createIfMissing=True; otherwise a missing hop raises KeyError. Hitting a
    non-mapping on the way raises TypeError.
    """
    parts = splitPath(path)

    current: Any = obj
    for part in parts[:-1]:
        if not isinstance(current, MutableMapping):
            raise TypeError(f"Cannot descend into '{part}': {type(current).__name__} is not a mutable mapping")
        if part not in current:
            if not createIfMissing:
                raise KeyError(f"path segment '{part}' not found in mapping")
            current[part] = {}
        current = current[part]

    if not isinstance(current, MutableMapping):
        raise TypeError(f"Cannot write to '{parts[-1]}' on {type(current).__name__}")
    current[parts[-1]] = value



def deleteByPath(obj: MutableMapping[str, Any], path: str, *, pruneEmptyParents: bool = True) -> bool:
    """
    Deletes the value at `path`. Returns True if something was removed.

    With pruneEmptyParents=True, intermediate dicts left empty by the removal are
    removed too (never the root mapping itself).
    """
    parts = splitPath(path)

    stack: list[tuple[MutableMapping[str, Any], str]] = []
    current: Any = obj
    for part in parts[:-1]:
        if not isinstance(current, MutableMapping) or part not in current:
            return False
        stack.append((current, part))
        current = current[part]

    last = parts[-1]
    if not isinstance(current, MutableMapping) or last not in current:
        return False
    del current[last]

    if pruneEmptyParents:
        for parent, key in reversed(stack):
            child = parent.get(key)
            if isinstance(child, MutableMapping) and len(child) == 0:
                del parent[key]
            else:
                break
    return True
