# promptpacks/core/jsonutils.py
from __future__ import annotations

import json
from collections.abc import Mapping, Iterable
from dataclasses import is_dataclass, fields
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any

__all__ = ["safeJsonDumps", "serializeError", "tryJSONify"]



# ------------------------------------------------
#                JSON serialization
# ------------------------------------------------

def safeJsonDumps(obj: object) -> str:
    """
    Serializes an object to a compact JSON string with deterministic separators.
    UTF-8 characters are kept as-is. If direct encoding fails, falls back to
    tryJSONify (cycle/depth-safe) and retries.
    """
    try:
        return json.dumps(obj, ensure_ascii=False, allow_nan=False, separators=(",", ":"))
    except (TypeError, ValueError):
        return json.dumps(tryJSONify(obj), ensure_ascii=False, allow_nan=False, separators=(",", ":"))



# ------------------------------------------------
#              Error / Exception helpers
# ------------------------------------------------

def serializeError(err: Any) -> dict[str, Any]:
    """
    Converts an exception (or arbitrary object) into a JSON-serializable dict.

    Examples:
        IntegrityError("bad sig") -> {"type": "IntegrityError", "message": "bad sig"}
        "error text"              -> {"message": "error text"}
        None                      -> {}
    """
    if err is None:
        return {}
    if isinstance(err, str):
        return {"message": err}
    if isinstance(err, BaseException):
        data: dict[str, Any] = {
            "type": err.__class__.__name__,
            "message": str(err),
        }
        for attr in ("url", "status", "source", "limit"):
            value = getattr(err, attr, None)
            if value is not None:
                data[attr] = value
        return data
    return {"type": type(err).__name__, "repr": repr(err)}



# ------------------------------------------------
#              Generic JSON safety
# ------------------------------------------------

def tryJSONify(obj: Any, *, _seen: set[int] | None = None, _depth: int = 0, _maxDepth: int = 10) -> Any:
    """
    Attempts to make any object JSON-serializable.

    Rules:
      • Basic scalars are preserved; NaN/inf become strings.
      • Exceptions → serializeError().
      • bytes → "<N bytes>" (log records never carry artifact bodies).
      • date/datetime → ISO8601, Path → str, Enum → value.
      • Dataclasses and pydantic models → dict.
      • sets/tuples/iterables → list, Mappings → dict with str keys.
      • fallback → repr(obj)
    """
    if _seen is None:
        _seen = set()

    if obj is None or isinstance(obj, (bool, int, str)):
        return obj
    if isinstance(obj, float):
        return obj if obj == obj and obj not in (float("inf"), float("-inf")) else str(obj)

    oid = id(obj)
    if oid in _seen:
        return f"<circular_ref {type(obj).__name__}>"
    if _depth > _maxDepth:
        return f"<max_depth_exceeded {type(obj).__name__}>"
    _seen.add(oid)

    if isinstance(obj, BaseException):
        return serializeError(obj)
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return f"<{len(bytes(obj))} bytes>"
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return tryJSONify(obj.value, _seen=_seen, _depth=_depth + 1, _maxDepth=_maxDepth)
    if isinstance(obj, Path):
        return str(obj)
    if is_dataclass(obj) and not isinstance(obj, type):
        return {
            field.name: tryJSONify(getattr(obj, field.name), _seen=_seen, _depth=_depth + 1, _maxDepth=_maxDepth)
            for field in fields(obj)
        }
    if hasattr(obj, "model_dump"):
        try:
            return tryJSONify(obj.model_dump(), _seen=_seen, _depth=_depth + 1, _maxDepth=_maxDepth)
        except Exception:
            return repr(obj)
    if isinstance(obj, Mapping):
        return {
            str(key): tryJSONify(value, _seen=_seen, _depth=_depth + 1, _maxDepth=_maxDepth)
            for key, value in obj.items()
        }
    if isinstance(obj, Iterable):
        return [tryJSONify(value, _seen=_seen, _depth=_depth + 1, _maxDepth=_maxDepth) for value in obj]

    # Last-ditch representation (avoid raising during logging)
    return repr(obj)
