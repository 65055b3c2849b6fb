"""
draftstate.formats — Convert between plain data and snapshot values.

Supported conversions:
    • Python objects (dict, list, tuple, str, int, float, bool, None, bytes) ↔ AVal
    • JSON strings ↔ AVal

The ABSENT sentinel passes through both directions unchanged.
"""

import json
from collections.abc import Mapping, Sequence
from typing import Any, Optional

from .core import ABSENT, AAtom, AMap, ASeq, AVal, Snapshot
from .errors import ConfigurationError


# ═══════════════════════════════════════════════════════════════════
#  PYTHON OBJECTS ↔ SNAPSHOT VALUES
# ═══════════════════════════════════════════════════════════════════

_SCALARS = (str, int, float, bytes)


def from_python(obj: Any, _active: Optional[set] = None) -> Snapshot:
    """
    Convert a Python object to an immutable snapshot value.

    Mapping:
        str/bytes      → AAtom
        int/float      → AAtom(number)
        bool           → AAtom(bool)
        None           → AAtom(None)
        list/tuple     → ASeq(...)
        dict/Mapping   → AMap(...)
        AVal           → unchanged
        ABSENT         → ABSENT

    Nested structures are converted recursively.  Mapping keys must be
    strings.  Anything else, including self-referencing containers,
    raises ConfigurationError.
    """
    if obj is ABSENT or isinstance(obj, AVal):
        return obj
    if obj is None or isinstance(obj, (bool,) + _SCALARS):
        return AAtom(obj)

    if isinstance(obj, (Mapping, Sequence)):
        if _active is None:
            _active = set()
        marker = id(obj)
        if marker in _active:
            raise ConfigurationError("cannot track a self-referencing value")
        _active.add(marker)
        try:
            if isinstance(obj, Mapping):
                entries = {}
                for key, value in obj.items():
                    if not isinstance(key, str):
                        raise ConfigurationError(
                            f"mapping keys must be str, got {type(key).__name__}: {key!r}"
                        )
                    entries[key] = from_python(value, _active)
                return AMap(entries)
            return ASeq(tuple(from_python(item, _active) for item in obj))
        finally:
            _active.discard(marker)

    raise ConfigurationError(f"cannot track a value of type {type(obj).__name__}")


def to_python(val: Snapshot) -> Any:
    """
    Convert a snapshot value back to fresh plain Python objects.

    Inverse of from_python:
        to_python(from_python(obj)) == obj
    for JSON-compatible objects (tuples come back as lists).
    """
    if val is ABSENT:
        return ABSENT
    if isinstance(val, AAtom):
        return val.val
    if isinstance(val, ASeq):
        return [to_python(item) for item in val.items]
    if isinstance(val, AMap):
        return {k: to_python(v) for k, v in val.entries.items()}
    raise TypeError(f"Unknown AVal type: {type(val)}")


# ═══════════════════════════════════════════════════════════════════
#  JSON STRINGS ↔ SNAPSHOT VALUES
# ═══════════════════════════════════════════════════════════════════

def from_json(text: str) -> AVal:
    """Parse a JSON string into a snapshot value."""
    return from_python(json.loads(text))


def to_json(val: AVal, **kwargs) -> str:
    """Convert a snapshot value to a JSON string."""
    return json.dumps(to_python(val), **kwargs)
