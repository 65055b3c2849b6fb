"""
draftstate.core — Immutable snapshot values
===========================================

DATA MODEL
══════════

§1  SNAPSHOTS
─────────────

A snapshot is the committed state of a tracked value.  It is never
mutated in place: every commit produces a new snapshot reference, and
whatever the commit did not touch is shared by identity with the
previous one.  Two subtrees that are the same object are known to be
equal without looking inside, so diffing skips them.

DEFINITION (Snapshot value):
The set V of snapshot values is the smallest set satisfying:

    (1)  Atom(v)                    ∈ V   for v a scalar
    (2)  Seq(a₁, ..., aₙ)          ∈ V   for a₁,...,aₙ ∈ V, n ≥ 0
    (3)  Map({k₁:v₁, ..., kₙ:vₙ}) ∈ V   for kᵢ strings, vᵢ ∈ V

Scalars are None, bool, int, float, str and bytes.  This is exactly
the shape of JSON (plus bytes), which is also the shape of the patch
wire format.

The absence of a whole state is not a value of V.  It is the ABSENT
sentinel, which only ever appears at the root.


§2  EQUALITY
────────────

Python's own == is too loose for change detection:

    True == 1        →  True
    AAtom(True) == AAtom(1)   →  True   (dataclass equality)

A commit that flips 1 to True changed the state, so equal() treats
bool and non-bool atoms as different.  Containers compare element-wise
with the same rule.  Map key order is irrelevant.

Author: draftstate contributors
License: MIT
"""

from dataclasses import dataclass
from typing import Any, Union


# ═══════════════════════════════════════════════════════════════════
#  ABSENT SENTINEL
# ═══════════════════════════════════════════════════════════════════

class _Absent:
    """The "no value at all" marker.  Falsy, singleton, survives copying."""
    __slots__ = ()
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"

    def __reduce__(self):
        return "ABSENT"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


ABSENT = _Absent()


# ═══════════════════════════════════════════════════════════════════
#  SNAPSHOT VALUE TYPES
# ═══════════════════════════════════════════════════════════════════

class AVal:
    """Base class for snapshot values.  Not instantiated directly."""
    __slots__ = ()


@dataclass(frozen=True, slots=True)
class AAtom(AVal):
    """
    A scalar leaf: str, int, float, bool, None or bytes.

    Examples:
        AAtom("hello")
        AAtom(42)
        AAtom(None)
    """
    val: Any

    def __repr__(self) -> str:
        return f"AAtom({self.val!r})"


@dataclass(frozen=True, slots=True)
class ASeq(AVal):
    """
    An ordered, integer-indexed sequence of snapshot values.

    Examples:
        ASeq((AAtom(1), AAtom(2), AAtom(3)))           # [1, 2, 3]
    """
    items: tuple[AVal, ...]

    def __len__(self) -> int:
        return len(self.items)

    def __repr__(self) -> str:
        if len(self.items) <= 5:
            return f"ASeq({list(self.items)})"
        return f"ASeq([{self.items[0]!r}, ..., {self.items[-1]!r}] len={len(self.items)})"


@dataclass(frozen=True, slots=True)
class AMap(AVal):
    """
    A mapping of string keys to snapshot values.

    Examples:
        AMap({"name": AAtom("Alice"), "age": AAtom(30)})
    """
    entries: dict[str, AVal]

    def __init__(self, entries: dict[str, AVal]):
        # copied so the caller's dict can't mutate the snapshot
        object.__setattr__(self, 'entries', dict(entries))

    def __hash__(self):
        return hash(frozenset((k, id(v)) for k, v in self.entries.items()))

    def __len__(self) -> int:
        return len(self.entries)

    def __repr__(self) -> str:
        if len(self.entries) <= 3:
            return f"AMap({self.entries})"
        return f"AMap({{...}} len={len(self.entries)})"


Snapshot = Union[AVal, _Absent]


def is_container(value: Any) -> bool:
    """True for the snapshot values a draft can be opened on (maps and sequences)."""
    return isinstance(value, (AMap, ASeq))


# ═══════════════════════════════════════════════════════════════════
#  STRUCTURAL EQUALITY
# ═══════════════════════════════════════════════════════════════════

def _atoms_equal(av: Any, bv: Any) -> bool:
    # bool is a subclass of int; keep True and 1 apart
    if (type(av) is bool) != (type(bv) is bool):
        return False
    if type(av) is bool:
        return av is bv
    if isinstance(av, (str, bytes)) or isinstance(bv, (str, bytes)):
        return type(av) is type(bv) and av == bv
    return av == bv


def equal(a: Snapshot, b: Snapshot) -> bool:
    """
    Strict structural equality of two snapshot values.

    Identical objects are equal without inspection, so comparing two
    snapshots that share most of their structure only walks the parts
    that were rebuilt.
    """
    if a is b:
        return True

    if type(a) is not type(b):
        return False

    if isinstance(a, AAtom):
        return _atoms_equal(a.val, b.val)

    if isinstance(a, ASeq):
        if len(a.items) != len(b.items):
            return False
        return all(equal(x, y) for x, y in zip(a.items, b.items))

    if isinstance(a, AMap):
        if a.entries.keys() != b.entries.keys():
            return False
        return all(equal(v, b.entries[k]) for k, v in a.entries.items())

    return False
