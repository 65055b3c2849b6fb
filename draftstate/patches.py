"""
draftstate.patches — Forward / inverse patches between snapshots
================================================================

PATCH ALGEBRA
═════════════

§1  PATCHES
───────────

A patch is one step of a JSON-Patch-compatible edit script:

    { op: "add" | "replace" | "remove",  path: [k₁, ..., kₙ],  value? }

where each kᵢ is a map key (str) or a sequence index (int), and the
empty path denotes the root value itself.  There are no move, copy or
test operations: a moved subtree is a remove at one path plus an add
(or replace) at another.

A patch list is applied IN ORDER, each patch against the result of the
previous one.


§2  DIFF
────────

diff(S₀, S₁) returns two lists (P, P⁻¹) such that

    apply(S₀, P)   == S₁
    apply(S₁, P⁻¹) == S₀

The walk is positional and deterministic:

    • Identical or strictly equal subtrees          → nothing
    • Map vs map        → keys in sorted order:
          key only in S₀   remove        / add old
          key only in S₁   add new       / remove
          key in both      recurse
    • Seq vs seq        → common indices ascending (recurse), then
          growing:     add i ascending     / remove i descending
          shrinking:   remove i descending / add i ascending
    • Anything else     → replace new / replace old

Removals run from the highest index down so that each patch in the
list still addresses the element it names when it is applied.


§3  APPLY
─────────

apply() rebuilds only the spine of each patched path and shares every
other subtree with its input.  Snapshots are immutable, so a failing
patch raises PatchError and the caller's snapshot is exactly what it
was before the call.
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Union

from .core import ABSENT, AMap, ASeq, AVal, Snapshot, equal
from .errors import PatchError
from .formats import from_python, to_python

# Sequence "index" meaning one-past-the-end, accepted by add.
SEQ_APPEND = "-"

PathKey = Union[str, int]


# ═══════════════════════════════════════════════════════════════════
#  PATCH TYPES
# ═══════════════════════════════════════════════════════════════════

class PatchOp(Enum):
    """Patch operations.  Values are the wire names."""
    ADD = "add"
    REPLACE = "replace"
    REMOVE = "remove"


@dataclass(frozen=True)
class Patch:
    """A single edit at a path.  ``value`` is plain Python data, or ABSENT."""
    op: PatchOp
    path: tuple[PathKey, ...]
    value: Any = ABSENT

    def __post_init__(self):
        if not isinstance(self.op, PatchOp):
            object.__setattr__(self, 'op', _parse_op(self.op, self))
        object.__setattr__(self, 'path', tuple(self.path))

    def __repr__(self) -> str:
        path_str = "/".join(str(p) for p in self.path) or "(root)"
        if self.op == PatchOp.REMOVE:
            return f"REMOVE at {path_str}"
        return f"{self.op.name} at {path_str}: {self.value!r}"

    def to_json(self) -> dict[str, Any]:
        data: dict[str, Any] = {"op": self.op.value, "path": list(self.path)}
        if self.value is not ABSENT:
            data["value"] = self.value
        return data

    @classmethod
    def from_json(cls, data: Mapping) -> "Patch":
        if not isinstance(data, Mapping):
            raise PatchError(f"patch must be a mapping, got {type(data).__name__}", data)
        if "op" not in data or "path" not in data:
            raise PatchError("patch needs 'op' and 'path'", data)
        path = data["path"]
        if isinstance(path, (str, bytes)) or not isinstance(path, (list, tuple)):
            raise PatchError(f"patch path must be a list, got {path!r}", data)
        return cls(op=_parse_op(data["op"], data), path=tuple(path),
                   value=data.get("value", ABSENT))


def _parse_op(op: Any, patch: Any) -> PatchOp:
    try:
        return PatchOp(op)
    except ValueError:
        raise PatchError(f"unsupported patch op {op!r}", patch) from None


def _coerce(patch: Union[Patch, Mapping]) -> Patch:
    if isinstance(patch, Patch):
        return patch
    return Patch.from_json(patch)


def patches_to_json(patches: Iterable[Patch], **kwargs) -> str:
    """Serialize a patch list to a JSON array."""
    return json.dumps([p.to_json() for p in patches], **kwargs)


def patches_from_json(text: str) -> list[Patch]:
    """Parse a JSON array of patches."""
    data = json.loads(text)
    if not isinstance(data, list):
        raise PatchError("patch list must be a JSON array")
    return [Patch.from_json(item) for item in data]


# ═══════════════════════════════════════════════════════════════════
#  DIFF
# ═══════════════════════════════════════════════════════════════════

def diff(before: Snapshot, after: Snapshot,
         path: tuple = ()) -> tuple[list[Patch], list[Patch]]:
    """
    Compute the forward and inverse patch lists between two snapshots.

    Returns (patches, inverse_patches).  Both are empty when the
    snapshots are equal.
    """
    patches: list[Patch] = []
    inverse: list[Patch] = []
    _diff_into(before, after, tuple(path), patches, inverse)
    return patches, inverse


def _diff_into(a: Snapshot, b: Snapshot, path: tuple,
               patches: list[Patch], inverse: list[Patch]) -> None:
    if a is b:
        return

    if isinstance(a, AMap) and isinstance(b, AMap):
        _map_diff(a, b, path, patches, inverse)
        return

    if isinstance(a, ASeq) and isinstance(b, ASeq):
        _seq_diff(a, b, path, patches, inverse)
        return

    if equal(a, b):
        return

    patches.append(Patch(PatchOp.REPLACE, path, to_python(b)))
    inverse.append(Patch(PatchOp.REPLACE, path, to_python(a)))


def _map_diff(a: AMap, b: AMap, path: tuple,
              patches: list[Patch], inverse: list[Patch]) -> None:
    """Per-key diff in sorted key order."""
    old, new = a.entries, b.entries

    for key in sorted(old.keys() | new.keys()):
        child_path = path + (key,)
        if key not in new:
            patches.append(Patch(PatchOp.REMOVE, child_path))
            inverse.append(Patch(PatchOp.ADD, child_path, to_python(old[key])))
        elif key not in old:
            patches.append(Patch(PatchOp.ADD, child_path, to_python(new[key])))
            inverse.append(Patch(PatchOp.REMOVE, child_path))
        else:
            _diff_into(old[key], new[key], child_path, patches, inverse)


def _seq_diff(a: ASeq, b: ASeq, path: tuple,
              patches: list[Patch], inverse: list[Patch]) -> None:
    """Positional diff: shared indices first, then the grown or shrunk tail."""
    m = len(a.items)
    n = len(b.items)

    for i in range(min(m, n)):
        _diff_into(a.items[i], b.items[i], path + (i,), patches, inverse)

    if n > m:
        for i in range(m, n):
            patches.append(Patch(PatchOp.ADD, path + (i,), to_python(b.items[i])))
        for i in reversed(range(m, n)):
            inverse.append(Patch(PatchOp.REMOVE, path + (i,)))
    elif m > n:
        for i in reversed(range(n, m)):
            patches.append(Patch(PatchOp.REMOVE, path + (i,)))
        for i in range(n, m):
            inverse.append(Patch(PatchOp.ADD, path + (i,), to_python(a.items[i])))


# ═══════════════════════════════════════════════════════════════════
#  APPLY
# ═══════════════════════════════════════════════════════════════════

def apply(snapshot: Snapshot, patches: Iterable[Union[Patch, Mapping]]) -> Snapshot:
    """
    Apply a patch list to a snapshot and return the new snapshot.

    Patches may be Patch objects or their JSON dict form.  The input
    snapshot is never modified; on PatchError it remains the caller's
    current value.

        apply(a, diff(a, b)[0]) == b
    """
    result = snapshot
    for raw in patches:
        patch = _coerce(raw)
        result = _apply_one(result, patch)
    return result


def _apply_one(root: Snapshot, patch: Patch) -> Snapshot:
    if not patch.path:
        if patch.op == PatchOp.REMOVE:
            return ABSENT
        return _value_of(patch, allow_absent=True)
    if root is ABSENT:
        raise PatchError("cannot patch inside an absent value", patch)
    return _apply_at(root, patch.path, patch)


def _value_of(patch: Patch, allow_absent: bool = False) -> Snapshot:
    if patch.value is ABSENT and not allow_absent:
        raise PatchError(f"{patch.op.value} patch needs a value", patch)
    try:
        return from_python(patch.value)
    except TypeError as exc:
        raise PatchError(f"patch value is not plain data: {exc}", patch) from exc


def _apply_at(node: AVal, path: tuple, patch: Patch) -> AVal:
    key = path[0]
    if len(path) == 1:
        return _apply_leaf(node, key, patch)
    child = _child(node, key, patch)
    return _with_child(node, key, _apply_at(child, path[1:], patch))


def _index(node: ASeq, key: Any, patch: Patch, upper: int) -> int:
    if type(key) is not int or not 0 <= key < upper:
        raise PatchError(f"index {key!r} out of range for sequence of length "
                         f"{len(node.items)}", patch)
    return key


def _child(node: AVal, key: PathKey, patch: Patch) -> AVal:
    if isinstance(node, AMap):
        if key not in node.entries:
            raise PatchError(f"path not found: no key {key!r}", patch)
        return node.entries[key]
    if isinstance(node, ASeq):
        return node.items[_index(node, key, patch, len(node.items))]
    raise PatchError(f"cannot descend into a scalar at key {key!r}", patch)


def _with_child(node: AVal, key: PathKey, child: AVal) -> AVal:
    if isinstance(node, AMap):
        entries = dict(node.entries)
        entries[key] = child
        return AMap(entries)
    items = list(node.items)
    items[key] = child
    return ASeq(tuple(items))


def _apply_leaf(node: AVal, key: PathKey, patch: Patch) -> AVal:
    op = patch.op

    if isinstance(node, AMap):
        if not isinstance(key, str):
            raise PatchError(f"map keys must be str, got {key!r}", patch)
        entries = dict(node.entries)
        if op == PatchOp.ADD:
            entries[key] = _value_of(patch)
        elif key not in entries:
            raise PatchError(f"path not found: no key {key!r}", patch)
        elif op == PatchOp.REPLACE:
            entries[key] = _value_of(patch)
        else:
            del entries[key]
        return AMap(entries)

    if isinstance(node, ASeq):
        items = list(node.items)
        if op == PatchOp.ADD:
            index = len(items) if key == SEQ_APPEND else _index(node, key, patch, len(items) + 1)
            items.insert(index, _value_of(patch))
        elif op == PatchOp.REPLACE:
            items[_index(node, key, patch, len(items))] = _value_of(patch)
        else:
            del items[_index(node, key, patch, len(items))]
        return ASeq(tuple(items))

    raise PatchError(f"cannot {op.value} a key of a scalar", patch)
