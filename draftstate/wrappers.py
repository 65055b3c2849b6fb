"""
draftstate.wrappers — The interception layer
============================================

A wrapper looks like an ordinary dict (MapWrapper) or list (SeqWrapper)
but owns no data.  Every operation first resolves the live DraftNode at
the wrapper's location, then reads or writes there.  Writes mark the
owning state dirty and hand its commit to the scheduler.

§1  RESOLVING THE LIVE NODE
───────────────────────────

A wrapper remembers the node it last resolved together with the
generation tag of the state at that time.  The state bumps its
generation whenever it throws its draft away (after a commit), so a
wrapper holding an older tag re-derives its node by asking its parent
for the child at its key; the root asks the state for a fresh draft.
Nothing is invalidated eagerly.

Within one generation a non-root wrapper still checks that its parent's
slot holds the node it is bound to.  Aliased subtrees put one node
under several parents, and a write through one alias can replace a
child the other alias has cached; the stale wrapper then raises
instead of writing into a node the draft no longer reaches.

Retiring the whole tree (root reassignment, patch application) bumps
the state's epoch instead.  A wrapper from an older epoch raises
StaleWrapperError; so does a wrapper whose key was overwritten or
deleted through its parent ("detached").

§2  IDENTITY CACHE
──────────────────

Each wrapper caches the wrappers of its container children, one entry
per key: (generation, wrapper).  Reading an unchanged child twice
returns the same wrapper object, so callers can use ``is`` as a cheap
"did this subtree change" test.  Writes drop the entry for the written
key; sequence inserts, deletes and slice writes shift the entries after
the change point so a held wrapper keeps following its element.
"""

from collections.abc import MutableMapping, MutableSequence, Sequence
from typing import Any, Optional

from .draft import DraftNode, value_to_python
from .errors import ConfigurationError, StaleWrapperError
from .formats import from_python


class _CacheEntry:
    __slots__ = ("generation", "wrapper")

    def __init__(self, generation: int, wrapper: "Wrapper"):
        self.generation = generation
        self.wrapper = wrapper


class Wrapper:
    """Base of the live container views.  Not instantiated directly."""
    __slots__ = ("_state", "_parent", "_key", "_node", "_generation",
                 "_epoch", "_detached", "_children")

    __hash__ = None

    def __init__(self, state, node: DraftNode,
                 parent: Optional["Wrapper"] = None, key: Any = None):
        self._state = state
        self._parent = parent
        self._key = key
        self._node = node
        self._generation = state._generation
        self._epoch = state._epoch
        self._detached = False
        self._children: dict[Any, _CacheEntry] = {}

    # ── live node ──────────────────────────────────────────────────

    def _target(self) -> DraftNode:
        state = self._state
        if self._detached:
            raise StaleWrapperError(
                f"wrapper for key {self._key!r} was detached by a write to its parent")
        if self._epoch != state._epoch:
            raise StaleWrapperError("wrapper belongs to a replaced state tree")
        if self._parent is None:
            if self._generation != state._generation:
                self._bind(state._draft_root(), state._generation)
            return self._node

        try:
            node = self._parent._target().child(self._key)
        except (KeyError, IndexError):
            node = None
        if not isinstance(node, DraftNode):
            self._detached = True
            raise StaleWrapperError(f"key {self._key!r} no longer holds a container")
        if self._generation == state._generation and node is not self._node:
            # replaced through another path to the same parent node
            self._detached = True
            raise StaleWrapperError(f"key {self._key!r} was overwritten")
        self._bind(node, state._generation)
        return self._node

    def _bind(self, node: DraftNode, generation: int) -> None:
        self._node = node
        self._generation = generation

    def _wrap_child(self, key: Any, value: Any) -> Any:
        """Return the cached wrapper for a container child, or the scalar itself."""
        entry = self._children.get(key)
        if not isinstance(value, DraftNode):
            if entry is not None:
                self._drop(key)
            return value

        generation = self._state._generation
        if entry is not None and not entry.wrapper._detached:
            if entry.generation != generation:
                entry.wrapper._bind(value, generation)
                entry.generation = generation
                return entry.wrapper
            if entry.wrapper._node is value:
                return entry.wrapper
            entry.wrapper._detached = True

        wrapper = wrap(self._state, value, self, key)
        self._children[key] = _CacheEntry(generation, wrapper)
        return wrapper

    def _drop(self, key: Any) -> None:
        entry = self._children.pop(key, None)
        if entry is not None:
            entry.wrapper._detached = True

    def _freeze(self, value: Any) -> Any:
        """Turn an assigned value into something a draft slot can hold."""
        if isinstance(value, Wrapper):
            if value._state is self._state:
                state = self._state
                if (value._detached and value._epoch == state._epoch
                        and value._generation == state._generation):
                    # overwritten in this draft, e.g. the left half of a swap
                    return value._node.finalize()
                node = value._target()
                ancestor: Optional[Wrapper] = self
                while ancestor is not None:
                    if ancestor._target() is node:
                        raise ConfigurationError("assignment would make the state cyclic")
                    ancestor = ancestor._parent
                return node
            return from_python(value._target().to_python())
        return from_python(value)

    def _touch(self) -> None:
        self._state._touch()

    # ── plain-data helpers ────────────────────────────────────────

    def to_python(self) -> Any:
        """Fresh plain Python copy of the live contents."""
        return self._target().to_python()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.to_python()!r})"


# ═══════════════════════════════════════════════════════════════════
#  MAPS
# ═══════════════════════════════════════════════════════════════════

class MapWrapper(Wrapper, MutableMapping):
    """Live dict-like view of a mapping inside the draft."""
    __slots__ = ()

    def __getitem__(self, key):
        return self._wrap_child(key, self._target().child(key))

    def __setitem__(self, key, value):
        if not isinstance(key, str):
            raise ConfigurationError(f"mapping keys must be str, got {type(key).__name__}")
        node = self._target()
        frozen = self._freeze(value)
        self._drop(key)
        node.slots[key] = frozen
        self._touch()

    def __delitem__(self, key):
        node = self._target()
        del node.slots[key]
        self._drop(key)
        self._touch()

    def __contains__(self, key):
        return key in self._target().slots

    def __iter__(self):
        return iter(list(self._target().slots))

    def __len__(self):
        return len(self._target().slots)

    def pop(self, key, *default):
        """Remove ``key`` and return a plain copy of its value."""
        node = self._target()
        if key not in node.slots:
            if default:
                return default[0]
            raise KeyError(key)
        value = value_to_python(node.slots[key])
        del self[key]
        return value

    def popitem(self):
        node = self._target()
        if not node.slots:
            raise KeyError("popitem(): mapping is empty")
        key = next(reversed(node.slots))
        return key, self.pop(key)

    def setdefault(self, key, default=None):
        if key not in self:
            self[key] = default
        return self[key]

    def __eq__(self, other):
        if other is self:
            return True
        return MutableMapping.__eq__(self, other)


# ═══════════════════════════════════════════════════════════════════
#  SEQUENCES
# ═══════════════════════════════════════════════════════════════════

class SeqWrapper(Wrapper, MutableSequence):
    """Live list-like view of a sequence inside the draft."""
    __slots__ = ()

    def _index(self, node: DraftNode, index: Any) -> int:
        if not isinstance(index, int) or isinstance(index, bool):
            raise TypeError(f"sequence indices must be integers, not {type(index).__name__}")
        size = len(node.slots)
        if index < 0:
            index += size
        if not 0 <= index < size:
            raise IndexError("sequence index out of range")
        return index

    def _shift(self, start: int, delta: int) -> None:
        """Re-key cached children at or after ``start`` by ``delta``."""
        moved = {}
        for key in sorted(self._children):
            if key < start:
                continue
            entry = self._children.pop(key)
            entry.wrapper._key = key + delta
            moved[key + delta] = entry
        self._children.update(moved)

    def _drop_from(self, start: int) -> None:
        for key in [k for k in self._children if k >= start]:
            self._drop(key)

    def _splice(self, start: int, stop: int, size: int) -> None:
        """Cache bookkeeping for replacing slots[start:stop] with ``size`` items."""
        end = max(start, stop)
        for key in [k for k in self._children if start <= k < end]:
            self._drop(key)
        self._shift(end, size - (end - start))

    def __getitem__(self, index):
        node = self._target()
        if isinstance(index, slice):
            return [self[i] for i in range(*index.indices(len(node.slots)))]
        index = self._index(node, index)
        return self._wrap_child(index, node.child(index))

    def __setitem__(self, index, value):
        node = self._target()
        if isinstance(index, slice):
            start, stop, step = index.indices(len(node.slots))
            frozen = [self._freeze(v) for v in value]
            node.slots[index] = frozen
            if step == 1:
                self._splice(start, stop, len(frozen))
            else:
                self._drop_from(0)
        else:
            index = self._index(node, index)
            frozen = self._freeze(value)
            self._drop(index)
            node.slots[index] = frozen
        self._touch()

    def __delitem__(self, index):
        node = self._target()
        if isinstance(index, slice):
            start, stop, step = index.indices(len(node.slots))
            del node.slots[index]
            if step == 1:
                self._splice(start, stop, 0)
            else:
                self._drop_from(0)
        else:
            index = self._index(node, index)
            del node.slots[index]
            self._drop(index)
            self._shift(index + 1, -1)
        self._touch()

    def __len__(self):
        return len(self._target().slots)

    def insert(self, index, value):
        node = self._target()
        size = len(node.slots)
        if index < 0:
            index = max(0, index + size)
        index = min(index, size)
        frozen = self._freeze(value)
        node.slots.insert(index, frozen)
        self._shift(index, 1)
        self._touch()

    def pop(self, index=-1):
        """Remove the item at ``index`` and return a plain copy of it."""
        node = self._target()
        if not node.slots:
            raise IndexError("pop from empty sequence")
        index = self._index(node, index)
        value = value_to_python(node.slots[index])
        del self[index]
        return value

    def __eq__(self, other):
        if other is self:
            return True
        if isinstance(other, (str, bytes)) or not isinstance(other, Sequence):
            return NotImplemented
        return len(self) == len(other) and all(a == b for a, b in zip(self, other))


def wrap(state, node: DraftNode, parent: Optional[Wrapper] = None, key: Any = None) -> Wrapper:
    """Build the wrapper type matching ``node``'s container kind."""
    cls = MapWrapper if node.is_map else SeqWrapper
    return cls(state, node, parent, key)


def is_wrapper(value: Any) -> bool:
    """True for live container views handed out by a tracked state."""
    return isinstance(value, Wrapper)
