"""
draftstate.draft — Copy-on-write staging nodes.

A draft is opened one container at a time.  A DraftNode holds the
snapshot container it was opened on (``base``) and a shallow mutable
copy of its children (``slots``: a dict for maps, a list for
sequences).  Each slot holds either an untouched snapshot value or a
child DraftNode that was opened because something read through it.

finalize() turns the tree back into snapshot values.  A node whose
slots still hold exactly its base children returns the base itself,
so untouched subtrees keep their identity across commits.
"""

from typing import Any, Union

from .core import AAtom, AMap, ASeq, AVal, is_container
from .formats import to_python


class DraftNode:
    """Mutable staging copy of one map or sequence."""
    __slots__ = ("base", "slots")

    def __init__(self, base: Union[AMap, ASeq]):
        self.base = base
        if isinstance(base, AMap):
            self.slots: Union[dict, list] = dict(base.entries)
        else:
            self.slots = list(base.items)

    @property
    def is_map(self) -> bool:
        return isinstance(self.slots, dict)

    def __len__(self) -> int:
        return len(self.slots)

    def __repr__(self) -> str:
        kind = "map" if self.is_map else "seq"
        return f"DraftNode({kind}, len={len(self.slots)})"

    def child(self, key: Any) -> Any:
        """
        The live value at ``key``.

        Containers are opened into DraftNodes on first access (and stay
        opened); atoms come back as their plain scalar.  Missing keys
        raise KeyError / IndexError like the underlying dict / list.
        """
        value = self.slots[key]
        if is_container(value):
            value = self.slots[key] = DraftNode(value)
        elif isinstance(value, AAtom):
            return value.val
        return value

    def finalize(self) -> AVal:
        """Freeze this node (and every opened descendant) into a snapshot value."""
        if isinstance(self.slots, dict):
            entries = {k: finalize_value(v) for k, v in self.slots.items()}
            base = self.base.entries
            if len(entries) == len(base) and all(
                    k in base and base[k] is v for k, v in entries.items()):
                return self.base
            return AMap(entries)

        items = tuple(finalize_value(v) for v in self.slots)
        base_items = self.base.items
        if len(items) == len(base_items) and all(
                x is y for x, y in zip(items, base_items)):
            return self.base
        return ASeq(items)

    def to_python(self) -> Any:
        """Fresh plain Python copy of the node's current contents."""
        if isinstance(self.slots, dict):
            return {k: value_to_python(v) for k, v in self.slots.items()}
        return [value_to_python(v) for v in self.slots]


def finalize_value(value: Any) -> AVal:
    if isinstance(value, DraftNode):
        return value.finalize()
    return value


def value_to_python(value: Any) -> Any:
    if isinstance(value, DraftNode):
        return value.to_python()
    return to_python(value)
