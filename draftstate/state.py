"""
draftstate.state — Tracked state, forks and patch replay
========================================================

LIFECYCLE
═════════

    snapshot ──(.value read)──▶ draft + wrappers
       ▲                           │ writes mark dirty,
       │                           │ scheduler queues commit
       └──────(commit)─────────────┘
              finalize draft, diff against snapshot,
              swap snapshot, bump generation, notify listener

A TrackedState owns exactly one snapshot and at most one live draft.
The listener ``on_commit(patches, inverse_patches)`` is called once per
commit that changed something; empty commits are dropped silently.

Bookkeeping (snapshot, draft, dirty flag, generation) is settled before
the listener runs, so a listener that raises leaves a clean state
behind and the exception propagates out of commit().

Forks share nothing mutable: fork_state() commits the source and starts
a new state over the same immutable snapshot.  apply_patches() replays
patches from elsewhere (another fork, an undo stack, the network)
directly on the snapshot.  Replayed patches are not reported to the
listener.
"""

import logging
from collections.abc import Mapping
from typing import Any, Callable, Iterable, Optional, Union

from .core import ABSENT, AAtom, Snapshot, equal, is_container
from .draft import DraftNode
from .errors import ConfigurationError
from .formats import from_python, to_python
from .patches import Patch, PatchOp, apply, diff
from .scheduler import BatchScheduler
from .wrappers import Wrapper, is_wrapper, wrap

logger = logging.getLogger(__name__)

Listener = Callable[[list[Patch], list[Patch]], None]
Scheduler = Callable[[Callable[[], None]], None]


class TrackedState:
    """
    Root handle of a tracked value.

    Attributes:
        value      live view: a MapWrapper / SeqWrapper for containers,
                   the plain scalar (or ABSENT) otherwise.  Assigning
                   replaces the whole state.
        is_dirty   True while writes are waiting for a commit.
        snapshot   the current committed, immutable snapshot value.
    """

    def __init__(self, initial: Any, on_commit: Optional[Listener] = None,
                 scheduler: Optional[Scheduler] = None):
        if is_tracked_state(initial) or is_wrapper(initial):
            raise ConfigurationError("the value is already managed by a tracked state")
        if on_commit is not None and not callable(on_commit):
            raise ConfigurationError("on_commit must be callable")
        if scheduler is None:
            scheduler = BatchScheduler()
        elif not callable(scheduler):
            raise ConfigurationError("scheduler must be callable")

        self._snapshot: Snapshot = from_python(initial)
        self._listener = on_commit
        self._scheduler = scheduler
        self._draft: Optional[DraftNode] = None
        self._root: Optional[Wrapper] = None
        self._generation = 0
        self._epoch = 0
        self._dirty = False

    def __repr__(self) -> str:
        flag = " dirty" if self._dirty else ""
        return f"<TrackedState{flag} {self._snapshot!r}>"

    # ── public surface ─────────────────────────────────────────────

    @property
    def value(self) -> Any:
        snapshot = self._snapshot
        if not is_container(snapshot):
            return snapshot.val if isinstance(snapshot, AAtom) else snapshot
        if self._root is None:
            self._root = wrap(self, self._draft_root())
        return self._root

    @value.setter
    def value(self, new_value: Any) -> None:
        self.commit()
        if isinstance(new_value, Wrapper) and new_value._state is self:
            replacement = new_value._target().finalize()
        elif is_tracked_state(new_value):
            raise ConfigurationError("cannot assign a tracked state as a value")
        else:
            replacement = from_python(new_value)

        previous = self._snapshot
        self._install(replacement)
        if equal(previous, replacement):
            logger.debug("root assignment left the state unchanged")
            return
        self._emit([Patch(PatchOp.REPLACE, (), to_python(replacement))],
                   [Patch(PatchOp.REPLACE, (), to_python(previous))])

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    def commit(self) -> None:
        """Turn pending writes into a new snapshot now.  No-op when clean."""
        if not self._dirty:
            return
        self._dirty = False
        draft = self._draft
        if draft is None:
            return

        previous = self._snapshot
        self._snapshot = draft.finalize()
        self._draft = None
        self._generation += 1

        patches, inverse = diff(previous, self._snapshot)
        self._emit(patches, inverse)

    # ── engine internals used by wrappers and the module functions ─

    def _draft_root(self) -> DraftNode:
        if self._draft is None:
            self._draft = DraftNode(self._snapshot)
        return self._draft

    def _touch(self) -> None:
        self._dirty = True
        self._scheduler(self.commit)

    def _install(self, snapshot: Snapshot) -> None:
        """Swap in a snapshot from outside the draft and retire every wrapper."""
        self._snapshot = snapshot
        self._draft = None
        self._root = None
        self._dirty = False
        self._generation += 1
        self._epoch += 1

    def _emit(self, patches: list[Patch], inverse: list[Patch]) -> None:
        if not patches and not inverse:
            logger.debug("commit produced no patches; listener not called")
            return
        logger.debug("commit produced %d patches", len(patches))
        if self._listener is not None:
            self._listener(patches, inverse)


# ═══════════════════════════════════════════════════════════════════
#  MODULE API
# ═══════════════════════════════════════════════════════════════════

def create_tracked_state(initial: Any, on_commit: Optional[Listener] = None,
                         scheduler: Optional[Scheduler] = None) -> TrackedState:
    """
    Start tracking ``initial``.

    Arguments:
        initial:    plain data (dicts with str keys, lists, scalars) or ABSENT
        on_commit:  called as on_commit(patches, inverse_patches)
        scheduler:  called as scheduler(commit) after each write;
                    defaults to a BatchScheduler

    Raises ConfigurationError when ``initial`` is already tracked.
    """
    return TrackedState(initial, on_commit, scheduler)


def is_tracked_state(value: Any) -> bool:
    """True when ``value`` is a tracked-state root handle."""
    return isinstance(value, TrackedState)


def _require_state(state: Any) -> TrackedState:
    if not is_tracked_state(state):
        raise ConfigurationError(f"expected a TrackedState, got {type(state).__name__}")
    return state


def fork_state(state: TrackedState, on_commit: Optional[Listener] = None,
               scheduler: Optional[Scheduler] = None) -> TrackedState:
    """
    Commit ``state`` and return an independent state over its snapshot.

    The two states share the immutable snapshot only; drafts, wrappers,
    dirty flags and listeners are separate.  Bring them back together
    later with apply_patches().
    """
    _require_state(state)
    state.commit()
    logger.debug("forking state at generation %d", state._generation)
    return TrackedState(state._snapshot, on_commit, scheduler)


def apply_patches(state: TrackedState, patches: Iterable[Union[Patch, Mapping]]) -> None:
    """
    Commit ``state``, then replay ``patches`` onto its snapshot.

    Patches are applied to the snapshot value directly, not through
    wrappers, so the listener is not notified.  Every existing wrapper
    of ``state`` is retired.  On PatchError the state is left exactly
    as it was after the commit.
    """
    _require_state(state)
    state.commit()
    patches = list(patches)
    result = apply(state._snapshot, patches)
    state._install(result)
    logger.debug("applied %d patches", len(patches))


def current(value: Any) -> Any:
    """
    Plain Python copy of what ``value`` holds right now.

    Wrappers and tracked states are copied from their live draft, so
    uncommitted writes are included.  Anything else is returned as is.
    """
    if is_tracked_state(value):
        value = value.value
    if isinstance(value, Wrapper):
        return value.to_python()
    return value


def original(value: Wrapper) -> Any:
    """Plain Python copy of the value the wrapper's node was drafted from."""
    if not isinstance(value, Wrapper):
        raise ConfigurationError(f"expected a wrapper, got {type(value).__name__}")
    return to_python(value._target().base)
