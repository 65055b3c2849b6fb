"""
draftstate — Mutable drafts over immutable state, with patches
==============================================================

Write to plain-looking dicts and lists; get JSON-Patch-style change-sets
and their exact inverses back.

    >>> log = []
    >>> state = create_tracked_state({"foo": {"bar": "baz"}},
    ...                              lambda p, inv: log.append((p, inv)),
    ...                              scheduler=sync_scheduler)
    >>> state.value["foo"]["bar"] = "qux"
    >>> log[0][0]
    [REPLACE at foo/bar: 'qux']
    >>> log[0][1]
    [REPLACE at foo/bar: 'baz']

Every write goes into a copy-on-write draft of the current snapshot.
By default all writes made in one asyncio event-loop turn are committed
together; each commit diffs the draft against the snapshot, swaps the
snapshot and hands (patches, inverse_patches) to the listener.

The patch round trip holds for every commit from S₀ to S₁:

    apply(S₀, patches) == S₁        apply(S₁, inverse_patches) == S₀

fork_state() starts an independent copy; apply_patches() replays
patches recorded elsewhere, e.g. to merge a fork back or to undo.
"""

from draftstate.core import (
    # Types
    AVal,
    AAtom,
    ASeq,
    AMap,
    ABSENT,
    equal,
)
from draftstate.errors import (
    DraftStateError, ConfigurationError, PatchError, StaleWrapperError,
)
from draftstate.formats import from_json, to_json, from_python, to_python
from draftstate.patches import (
    Patch, PatchOp, SEQ_APPEND,
    diff, apply,
    patches_to_json, patches_from_json,
)
from draftstate.scheduler import BatchScheduler, sync_scheduler
from draftstate.state import (
    TrackedState,
    create_tracked_state, is_tracked_state,
    fork_state, apply_patches,
    current, original,
)
from draftstate.wrappers import MapWrapper, SeqWrapper, is_wrapper

__version__ = "0.1.0"
__all__ = [
    "AVal", "AAtom", "ASeq", "AMap", "ABSENT", "equal",
    "DraftStateError", "ConfigurationError", "PatchError", "StaleWrapperError",
    "from_json", "to_json", "from_python", "to_python",
    "Patch", "PatchOp", "SEQ_APPEND", "diff", "apply",
    "patches_to_json", "patches_from_json",
    "BatchScheduler", "sync_scheduler",
    "TrackedState", "create_tracked_state", "is_tracked_state",
    "fork_state", "apply_patches", "current", "original",
    "MapWrapper", "SeqWrapper", "is_wrapper",
]
