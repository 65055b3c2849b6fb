"""
draftstate.scheduler — When does a dirty state commit?

A scheduler is any callable taking the state's ``commit`` function.  The
state calls it after every intercepted write; the scheduler decides when
``commit`` actually runs.

    BatchScheduler   one commit per event-loop turn (the default)
    sync_scheduler   commit after every single write

commit() is idempotent, so a scheduler may run it late or even twice.
"""

import asyncio
import logging
from typing import Callable

logger = logging.getLogger(__name__)

Commit = Callable[[], None]


class BatchScheduler:
    """
    Coalesce all writes made during one synchronous burst into one commit.

    The first write queues a single callback with the running asyncio
    loop's ``call_soon``; writes made before that callback runs land in
    the same draft and therefore in the same commit.  Pending commits
    are tracked per commit function, so one scheduler can serve several
    states.  A commit's pending mark is cleared before it runs, so a
    listener that raises does not block the next batch.

    Outside a running event loop nothing is queued and the write stays
    in the draft until the state is committed explicitly (``commit()``,
    ``fork_state``, ``apply_patches`` or a root assignment).
    """

    def __init__(self):
        self._pending: set[Commit] = set()

    @property
    def pending(self) -> bool:
        """True while any commit is queued on the event loop."""
        return bool(self._pending)

    def __call__(self, commit: Commit) -> None:
        if commit in self._pending:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("no running event loop; commit waits for an explicit flush")
            return
        self._pending.add(commit)
        loop.call_soon(self._run, commit)

    def _run(self, commit: Commit) -> None:
        self._pending.discard(commit)
        commit()


def sync_scheduler(commit: Commit) -> None:
    """Commit immediately: every write becomes its own change-set."""
    commit()
