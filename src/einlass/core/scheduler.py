"""
Bounded-concurrency upload scheduler

Two disjoint identity sets make up the state:

- ``pending``: submitted, waiting for a free slot (strict FIFO)
- ``heading``: dispatched, session in flight

``dispatch`` is the only place files move from ``pending`` to ``heading``.
It runs on exactly two triggers: a submission, and the settlement of a
submitted file's session. ``threads`` is a soft ceiling checked at dispatch
time only; lowering it never preempts sessions already in flight.
"""

import logging
from typing import Any, List

from .identity_set import IdentitySet

logger = logging.getLogger(__name__)

DEFAULT_THREADS = 2


class Scheduler:
    """FIFO dispatcher onto a fixed number of concurrent upload sessions"""

    def __init__(self, threads: int = DEFAULT_THREADS):
        self.threads = DEFAULT_THREADS
        self.pending = IdentitySet()
        self.heading = IdentitySet()
        self._watched = IdentitySet()  # sessions carrying our settlement hook

        # Statistics
        self.stats = {
            'submitted': 0,
            'dispatched': 0,
            'dropped': 0,
            'settled': 0
        }

        self.configure(threads)

    def configure(self, threads: int):
        """Set the concurrency ceiling used by future dispatch passes"""
        if threads is None:
            threads = DEFAULT_THREADS
        if threads < 1:
            raise ValueError("threads must be positive")
        self.threads = threads
        logger.debug(f"Scheduler configured with {threads} threads")

    def size(self) -> int:
        return len(self.pending) + len(self.heading)

    def is_idle(self) -> bool:
        return self.size() == 0

    def files(self) -> List[Any]:
        """Files the scheduler still tracks, in-flight first"""
        return self.heading.to_list() + self.pending.to_list()

    def submit(self, file) -> bool:
        """
        Queue a file for dispatch

        Returns False without side effects if the file is already pending.
        Otherwise hooks the settlement of the file's session and runs a
        dispatch pass.
        """
        if not self.pending.add(file):
            return False

        session = file.session()
        if self._watched.add(session):
            session.add_settle_callback(lambda settled: self._on_settled(file, settled))

        self.stats['submitted'] += 1
        logger.debug(f"Submitted {file.name} ({len(self.pending)} pending)")

        self.dispatch()
        return True

    def dispatch(self):
        """Fill free slots from the head of ``pending``"""
        while len(self.heading) < self.threads and self.pending:
            file = self.pending.shift()
            if not file.prepare():
                # Needs a new status transition to be considered again
                self.stats['dropped'] += 1
                logger.debug(f"Dropped {file.name}: not ready (status {file.status.name})")
                continue

            if not self.heading.add(file):
                # Previous attempt still holds its slot; the head waits for it
                self.pending.unshift(file)
                logger.debug(f"{file.name} waits for its previous attempt to settle")
                break

            self.stats['dispatched'] += 1
            logger.debug(f"Dispatching {file.name} ({len(self.heading)}/{self.threads} slots busy)")
            file.session().start()

    def _on_settled(self, file, session):
        self._watched.remove(session)
        if file.current_session is session:
            self.pending.remove(file)
        if self.heading.remove(file):
            self.stats['settled'] += 1
            logger.debug(f"Slot released by {file.name}")
        self.dispatch()

    def get_statistics(self):
        return {
            **self.stats,
            'threads': self.threads,
            'pending': len(self.pending),
            'heading': len(self.heading)
        }
