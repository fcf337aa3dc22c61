"""
Per-lot exclusive sections.

At most one mutation per lot is in flight inside a process. Waiters are
served in arrival order (ticket lock). Cross-process serialization is
provided by select_for_update() inside the section, on databases that
support it.

Usage:
    with lot_sections(lot.pk):
        with transaction.atomic():
            ...

    # Two lots: always acquired in ascending order
    with lot_sections(source_id, destination_id):
        ...
"""

import threading
from contextlib import contextmanager


class _TicketLock:
    """FIFO mutex: waiters acquire in the order they arrived."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._next_ticket = 0
        self._serving = 0

    def acquire(self):
        with self._cond:
            ticket = self._next_ticket
            self._next_ticket += 1
            while ticket != self._serving:
                self._cond.wait()

    def release(self):
        with self._cond:
            self._serving += 1
            self._cond.notify_all()


class SectionRegistry:
    """
    Keyed registry of ticket locks.

    Entries are reference counted and dropped once nobody holds or
    waits on them, so the registry does not grow with the lot table.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict = {}

    def _checkout(self, key) -> _TicketLock:
        with self._guard:
            lock, users = self._locks.get(key, (None, 0))
            if lock is None:
                lock = _TicketLock()
            self._locks[key] = (lock, users + 1)
            return lock

    def _checkin(self, key):
        with self._guard:
            lock, users = self._locks[key]
            if users <= 1:
                del self._locks[key]
            else:
                self._locks[key] = (lock, users - 1)

    @contextmanager
    def hold(self, *keys):
        """Acquire every key in sorted order, release in reverse."""
        ordered = sorted(set(keys))
        acquired = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                try:
                    lock.acquire()
                except BaseException:
                    self._checkin(key)
                    raise
                acquired.append((key, lock))
            yield
        finally:
            for key, lock in reversed(acquired):
                lock.release()
                self._checkin(key)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


_lot_registry = SectionRegistry()
_receipt_registry = SectionRegistry()
_sequence_registry = SectionRegistry()


def lot_key(lot_id):
    """Sortable key for a lot id, so 5 and '5' share one section."""
    try:
        return (0, int(lot_id))
    except (TypeError, ValueError):
        return (1, str(lot_id))


def lot_sections(*lot_ids):
    """Exclusive section over one or more lots (by primary key)."""
    return _lot_registry.hold(*(lot_key(lot_id) for lot_id in lot_ids))


def receipt_section(grn_line_id):
    """Exclusive section over one goods-receipt line (lot creation)."""
    return _receipt_registry.hold(str(grn_line_id))


def lot_number_section():
    """Exclusive section over lot numbering."""
    return _sequence_registry.hold('lot_number')
