# modules/meeting/locks.py
from __future__ import annotations

import threading
import weakref
from contextlib import contextmanager
from typing import Hashable, Iterator, Optional

from sqlalchemy.orm import Session

_registry_guard = threading.Lock()
# a lock lives only while some caller holds a reference to it
_locks = weakref.WeakValueDictionary()


def _lock_for(key: Hashable) -> threading.Lock:
    with _registry_guard:
        lock = _locks.get(key)
        if lock is None:
            lock = _locks[key] = threading.Lock()
        return lock


@contextmanager
def keyed_lock(key: Hashable) -> Iterator[None]:
    """Serialize in-process work on one key, e.g. ("room", 3) or ("action-item", 12)."""
    lock = _lock_for(key)
    with lock:
        yield


@contextmanager
def booking_lock(db: Session, room_id: Optional[int]) -> Iterator[None]:
    """
    Hold while checking a room for conflicts and writing the meeting.
    Outside SQLite the room row is also locked (SELECT ... FOR UPDATE) so several
    worker processes serialize on the same room until the transaction ends.
    """
    if room_id is None:
        yield
        return

    with keyed_lock(("room", room_id)):
        if db.get_bind().dialect.name != "sqlite":
            from modules.rooms.models import Room

            db.query(Room.id).filter(Room.id == room_id).with_for_update().first()
        yield
