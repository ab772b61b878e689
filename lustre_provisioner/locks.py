"""Per-volume operation locks."""

import contextlib
import threading
from typing import Iterator, Set

from oslo_log import log as logging

from .exceptions import OperationAlreadyExists

LOG = logging.getLogger(__name__)


class VolumeLocks:
    """Set of volume keys with an operation in flight.

    Acquisition never blocks: a second operation on a held key is rejected
    so the caller can retry later.
    """

    def __init__(self):
        self._held: Set[str] = set()
        self._lock = threading.Lock()

    def try_acquire(self, key: str) -> bool:
        """Mark ``key`` as held. Returns False if it already was."""
        with self._lock:
            if key in self._held:
                return False
            self._held.add(key)
            return True

    def release(self, key: str) -> None:
        with self._lock:
            self._held.discard(key)

    def is_held(self, key: str) -> bool:
        with self._lock:
            return key in self._held

    @contextlib.contextmanager
    def hold(self, key: str) -> Iterator[str]:
        """Hold ``key`` for the duration of the block.

        Raises:
            OperationAlreadyExists: Another operation holds the key
        """
        if not self.try_acquire(key):
            LOG.warning("Operation already in progress for volume %s", key)
            raise OperationAlreadyExists(volume_id=key)
        try:
            yield key
        finally:
            self.release(key)
