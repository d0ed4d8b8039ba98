# promptpacks/sync/notify.py
from __future__ import annotations
import threading

__all__ = ["ChangeNotifier"]



class ChangeNotifier:
    """
    Single-slot change flag between SyncEngine and the consumer.

    signal() sets the slot (repeated signals before a consume coalesce into one),
    consume() reads and clears it. The consumer decides when to poll; nothing
    runs on the signalling thread except setting the flag.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._pending = False
        self._generation = 0

    def signal(self) -> None:
        with self._cond:
            self._pending = True
            self._generation += 1
            self._cond.notify_all()

    def consume(self) -> bool:
        """Returns True (and clears the slot) if a change was signalled since the last consume."""
        with self._cond:
            pending = self._pending
            self._pending = False
            return pending

    def wait(self, timeout: float | None = None) -> bool:
        """Blocks until a change is pending (or timeout); consumes it."""
        with self._cond:
            if not self._cond.wait_for(lambda: self._pending, timeout=timeout):
                return False
            self._pending = False
            return True

    @property
    def pending(self) -> bool:
        with self._cond:
            return self._pending

    @property
    def generation(self) -> int:
        """Total number of signals ever sent."""
        with self._cond:
            return self._generation
