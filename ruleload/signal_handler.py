"""Thread-safe handling of a signal that must be acted on exactly once."""

from __future__ import annotations

import threading
from typing import Callable


class AtomicSignalHandler:
    """Records that a signal fired and lets exactly one caller handle it."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._triggered = False
        self._handled = False

    def reset(self) -> None:
        """Return to the initial state: not triggered and not handled."""
        self._handled = False
        self._triggered = False

    def triggered(self) -> bool:
        """True if the signal has been triggered."""
        return self._triggered

    def handled(self) -> bool:
        """True if the signal has been handled."""
        return self._handled

    def trigger(self) -> None:
        """Mark the signal as triggered and not yet handled."""
        self._triggered = True
        self._handled = False

    def handle(self, action: Callable[[], None]) -> bool:
        """Run ``action`` if the signal is triggered and not yet handled.

        Only one of many concurrent callers runs the action; the others
        wait until it finishes. An action that raises still counts as
        performed. Returns True if this call ran the action.
        """
        if not (self.triggered() and not self.handled()):
            return False
        with self._lock:
            if self.handled():
                return False
            try:
                action()
            finally:
                # The action may have reset the handler itself.
                if self.triggered():
                    self._handled = True
            return True