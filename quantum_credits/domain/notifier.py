"""In-process change notification for ledger observers"""

import itertools
import logging
from typing import Callable, Dict

logger = logging.getLogger(__name__)

CREDITS_UPDATED = "creditsUpdated"

Observer = Callable[[], None]


class ChangeNotifier:
    """
    Synchronous fan-out of a zero-payload event.

    Observers are called in subscription order. A failing observer is logged
    and does not stop delivery to the rest, since the mutation that triggered
    the event has already been committed.
    """

    def __init__(self, event_name: str = CREDITS_UPDATED):
        self.event_name = event_name
        self._observers: Dict[int, Observer] = {}
        self._tokens = itertools.count()

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an observer; returns a handle that removes it again"""
        token = next(self._tokens)
        self._observers[token] = observer

        def unsubscribe() -> None:
            self._observers.pop(token, None)

        return unsubscribe

    def publish(self) -> None:
        for observer in list(self._observers.values()):
            try:
                observer()
            except Exception:
                logger.exception("Observer failed handling %s", self.event_name)

    def __len__(self) -> int:
        return len(self._observers)
