"""Subscription support for engine state changes."""
from typing import Callable, List

from boutique.logging import get_logger

logger = get_logger(__name__)


class Observable:
    """Mixin that lets UI code subscribe to state transitions.

    Listeners receive the engine itself after each transition. A failing
    listener is logged and does not affect the others.
    """

    def __init__(self):
        self._listeners: List[Callable] = []

    def subscribe(self, listener: Callable) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.error("State listener failed: %s", type(e).__name__, exc_info=True)
