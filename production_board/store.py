"""Holder for the single board value shared by the service and the web surface."""

from __future__ import annotations

import logging
from typing import Callable, List

from .domain import Factory

logger = logging.getLogger(__name__)

BoardListener = Callable[[Factory], None]


class BoardStore:
    """Owns the current :class:`Factory` and swaps it atomically.

    Readers only ever observe a complete value: mutations build a new
    factory first and hand it over through :meth:`replace`. Listeners are the
    render signal for the presentation side.
    """

    def __init__(self, factory: Factory) -> None:
        self._factory = factory
        self._listeners: List[BoardListener] = []
        self.render_count = 0

    @property
    def current(self) -> Factory:
        return self._factory

    def replace(self, factory: Factory, *, notify: bool = True) -> None:
        self._factory = factory
        if notify:
            self.notify()

    def notify(self) -> None:
        self.render_count += 1
        logger.debug("Board render signal #%d", self.render_count)
        for listener in list(self._listeners):
            listener(self._factory)

    def subscribe(self, listener: BoardListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe


__all__ = ["BoardStore", "BoardListener"]
