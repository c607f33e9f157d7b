"""
Event bookkeeping for the Forge interpreter.

Events are processed strictly in FIFO order. Emitting from inside a
handler appends to the queue behind the entry being dispatched.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..ast import Block, Expression

logger = logging.getLogger(__name__)

WILDCARD = "*"
TICK_EVENT = "tick"
RELOAD_EVENT = "file:reloaded"

Listener = Callable[[Dict[str, Any]], Any]


@dataclass(eq=False)
class EventHandler:
    """A handler registered by an `on` statement."""
    event: str
    condition: Optional[Expression]
    body: Block
    environment: Any = field(repr=False)   # Environment the handler closes over
    filename: Optional[str] = None


@dataclass
class QueuedEvent:
    """One pending entry in the event queue."""
    name: str
    data: Dict[str, Any] = field(default_factory=dict)


class ListenerRegistry:
    """
    External (host) listeners by event name.

    Listeners registered under WILDCARD receive every event, with the event
    name added to a copy of the data under "__event".
    """

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = {}

    def add(self, event: str, listener: Listener) -> Callable[[], None]:
        """Register a listener and return a function that removes it."""
        self._listeners.setdefault(event, []).append(listener)
        logger.debug("registered external listener for %r", event)

        def unsubscribe() -> None:
            listeners = self._listeners.get(event)
            if not listeners:
                return
            for index, existing in enumerate(listeners):
                if existing is listener:
                    del listeners[index]
                    return

        return unsubscribe

    def listeners_for(self, event: str) -> List[Listener]:
        """Snapshot of the listeners registered for an exact name."""
        return list(self._listeners.get(event, ()))

    def notify(self, event: str, data: Dict[str, Any]) -> None:
        """Call exact-name listeners, then wildcard listeners."""
        for listener in self.listeners_for(event):
            listener(data)
        for listener in self.listeners_for(WILDCARD):
            listener({**data, "__event": event})

    def __len__(self) -> int:
        return sum(len(listeners) for listeners in self._listeners.values())
