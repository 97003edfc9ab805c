"""State-change notifications shared by the authoring session and playback."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger("Wishcraft.core.events")


@dataclass(frozen=True)
class EngineEvent:
    """Emitted after a mutation has produced a new consistent state."""
    name: str
    payload: dict[str, Any] = field(default_factory=dict)


Listener = Callable[[EngineEvent], None]


class ListenerRegistry:
    """Ordered listener list; ``subscribe`` returns an unsubscribe callable."""

    def __init__(self):
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, name: str, **payload: Any) -> EngineEvent:
        event = EngineEvent(name=name, payload=payload)
        for listener in list(self._listeners):
            listener(event)
        return event

    def clear(self):
        self._listeners.clear()

    def __len__(self) -> int:
        return len(self._listeners)
