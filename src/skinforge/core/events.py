"""EventBus for decoupled publish/subscribe communication."""

from enum import Enum, auto
from typing import Any, Callable
from collections import defaultdict


class EventType(Enum):
    # Processing step lifecycle
    STEP_STARTED = auto()         # data: step (str), mesh_count (int)
    STEP_FINISHED = auto()        # data: step (str), stats (LimitStats)

    # Per-mesh results
    MESH_LIMITED = auto()         # data: mesh (SkinnedMesh), stats (LimitStats)

    # Bone list compaction; holders of bone indices (node hierarchy
    # bindings, exporters) must remap through `remap` (-1 = removed)
    BONES_REMOVED = auto()        # data: mesh (SkinnedMesh), remap (np.ndarray), removed (list[str])


class EventBus:
    """Simple publish/subscribe event system."""

    def __init__(self):
        self._handlers: dict[EventType, list[Callable]] = defaultdict(list)

    def subscribe(self, event_type: EventType, handler: Callable) -> None:
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: EventType, handler: Callable) -> None:
        handlers = self._handlers[event_type]
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event_type: EventType, **data: Any) -> None:
        for handler in self._handlers[event_type]:
            handler(**data)

    def clear(self) -> None:
        self._handlers.clear()
