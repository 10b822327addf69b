"""EventBus for decoupled publish/subscribe communication."""

from enum import Enum, auto
from typing import Any, Callable
from collections import defaultdict


class EventType(Enum):
    # Selection
    BONE_SELECTED = auto()        # data: index (int, -1 = none)

    # Pose edits
    POSE_CHANGED = auto()         # data: index (int), operation (str)
    MANIPULATION_MODE_CHANGED = auto()  # data: mode (ManipulationMode)

    # Keyframe track
    KEYFRAME_ADDED = auto()       # data: index (int)
    KEYFRAME_REPLACED = auto()    # data: index (int)
    KEYFRAME_DELETED = auto()     # data: index (int)
    KEYFRAME_RESTORED = auto()    # data: index (int)
    TRACK_CLEARED = auto()

    # Playback
    PLAYBACK_STARTED = auto()
    PLAYBACK_STOPPED = auto()
    PLAYBACK_PROGRESS = auto()    # data: time (float), max_time (float)


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
        for handler in list(self._handlers[event_type]):
            handler(**data)

    def clear(self) -> None:
        self._handlers.clear()
