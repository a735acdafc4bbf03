"""
Input events and the per-tick input queue.

Device wiring lives outside the package; it translates raw pointer, touch
and keyboard events into these records and pushes them on an
:class:`InputQueue`. The render loop drains the queue once per tick so
events reach the active camera in arrival order.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Iterator, List, Tuple, Union

Vec2 = Tuple[float, float]


@dataclass(frozen=True)
class PointerDown:
    position: Vec2
    button: int = 0


@dataclass(frozen=True)
class PointerUp:
    position: Vec2
    button: int = 0


@dataclass(frozen=True)
class PointerMove:
    """Pointer motion; ``movement`` is the relative delta reported by the device."""

    position: Vec2
    movement: Vec2 = (0.0, 0.0)
    locked: bool = False


@dataclass(frozen=True)
class Wheel:
    delta: float
    position: Vec2 = (0.0, 0.0)


@dataclass(frozen=True)
class TouchStart:
    touches: Tuple[Vec2, ...]


@dataclass(frozen=True)
class TouchMove:
    touches: Tuple[Vec2, ...]


@dataclass(frozen=True)
class TouchEnd:
    touches: Tuple[Vec2, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class KeyDown:
    code: str


@dataclass(frozen=True)
class KeyUp:
    code: str


@dataclass(frozen=True)
class Resize:
    width: float
    height: float


InputEvent = Union[
    PointerDown, PointerUp, PointerMove, Wheel, TouchStart, TouchMove, TouchEnd, KeyDown, KeyUp, Resize
]


class InputQueue:
    """FIFO of pending input events."""

    def __init__(self):
        self._events: Deque[InputEvent] = deque()

    def push(self, event: InputEvent) -> None:
        self._events.append(event)

    def extend(self, events: List[InputEvent]) -> None:
        self._events.extend(events)

    def drain(self) -> Iterator[InputEvent]:
        """Yield and remove every queued event, oldest first."""
        while self._events:
            yield self._events.popleft()

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)
