"""Fixed-capacity, FIFO-evicting record buffers keyed by target id."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")

NETWORK_LOG_CAPACITY = 100
CONSOLE_LOG_CAPACITY = 100
ANIMATION_LOG_CAPACITY = 50


class BoundedLog(Generic[T]):
    """Insertion-ordered buffer that drops the oldest entry once full."""

    def __init__(self, capacity: int) -> None:
        if int(capacity) < 1:
            raise ValueError("BoundedLog capacity must be >= 1")
        self.capacity = int(capacity)
        self._items: deque[T] = deque(maxlen=self.capacity)

    def append(self, item: T) -> None:
        self._items.append(item)

    def find_last(self, predicate: Callable[[T], bool]) -> T | None:
        """Return the most recent entry matching ``predicate``."""
        for item in reversed(self._items):
            if predicate(item):
                return item
        return None

    def clear(self) -> None:
        self._items.clear()

    def snapshot(self) -> list[T]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)


@dataclass(slots=True)
class TargetLogs:
    """The three event logs kept for one target."""

    network: BoundedLog[Any] = field(default_factory=lambda: BoundedLog(NETWORK_LOG_CAPACITY))
    console: BoundedLog[Any] = field(default_factory=lambda: BoundedLog(CONSOLE_LOG_CAPACITY))
    animation: BoundedLog[Any] = field(default_factory=lambda: BoundedLog(ANIMATION_LOG_CAPACITY))


class LogStore:
    """target id -> TargetLogs. Purging a target drops all three logs at once."""

    def __init__(
        self,
        *,
        network_capacity: int = NETWORK_LOG_CAPACITY,
        console_capacity: int = CONSOLE_LOG_CAPACITY,
        animation_capacity: int = ANIMATION_LOG_CAPACITY,
    ) -> None:
        self._network_capacity = network_capacity
        self._console_capacity = console_capacity
        self._animation_capacity = animation_capacity
        self._logs: dict[str, TargetLogs] = {}

    def get(self, target_id: str) -> TargetLogs | None:
        return self._logs.get(target_id)

    def get_or_create(self, target_id: str) -> TargetLogs:
        logs = self._logs.get(target_id)
        if logs is None:
            logs = TargetLogs(
                network=BoundedLog(self._network_capacity),
                console=BoundedLog(self._console_capacity),
                animation=BoundedLog(self._animation_capacity),
            )
            self._logs[target_id] = logs
        return logs

    def purge(self, target_id: str) -> bool:
        return self._logs.pop(target_id, None) is not None

    def __contains__(self, target_id: object) -> bool:
        return target_id in self._logs

    def __len__(self) -> int:
        return len(self._logs)


__all__ = [
    "ANIMATION_LOG_CAPACITY",
    "CONSOLE_LOG_CAPACITY",
    "NETWORK_LOG_CAPACITY",
    "BoundedLog",
    "LogStore",
    "TargetLogs",
]
