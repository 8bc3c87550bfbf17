from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Generic, Hashable, Iterator, Optional, Set, Tuple, TypeVar

from ledgervote.errors import AlreadyPendingError

T = TypeVar("T")


class SingleFlight:
    """At most one in-flight operation per key.

    Everything runs on one event loop, so the check-and-claim below cannot
    interleave with another coroutine.
    """

    def __init__(self) -> None:
        self._keys: Set[Hashable] = set()

    def is_pending(self, key: Hashable) -> bool:
        return key in self._keys

    @contextmanager
    def claim(self, key: Hashable) -> Iterator[None]:
        if key in self._keys:
            raise AlreadyPendingError()
        self._keys.add(key)
        try:
            yield
        finally:
            self._keys.discard(key)


@dataclass
class _Slot(Generic[T]):
    sequence: int
    value: T


class SequenceGuard(Generic[T]):
    """Publishes results only if they come from the newest request per view.

    ``begin()`` hands out a ticket when a fetch starts; ``offer()`` publishes
    the result for that ticket unless a later-started fetch for the same view
    has already published.
    """

    def __init__(self) -> None:
        self._counter = 0
        self._published: Dict[Hashable, _Slot[T]] = {}

    def begin(self) -> int:
        self._counter += 1
        return self._counter

    def offer(self, view: Hashable, sequence: int, value: T) -> Tuple[bool, T]:
        current = self._published.get(view)
        if current is not None and current.sequence >= sequence:
            return False, current.value
        self._published[view] = _Slot(sequence=sequence, value=value)
        return True, value

    def latest(self, view: Hashable) -> Optional[T]:
        slot = self._published.get(view)
        return slot.value if slot else None

    def clear(self) -> None:
        self._published.clear()


__all__ = ["SingleFlight", "SequenceGuard"]
