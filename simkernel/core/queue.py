"""
Time-ordered, insertion-stable queue of pending event records.

Heap entries are (time, seq, record): seq is a monotonically increasing
insertion counter, so records with equal time leave in FIFO order.
"""

import heapq
import itertools
import threading
from typing import Iterator, List, Optional, Tuple

from .events import EventRecord

_Entry = Tuple[int, int, EventRecord]


class EventQueue:
    """
    Priority queue of EventRecords.

    push/pop are guarded by a lock so records may be submitted from threads
    other than the dispatch loop.
    """

    def __init__(self) -> None:
        self._heap: List[_Entry] = []
        self._seq = itertools.count()
        self._lock = threading.Lock()

    def push(self, record: EventRecord) -> None:
        with self._lock:
            heapq.heappush(self._heap, (record.time, next(self._seq), record))

    def pop(self) -> EventRecord:
        """
        Remove and return the earliest record.

        Raises:
            IndexError: If the queue is empty
        """
        with self._lock:
            return heapq.heappop(self._heap)[2]

    def pop_until(self, end_time: Optional[int]) -> Optional[EventRecord]:
        """
        Remove and return the earliest record if it is due by end_time.

        Returns None when the queue is empty or the earliest record lies
        after end_time (None = no bound).
        """
        with self._lock:
            if not self._heap:
                return None
            if end_time is not None and self._heap[0][0] > end_time:
                return None
            return heapq.heappop(self._heap)[2]

    def peek_time(self) -> Optional[int]:
        with self._lock:
            return self._heap[0][0] if self._heap else None

    def clear(self) -> List[EventRecord]:
        """Remove all records, returning them in dispatch order."""
        with self._lock:
            entries, self._heap = sorted(self._heap), []
        return [entry[2] for entry in entries]

    def __len__(self) -> int:
        with self._lock:
            return len(self._heap)

    def __bool__(self) -> bool:
        return len(self) > 0

    def __iter__(self) -> Iterator[EventRecord]:
        """Snapshot of pending records in dispatch order."""
        with self._lock:
            entries = sorted(self._heap)
        return iter([entry[2] for entry in entries])
