"""
In-process record buffer.

Append-only FIFO shared between the producer path and the harvest path.
Neither operation awaits, so on a single event loop they are atomic with
respect to each other. There is no size cap.

Producers on other threads (the stdlib bridge) may append while a harvest
drains the buffer on the harvester's thread. The deque is never swapped
out, only drained, so such an append lands either in this batch or in the
next one.
"""

from collections import deque
from typing import Deque, Iterator

from ..models.log_record import Batch, LogRecord


class RecordBuffer:
    """Pending log records waiting for the next harvest."""

    def __init__(self) -> None:
        self._records: Deque[LogRecord] = deque()

    def append(self, record: LogRecord) -> None:
        self._records.append(record)

    def take_all(self) -> Batch:
        """Return everything buffered, in order, and leave the buffer empty."""
        count = len(self._records)
        if not count:
            return ()
        # Records appended after the count was read stay for the next harvest
        popleft = self._records.popleft
        return tuple(popleft() for _ in range(count))

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[LogRecord]:
        return iter(tuple(self._records))
