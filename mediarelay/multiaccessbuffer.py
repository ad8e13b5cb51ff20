"""An append-only buffer that many readers can consume independently."""

from __future__ import annotations

import threading


class MultiAccessBuffer:
    """A growing byte buffer; each reader keeps its own position."""

    def __init__(self) -> None:
        self._buf = bytearray()
        self._closed = False
        self._cond = threading.Condition()

    def write(self, data: bytes) -> int:
        """Append data and wake waiting readers."""
        with self._cond:
            self._buf += data
            self._cond.notify_all()
        return len(data)

    def close(self) -> None:
        """Mark the buffer as complete; readers then reach end of data."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def new_reader(self) -> MultiAccessBufferReader:
        """Return a reader that starts at the beginning of the buffer."""
        return MultiAccessBufferReader(self)

    def _read_from(self, pos: int, size: int | None) -> bytes:
        with self._cond:
            self._cond.wait_for(lambda: self._closed or len(self._buf) > pos)
            end = len(self._buf) if size is None else min(len(self._buf), pos + size)
            return bytes(self._buf[pos:end])


class MultiAccessBufferReader:
    """A reader over a MultiAccessBuffer."""

    def __init__(self, buffer: MultiAccessBuffer) -> None:
        self._buffer = buffer
        self._pos = 0

    def read(self, size: int = -1) -> bytes:
        """Read up to size bytes, blocking until some are available.

        Returns b"" once the buffer is closed and fully read. A negative size
        reads everything up to the end of the closed buffer.
        """
        if size is None or size < 0:
            chunks = []
            while chunk := self._read_chunk(None):
                chunks.append(chunk)
            return b"".join(chunks)
        return self._read_chunk(size)

    def _read_chunk(self, size: int | None) -> bytes:
        chunk = self._buffer._read_from(self._pos, size)
        self._pos += len(chunk)
        return chunk