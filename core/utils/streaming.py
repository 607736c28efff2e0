"""Utilities for streaming file content with Range support."""

from __future__ import annotations

import os
from typing import BinaryIO, Generator, Protocol, runtime_checkable

from core.errors import StorageError


@runtime_checkable
class ByteSource(Protocol):
    """A readable span of stored bytes that must be released when done."""

    def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes; ``b""`` once the span is exhausted."""
        ...

    def close(self) -> None:
        """Release the underlying handle. Safe to call more than once."""
        ...


class FileRangeSource:
    """Byte source over the inclusive interval ``[start, end]`` of an open file.

    Owns the file handle: closing the source closes the file.
    """

    def __init__(self, file_obj: BinaryIO, start: int, end: int) -> None:
        self._file = file_obj
        self.start = start
        self.end = end
        self.remaining = end - start + 1
        self._positioned = False

    @property
    def closed(self) -> bool:
        return self._file.closed

    def read(self, size: int) -> bytes:
        if self.remaining <= 0:
            return b""
        if not self._positioned:
            self._file.seek(self.start)
            self._positioned = True
        read_size = min(size, self.remaining)
        try:
            data = self._file.read(read_size)
        except OSError as e:
            raise StorageError(
                f"Read failed at offset {self.end - self.remaining + 1}",
                original_error=e,
            ) from e
        if not data:
            raise StorageError(
                "Stored file ended before the requested range",
                context={
                    "start": self.start,
                    "end": self.end,
                    "missing": self.remaining,
                },
            )
        self.remaining -= len(data)
        return data

    def close(self) -> None:
        self._file.close()


def file_size(file_obj: BinaryIO) -> int:
    """Current byte length of an open file, taken from the handle itself."""
    return os.fstat(file_obj.fileno()).st_size


def range_generator(
    source: ByteSource, chunk_size: int = 64 * 1024
) -> Generator[bytes, None, None]:
    """Yield chunks from a byte source until it is exhausted.

    The source is closed when the generator finishes or is closed early.

    Args:
        source: Byte source positioned over the wanted window.
        chunk_size: Chunk size in bytes.

    Yields:
        Bytes chunks.
    """
    try:
        while data := source.read(chunk_size):
            yield data
    finally:
        source.close()
