"""
rime-filter – sink.py
=====================

Bounded write buffering used by every output file of the pipeline.

A :class:`BufferedSink` collects lines in memory and hands them to its
destination in batches of ``cache_size`` lines. Lines are written in
insertion order, each followed by ``\\n``; a batch is never written twice and
a failed write leaves the lines already written in place.
"""

from __future__ import annotations

from pathlib import Path
from types import TracebackType
from typing import TextIO

from rimefilter.errors import StreamError


class BufferedSink:
    """Line buffer in front of a text stream.

    Args:
        stream: Destination text stream.
        cache_size: Number of pending lines that triggers a flush.
        name: Human-readable destination name used in error messages.
        owns_stream: Whether :meth:`close` also closes ``stream``.
    """

    def __init__(
        self,
        stream: TextIO,
        cache_size: int,
        name: str | None = None,
        *,
        owns_stream: bool = False,
    ) -> None:
        if isinstance(cache_size, bool) or not isinstance(cache_size, int):
            raise ValueError(f"cache_size must be an integer, got {cache_size!r}")
        if cache_size < 1:
            raise ValueError(f"cache_size must be positive, got {cache_size}")
        self.stream = stream
        self.cache_size = cache_size
        self.name = name or getattr(stream, "name", "<stream>")
        self.owns_stream = owns_stream
        self.pending: list[str] = []
        self.written = 0
        self.closed = False

    @classmethod
    def open(cls, path: Path, cache_size: int) -> BufferedSink:
        """Create (truncate) ``path`` as UTF-8 and return a sink owning it."""
        try:
            stream = path.open("w", encoding="utf-8", newline="\n")
        except OSError as e:
            raise StreamError("create", str(path), e) from e
        try:
            return cls(stream, cache_size, str(path), owns_stream=True)
        except ValueError:
            stream.close()
            raise

    def append(self, line: str) -> None:
        self.pending.append(line)
        if len(self.pending) >= self.cache_size:
            self.flush()

    def flush(self) -> None:
        """Write every pending line and clear the buffer."""
        if not self.pending:
            return
        batch = self.pending
        self.pending = []
        try:
            for line in batch:
                self.stream.write(line + "\n")
                self.written += 1
        except (OSError, ValueError) as e:
            raise StreamError("write to", self.name, e) from e

    def close(self) -> None:
        """Flush what is left, then release the destination."""
        if self.closed:
            return
        self.closed = True
        try:
            self.flush()
            self.stream.flush()
        except (OSError, ValueError) as e:
            if isinstance(e, StreamError):
                raise
            raise StreamError("write to", self.name, e) from e
        finally:
            if self.owns_stream:
                self.stream.close()

    def __enter__(self) -> BufferedSink:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
