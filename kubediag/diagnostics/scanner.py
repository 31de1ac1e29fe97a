"""
Line Scanner

Lazy, line-oriented reader over a streamed byte source that must be
released explicitly. Used to walk pod log streams.
"""

import logging
from typing import Iterator, List, Optional, Protocol

logger = logging.getLogger(__name__)

CHUNK_SIZE = 4096
MAX_LINE_LENGTH = 64 * 1024


class ByteSource(Protocol):
    """Anything with ``read(size)`` and ``close()``, e.g. a urllib3 response."""

    def read(self, amt: Optional[int] = None) -> bytes: ...

    def close(self) -> None: ...


class ScannerError(Exception):
    """Reading from the underlying stream failed."""
    pass


class LineScanner:
    """
    Iterates text lines from a byte stream, pulling bytes only as lines are
    requested. Single use: once exhausted or closed it yields nothing more.

    The source is released exactly once, by ``close()`` or by leaving the
    ``with`` block.

    Example:
        with LineScanner(response) as scanner:
            for line in scanner:
                if "boom" in line:
                    break
    """

    def __init__(
        self,
        source: ByteSource,
        chunk_size: int = CHUNK_SIZE,
        max_line_length: int = MAX_LINE_LENGTH,
        encoding: str = "utf-8",
    ):
        self._source = source
        self._chunk_size = chunk_size
        self._max_line_length = max_line_length
        self._encoding = encoding
        self._buffer = b""
        self._pending: List[bytes] = []
        self._eof = False
        self._closed = False
        self.lines_read = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def __iter__(self) -> Iterator[str]:
        return self

    def __next__(self) -> str:
        line = self._next_line()
        if line is None:
            raise StopIteration
        self.lines_read += 1
        return line.decode(self._encoding, errors="replace")

    def _next_line(self) -> Optional[bytes]:
        while not self._pending:
            if self._closed:
                return None
            if self._eof:
                if not self._buffer:
                    return None
                # Final line without a trailing newline
                last, self._buffer = self._buffer, b""
                return last.rstrip(b"\r")
            self._fill()
        return self._pending.pop(0)

    def _fill(self) -> None:
        try:
            chunk = self._source.read(self._chunk_size)
        except Exception as e:
            raise ScannerError(f"reading stream failed: {e}") from e

        if not chunk:
            self._eof = True
            return

        self._buffer += chunk
        *complete, self._buffer = self._buffer.split(b"\n")
        for line in complete:
            if len(line) > self._max_line_length:
                raise ScannerError(f"line exceeds {self._max_line_length} bytes")
            self._pending.append(line.rstrip(b"\r"))

        if len(self._buffer) > self._max_line_length:
            raise ScannerError(f"line exceeds {self._max_line_length} bytes")

    def close(self) -> None:
        """Release the underlying stream. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._pending = []
        self._buffer = b""

        try:
            self._source.close()
        except Exception as e:
            logger.warning(f"Failed to close log stream: {e}")

        release = getattr(self._source, "release_conn", None)
        if callable(release):
            try:
                release()
            except Exception as e:
                logger.warning(f"Failed to release log stream connection: {e}")
        logger.debug(f"Closed log stream after {self.lines_read} lines")

    def __enter__(self) -> "LineScanner":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
