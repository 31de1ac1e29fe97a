"""
Tests for LineScanner
"""

import io
import logging

import pytest

from kubediag.diagnostics import LineScanner, ScannerError


class CountingStream(io.BytesIO):
    """BytesIO that counts read and close calls."""

    def __init__(self, data: bytes):
        super().__init__(data)
        self.reads = 0
        self.close_calls = 0

    def read(self, size=-1):
        self.reads += 1
        return super().read(size)

    def close(self):
        self.close_calls += 1
        super().close()


class BrokenStream:
    def __init__(self):
        self.close_calls = 0

    def read(self, amt=None):
        raise OSError("connection reset")

    def close(self):
        self.close_calls += 1


class TestLineScanner:
    """Tests for line iteration."""

    def test_yields_lines(self):
        scanner = LineScanner(io.BytesIO(b"one\ntwo\nthree\n"))

        assert list(scanner) == ["one", "two", "three"]
        assert scanner.lines_read == 3

    def test_final_line_without_newline(self):
        scanner = LineScanner(io.BytesIO(b"one\ntwo"))

        assert list(scanner) == ["one", "two"]

    def test_strips_carriage_returns(self):
        scanner = LineScanner(io.BytesIO(b"one\r\ntwo\r\n"))

        assert list(scanner) == ["one", "two"]

    def test_keeps_empty_lines(self):
        scanner = LineScanner(io.BytesIO(b"one\n\nthree\n"))

        assert list(scanner) == ["one", "", "three"]

    def test_empty_stream(self):
        assert list(LineScanner(io.BytesIO(b""))) == []

    def test_lines_across_chunks(self):
        """Lines split over several reads are joined."""
        scanner = LineScanner(io.BytesIO(b"alpha\nbravo\ncharlie\n"), chunk_size=3)

        assert list(scanner) == ["alpha", "bravo", "charlie"]

    def test_invalid_utf8_replaced(self):
        scanner = LineScanner(io.BytesIO(b"ok \xff\xfe done\n"))

        assert list(scanner) == ["ok �� done"]

    def test_lazy_reads(self):
        """Breaking early leaves the rest of the stream unread."""
        data = b"".join(b"line %d\n" % i for i in range(1000))
        stream = CountingStream(data)

        with LineScanner(stream, chunk_size=16) as scanner:
            for line in scanner:
                if line == "line 2":
                    break

        assert stream.reads < 5
        assert stream.close_calls == 1


class TestLineScannerErrors:
    """Tests for failure handling."""

    def test_read_error_raises_scanner_error(self):
        stream = BrokenStream()
        scanner = LineScanner(stream)

        with pytest.raises(ScannerError) as exc_info:
            next(scanner)

        assert isinstance(exc_info.value.__cause__, OSError)

    def test_line_too_long(self):
        scanner = LineScanner(io.BytesIO(b"x" * 100 + b"\n"), chunk_size=8, max_line_length=50)

        with pytest.raises(ScannerError):
            list(scanner)

    def test_complete_line_too_long(self):
        scanner = LineScanner(io.BytesIO(b"x" * 100 + b"\nok\n"), chunk_size=4096, max_line_length=50)

        with pytest.raises(ScannerError):
            list(scanner)


class TestLineScannerClose:
    """Tests for stream release."""

    def test_close_once(self):
        stream = CountingStream(b"a\nb\n")
        scanner = LineScanner(stream)

        scanner.close()
        scanner.close()

        assert stream.close_calls == 1
        assert scanner.closed

    def test_context_manager_closes_on_error(self):
        stream = BrokenStream()

        with pytest.raises(ScannerError):
            with LineScanner(stream) as scanner:
                list(scanner)

        assert stream.close_calls == 1

    def test_closed_scanner_yields_nothing(self):
        scanner = LineScanner(CountingStream(b"a\nb\n"))
        scanner.close()

        assert list(scanner) == []

    def test_release_conn_called(self):
        """urllib3 responses also get their connection released."""
        calls = []

        class Response(io.BytesIO):
            def release_conn(self):
                calls.append("release")

        scanner = LineScanner(Response(b"a\n"))
        list(scanner)
        scanner.close()

        assert calls == ["release"]

    def test_close_error_is_logged_and_conn_released(self, caplog):
        """A failing close is logged, and the connection is still released."""
        calls = []

        class Response:
            def __init__(self, data):
                self._body = io.BytesIO(data)

            def read(self, amt=None):
                return self._body.read(amt)

            def close(self):
                calls.append("close")
                raise OSError("socket already closed")

            def release_conn(self):
                calls.append("release")

        scanner = LineScanner(Response(b"a\n"))
        with caplog.at_level(logging.WARNING, logger="kubediag.diagnostics.scanner"):
            with scanner:
                assert list(scanner) == ["a"]

        assert calls == ["close", "release"]
        assert scanner.closed
        assert "Failed to close log stream" in caplog.text
