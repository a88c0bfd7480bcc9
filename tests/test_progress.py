"""Unit tests for the transfer progress reporter."""

import io

from davsh.colors import ColorWriter
from davsh.progress import (
    FAILURE, PROGRESS, SUCCESS, TransferProgress, format_size,
)

URL = "http://dav.example.com/dav/report.pdf"


def _reporter():
    out = io.StringIO()
    return TransferProgress(stream=out, cw=ColorWriter(force_color=False)), out


# ---------------------------------------------------------------------------
# format_size()
# ---------------------------------------------------------------------------

class TestFormatSize:
    """Tests for the human-readable byte-count formatter."""

    def test_zero(self):
        assert format_size(0) == "0"

    def test_just_under_1k(self):
        assert format_size(1023) == "1023"

    def test_exactly_1k(self):
        assert format_size(1024) == "1K"

    def test_fractional_kilobytes(self):
        assert format_size(1536) == "1.5K"

    def test_exactly_1m(self):
        assert format_size(1048576) == "1M"

    def test_rollover(self):
        assert format_size(1023 * 1024) == "1.0M"


# ---------------------------------------------------------------------------
# TransferProgress
# ---------------------------------------------------------------------------

class TestTransferProgress:

    def test_header_once_per_transfer(self):
        progress, out = _reporter()
        progress(PROGRESS, "", URL, 10, 100, b"x" * 10)
        progress(PROGRESS, "", URL, 50, 100, b"x" * 40)
        assert out.getvalue().count("** Transferring report.pdf **") == 1
        assert progress.in_progress == 2

    def test_percentage(self):
        progress, out = _reporter()
        progress(PROGRESS, "", URL, 50, 100, b"")
        assert "\r 50% (50 of 100)" in out.getvalue()

    def test_unknown_length(self):
        progress, out = _reporter()
        progress(PROGRESS, "", URL, 2048, None, b"")
        assert "\r2K transferred" in out.getvalue()

    def test_success_finishes_line(self):
        progress, out = _reporter()
        progress(PROGRESS, "", URL, 100, 100, b"")
        progress(SUCCESS, "Downloaded 100 bytes", URL, 100, 100, b"")
        assert out.getvalue().endswith("(100 of 100)\nDownloaded 100 bytes\n")
        assert progress.in_progress == 0

    def test_failure_without_progress(self):
        progress, out = _reporter()
        progress(FAILURE, "Not Found: " + URL, URL, 0, None, b"")
        assert out.getvalue() == "Not Found: {}\n".format(URL)

    def test_empty_message(self):
        progress, out = _reporter()
        progress(SUCCESS, "", URL)
        assert out.getvalue() == ""

    def test_new_transfer_gets_new_header(self):
        progress, out = _reporter()
        progress(PROGRESS, "", URL, 1, 2, b"")
        progress(SUCCESS, "done", URL, 2, 2, b"")
        progress(PROGRESS, "", URL, 1, 2, b"")
        assert out.getvalue().count("** Transferring") == 2

    def test_reset(self):
        progress, out = _reporter()
        progress(PROGRESS, "", URL, 1, 2, b"")
        progress.reset()
        assert progress.in_progress == 0

    def test_closed_stream_ignored(self):
        progress, out = _reporter()
        out.close()
        progress(PROGRESS, "", URL, 1, 2, b"")  # must not raise
        assert progress.in_progress == 0

    def test_success_colored(self):
        out = io.StringIO()
        progress = TransferProgress(stream=out,
                                    cw=ColorWriter(force_color=True))
        progress(SUCCESS, "done", URL)
        assert "\033[32mdone\033[0m" in out.getvalue()
