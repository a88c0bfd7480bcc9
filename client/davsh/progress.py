"""Transfer progress reporting for get, put and delete.

DAVClient transfers accept a callback with the signature::

    callback(status, message, url, so_far, length, data)

status is PROGRESS for each chunk moved, then exactly one SUCCESS or
FAILURE once the transfer is over.  so_far only grows within a
transfer; length is None when the server didn't say.
"""

import posixpath
import sys
from urllib.parse import unquote, urlsplit

from .colors import ColorWriter

SUCCESS = 1
FAILURE = 0
PROGRESS = -1


def format_size(nbytes):
    """Format a byte count as a human-readable string.

    Returns the value with a suffix: B, K, M, G, T.
    Values under 1024 are shown as plain integers.
    Values >= 999.5 in a given unit roll over to the next unit
    (e.g. 999.5K displays as 1.0M, not 1000K).
    """
    if nbytes < 1024:
        return str(nbytes)
    for unit in ("K", "M", "G", "T"):
        nbytes = nbytes / 1024.0
        if nbytes < 999.95 or unit == "T":
            if nbytes == int(nbytes):
                return "{:.0f}{}".format(int(nbytes), unit)
            return "{:.1f}{}".format(nbytes, unit)
    return str(nbytes)


def _display_name(url):
    path = urlsplit(url).path.rstrip("/")
    return unquote(posixpath.basename(path)) or url


class TransferProgress:
    """Progress callback that draws a one-line indicator per transfer.

    The first progress call of a transfer prints a header; later ones
    redraw the percentage (or byte count) in place.  The closing
    SUCCESS/FAILURE call finishes the line and prints the message.
    Output errors are ignored: a transfer must never fail because its
    progress line couldn't be drawn.
    """

    def __init__(self, stream=None, cw=None):
        self.stream = stream  # None = whatever sys.stdout is at call time
        self.cw = cw if cw is not None else ColorWriter()
        self.in_progress = 0

    def reset(self):
        """Forget any transfer in progress (called when a new one starts)."""
        self.in_progress = 0

    def __call__(self, status, message, url, so_far=0, length=None,
                 data=b""):
        out = self.stream if self.stream is not None else sys.stdout
        try:
            if status == PROGRESS:
                self._progress(out, url, so_far, length)
            else:
                self._finish(out, status, message)
            out.flush()
        except (OSError, ValueError):
            self.in_progress = 0

    def _progress(self, out, url, so_far, length):
        if not self.in_progress:
            out.write("** Transferring {} **\n".format(_display_name(url)))
        self.in_progress += 1
        if length:
            percent = min(100, int(so_far * 100 / length))
            out.write("\r{:3d}% ({} of {})".format(
                percent, format_size(so_far), format_size(length)))
        else:
            out.write("\r{} transferred".format(format_size(so_far)))

    def _finish(self, out, status, message):
        if self.in_progress:
            out.write("\n")
        self.in_progress = 0
        if not message:
            return
        if status == SUCCESS:
            out.write(self.cw.success(message) + "\n")
        else:
            out.write(self.cw.error(message) + "\n")
