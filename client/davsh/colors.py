"""ANSI terminal color support for davsh shell output.

Output is styled by role (error, collection, heading, ...) rather than
by color, so the shell only says what a piece of text is.  Colors are
used when DAVSH_COLOR is "always", never when it is "never" or NO_COLOR
is set, and otherwise only when stdout is a terminal.
"""

import os
import sys

RESET = "\033[0m"

STYLES = {
    "error": "\033[31m",       # red
    "success": "\033[32m",     # green
    "warning": "\033[33m",     # yellow
    "collection": "\033[34m",  # blue
    "prop": "\033[36m",        # cyan
    "heading": "\033[1m",      # bold
    "dim": "\033[2m",
}


def color_mode():
    """Return "always", "never" or "auto" from the environment."""
    if os.environ.get("NO_COLOR"):
        return "never"
    mode = os.environ.get("DAVSH_COLOR", "").strip().lower()
    if mode in ("always", "never"):
        return mode
    return "auto"


def _supports_color(stream=None):
    mode = color_mode()
    if mode != "auto":
        return mode == "always"
    stream = stream if stream is not None else sys.stdout
    isatty = getattr(stream, "isatty", None)
    if isatty is None or not isatty():
        return False
    if sys.platform == "win32":
        # Windows Terminal handles ANSI; the legacy console may not
        return bool(os.environ.get("WT_SESSION"))
    return True


class ColorWriter:
    """Style text by role, as plain text when color is off.

    Usage:
        cw = ColorWriter()
        cw.error("Not Found")            # red
        cw.collection("docs/")           # blue
        cw.prop("getetag")               # cyan
        cw.heading("Commands:")          # bold
    """

    def __init__(self, force_color=None):
        if force_color is not None:
            self.enabled = force_color
        else:
            self.enabled = _supports_color()

    def paint(self, role, text):
        if not self.enabled:
            return text
        return "{}{}{}".format(STYLES[role], text, RESET)

    def error(self, text):
        return self.paint("error", text)

    def success(self, text):
        return self.paint("success", text)

    def warning(self, text):
        return self.paint("warning", text)

    def collection(self, text):
        return self.paint("collection", text)

    def prop(self, text):
        return self.paint("prop", text)

    def heading(self, text):
        return self.paint("heading", text)

    def dim(self, text):
        return self.paint("dim", text)
