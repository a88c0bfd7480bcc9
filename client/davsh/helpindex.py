"""Help index built from the command handlers' docstrings.

Each handler documents itself the way cmd.Cmd expects: a one-line
summary, a blank line, a "Usage:" line and free text.  The index is
built once when the shell starts and is read-only afterwards.
"""

import inspect
from collections import namedtuple

HelpEntry = namedtuple("HelpEntry", "name title summary body")


def parse_entry(name, doc):
    """Turn a handler docstring into a HelpEntry (None if undocumented).

    title is the text after "Usage:", or the command name when there is
    no usage line.
    """
    if not doc or not doc.strip():
        return None
    body = inspect.cleandoc(doc)
    lines = body.splitlines()
    summary = lines[0].strip()
    title = name
    for line in lines[1:]:
        stripped = line.strip()
        if stripped.startswith("Usage:"):
            title = stripped[len("Usage:"):].strip() or name
            break
    return HelpEntry(name.lower(), title, summary, body)


class HelpIndex:
    """Lookup table of HelpEntry keyed by lower-cased command name."""

    def __init__(self, entries=()):
        self._entries = {}
        for entry in entries:
            self._entries[entry.name.lower()] = entry

    @classmethod
    def from_handlers(cls, handlers):
        """Build the index from a {name: handler} mapping."""
        entries = []
        for name, handler in handlers.items():
            entry = parse_entry(name, getattr(handler, "__doc__", None))
            if entry is not None:
                entries.append(entry)
        return cls(entries)

    def lookup(self, name):
        if not name:
            return None
        return self._entries.get(name.lower())

    def names(self):
        return sorted(self._entries)

    def __contains__(self, name):
        return self.lookup(name) is not None

    def __len__(self):
        return len(self._entries)

    def render_manual(self):
        """Every entry's full text, alphabetically, for --man."""
        sections = []
        for name in self.names():
            entry = self._entries[name]
            underline = "-" * len(name)
            sections.append("{}\n{}\n{}".format(name, underline, entry.body))
        return "\n\n".join(sections)
