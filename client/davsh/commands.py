"""Command table and line tokenizer for the davsh shell."""

import shlex

# Canonical command names.  DavShell must provide a handler for each.
COMMANDS = (
    "cat", "cd", "copy", "delete", "edit", "get", "help", "lcd", "lls",
    "lpwd", "lock", "ls", "mkcol", "move", "open", "options", "propfind",
    "put", "pwd", "quit", "set", "sh", "showlocks", "steal", "unlock",
    "unset",
)

ALIASES = {
    "!": "sh",
    "?": "help",
    "bye": "quit",
    "chdir": "cd",
    "connect": "open",
    "cp": "copy",
    "del": "delete",
    "dir": "ls",
    "exit": "quit",
    "h": "help",
    "ldir": "lls",
    "mkdir": "mkcol",
    "mv": "move",
    "propget": "propfind",
    "q": "quit",
    "rm": "delete",
    "steal_lock": "steal",
    "vi": "edit",
}

_CANONICAL = frozenset(COMMANDS)


def resolve(token):
    """Map a command word or alias to its canonical name.

    Case-insensitive.  Returns None for unknown words.
    """
    if not token:
        return None
    name = token.lower()
    if name in _CANONICAL:
        return name
    return ALIASES.get(name)


def aliases_of(name):
    """Return the sorted aliases of a canonical command."""
    return sorted(a for a, target in ALIASES.items() if target == name)


def tokenize(line):
    """Split an input line into words.

    Quoting follows POSIX shell rules.  A leading "!" is always a word
    of its own ("!ls -l" -> ["!", "ls", "-l"]).  Empty words are dropped,
    so a blank line gives [].  Raises ValueError on unbalanced quotes.
    """
    line = line.strip()
    words = []
    if line.startswith("!"):
        words.append("!")
        line = line[1:]
    words.extend(shlex.split(line))
    return [w for w in words if w.strip()]
