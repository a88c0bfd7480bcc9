"""Interactive shell for davsh."""

import cmd
import email.utils
import os
import posixpath
import shlex
import signal
import subprocess
import sys
from urllib.parse import quote, unquote, urljoin, urlsplit

import requests

from . import (
    AuthenticatingTransport, DAVClient, DavError, NotFoundError,
    ProtocolError, __version__,
)
from .colors import ColorWriter
from .commands import COMMANDS, aliases_of, resolve, tokenize
from .edit import RemoteEdit
from .helpindex import HelpIndex
from .progress import FAILURE, PROGRESS, TransferProgress, format_size
from .protocol import DAV_NS, parse_timeout, short_name

INTERRUPT_MESSAGE = "Interrupted. Type 'quit' to exit."

DEFAULT_LOCK_TIMEOUT = "10h"


# ---------------------------------------------------------------------------
# Utility functions
# ---------------------------------------------------------------------------

class InvalidURL(ValueError):
    """A URL typed by the user that can't be parsed."""


def _check_url(url):
    """Return url, or raise InvalidURL if its host or port is malformed."""
    try:
        urlsplit(url).port
    except ValueError as e:
        raise InvalidURL("{} ({})".format(url, e))
    return url


def _join_url(base, path):
    """Resolve a user-supplied path or URL against the base collection.

    Full http(s) URLs pass through unchanged.  Anything else is quoted
    (characters already %-escaped are left alone) and joined the way a
    browser resolves a relative link, so "..", "/abs" and "sub/file"
    all work.
    """
    if urlsplit(_check_url(path)).scheme in ("http", "https"):
        return path
    return urljoin(base, quote(path, safe="/%:@!$&'()*+,;=~"))


def _collection_url(url):
    """Return url with a trailing slash."""
    return url if url.endswith("/") else url + "/"


def _url_basename(url):
    """Unquoted last path segment of a URL ("" for a server root)."""
    return unquote(posixpath.basename(urlsplit(url).path.rstrip("/")))


def _url_path(url):
    return unquote(urlsplit(url).path) or "/"


def _format_date(value):
    """Render an HTTP date as "YYYY-MM-DD HH:MM" (raw text if unparsable)."""
    if not value:
        return ""
    try:
        when = email.utils.parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return value
    if when is None:
        return value
    return when.strftime("%Y-%m-%d %H:%M")


def _shell_join(words):
    """Rejoin words for /bin/sh, quoting only those with whitespace so
    that globs and redirections still reach the shell."""
    parts = []
    for word in words:
        if any(ch.isspace() for ch in word):
            parts.append(shlex.quote(word))
        else:
            parts.append(word)
    return " ".join(parts)


# ---------------------------------------------------------------------------
# Interactive shell
# ---------------------------------------------------------------------------

class DavShell(cmd.Cmd):
    """Interactive shell for browsing and editing a WebDAV server.

    Input lines are tokenized, the first word is resolved through the
    command table (aliases included, case-insensitive) and the argument
    words are passed to the handler.  Handlers return True only to end
    the session.
    """

    intro = ""
    prompt = "dav:!> "

    def __init__(self, url=None, client=None, username=None, password=None,
                 editor=None, tmpdir=None, color=None):
        super().__init__()
        self.start_url = url
        if client is None:
            transport = AuthenticatingTransport(username=username,
                                                password=password)
            client = DAVClient(transport, owner=username)
        self.client = client
        self.cw = ColorWriter(force_color=color)
        self.progress = TransferProgress(cw=self.cw)
        self.cwd = None  # Current remote collection URL
        self.home = None  # Collection given to 'open'
        self._editor = editor  # from config file; None = use env/default
        self._tmpdir = tmpdir
        self._saved_sigint = None
        self._handlers = self._build_dispatch()
        self.help_index = HelpIndex.from_handlers(self._handlers)

    def _build_dispatch(self):
        """Map every canonical command to its handler.

        A command without a handler (or a handler for an unknown command)
        means the command table is broken; the shell refuses to start.
        """
        handlers = {
            "cat": self.do_cat,
            "cd": self.do_cd,
            "copy": self.do_copy,
            "delete": self.do_delete,
            "edit": self.do_edit,
            "get": self.do_get,
            "help": self.do_help,
            "lcd": self.do_lcd,
            "lls": self.do_lls,
            "lpwd": self.do_lpwd,
            "lock": self.do_lock,
            "ls": self.do_ls,
            "mkcol": self.do_mkcol,
            "move": self.do_move,
            "open": self.do_open,
            "options": self.do_options,
            "propfind": self.do_propfind,
            "put": self.do_put,
            "pwd": self.do_pwd,
            "quit": self.do_quit,
            "set": self.do_set,
            "sh": self.do_sh,
            "showlocks": self.do_showlocks,
            "steal": self.do_steal,
            "unlock": self.do_unlock,
            "unset": self.do_unset,
        }
        missing = sorted(set(COMMANDS) - set(handlers))
        extra = sorted(set(handlers) - set(COMMANDS))
        if missing or extra:
            raise SystemExit(
                "davsh: broken command table (no handler for: {}; "
                "unknown commands: {})".format(
                    ", ".join(missing) or "-", ", ".join(extra) or "-"))
        return handlers

    # -- Lifecycle ---------------------------------------------------------

    def preloop(self):
        """Configure readline and SIGINT, then open the start-up URL."""
        try:
            import readline
            readline.set_completer_delims(" \t\n")
            histfile = os.path.expanduser("~/.davsh_history")
            try:
                readline.read_history_file(histfile)
            except (FileNotFoundError, OSError):
                pass
            import atexit
            atexit.register(readline.write_history_file, histfile)
        except ImportError:
            pass

        try:
            self._saved_sigint = signal.signal(signal.SIGINT,
                                               self._on_interrupt)
        except ValueError:
            self._saved_sigint = None  # not the main thread

        print("davsh {} -- type \"help\" for a list of commands, "
              "\"quit\" to exit.".format(__version__))
        if self.start_url:
            self._dispatch("open", [self.start_url])

    def postloop(self):
        """Restore SIGINT handling and warn about locks left behind."""
        if self._saved_sigint is not None:
            signal.signal(signal.SIGINT, self._saved_sigint)
            self._saved_sigint = None
        held = self.client.held_locks()
        if held:
            print(self.cw.warning(
                "Still holding {} lock(s); they expire on the server's "
                "timeout:".format(len(held))))
            for lock in held:
                print("  {}".format(lock.url))

    def _on_interrupt(self, signum, frame):
        """SIGINT handler: remind, don't cancel."""
        print()
        print(INTERRUPT_MESSAGE)

    def _update_prompt(self):
        """Update the prompt to reflect the current collection."""
        if self.cwd is None:
            self.prompt = "dav:!> "
        else:
            self.prompt = "dav:{}> ".format(_url_path(self.cwd))

    # -- Dispatch ----------------------------------------------------------

    def onecmd(self, line):
        """Tokenize a line and run its handler.  True ends the loop."""
        if line == "EOF":
            print()  # newline after ^D
            return True
        try:
            words = tokenize(line)
        except ValueError as e:
            print("Parse error: {}".format(e))
            return False
        if not words:
            return self.emptyline()
        name = resolve(words[0])
        if name is None:
            return self.default(line)
        self.lastcmd = line
        return self._dispatch(name, words[1:])

    def _dispatch(self, name, args):
        try:
            return bool(self._handlers[name](args))
        except InvalidURL as e:
            print(self.cw.error("Invalid URL: {}".format(e)))
            return False

    def emptyline(self):
        """Do nothing on empty input (override cmd.Cmd's default repeat)."""
        return False

    def default(self, line):
        """Handle unknown commands."""
        word = line.split()[0] if line.split() else line
        print("Unrecognised command: {}. Type 'help' for a list of "
              "commands.".format(word))
        return False

    def get_names(self):
        """Only canonical commands take part in name completion."""
        return ["do_" + name for name in COMMANDS]

    # -- Error handling wrapper --------------------------------------------

    def _run(self, func, *args, **kwargs):
        """Run a client call, reporting failures.

        Returns the call's result on success, or None on error.  Calls
        that return None on success (mkcol, unlock, ...) give "ok" so the
        caller can tell the two apart.
        """
        try:
            result = func(*args, **kwargs)
        except (DavError, ProtocolError, requests.RequestException) as e:
            self._report_error(e)
            return None
        if result is None:
            return "ok"
        return result

    def _report_error(self, e):
        if isinstance(e, DavError):
            print(self.cw.error("Error: {}".format(e.message)))
        elif isinstance(e, ProtocolError):
            print(self.cw.error("Protocol error: {}".format(e)))
        else:
            print(self.cw.error("Connection error: {}".format(e)))

    def _transfer(self, func, *args, **kwargs):
        """Run a transfer whose outcome the progress callback reports.

        Returns the call's result, or None if it failed.
        """
        self.progress.reset()
        try:
            return func(*args, **kwargs)
        except (DavError, ProtocolError, OSError):
            return None

    # -- Helpers -----------------------------------------------------------

    def _check_connected(self):
        """Return True if a collection is open; print a hint otherwise."""
        if self.cwd is None:
            print("Not connected. Use 'open URL' first.")
            return False
        return True

    def _resolve(self, path):
        return _join_url(self.cwd, path)

    def _into_collection(self, url, name):
        """If url is an existing collection, return url/name instead.

        Returns None (after reporting) if url could not be inspected.
        """
        if url.endswith("/"):
            return url + quote(name)
        try:
            target = self.client.stat(url)
        except NotFoundError:
            return url
        except (DavError, ProtocolError, requests.RequestException) as e:
            self._report_error(e)
            return None
        if target.is_collection:
            return _collection_url(url) + quote(name)
        return url

    def _open_collection(self, url):
        """PROPFIND url and make it the current collection if it is one."""
        url = _collection_url(url)
        resource = self._run(self.client.stat, url)
        if resource is None:
            return False
        if not resource.is_collection:
            print(self.cw.error("{} is not a collection".format(url)))
            return False
        self.cwd = url
        self._update_prompt()
        return True

    # -- Connection --------------------------------------------------------

    def do_open(self, args):
        """Connect to a WebDAV collection.

    Usage: open URL

    URL     Collection to start in. "http://" is assumed when no scheme
            is given. It becomes the current collection and the target
            of a bare 'cd'.

    Examples:
        open http://localhost/dav/
        open https://example.com/remote.php/webdav/"""
        if len(args) != 1:
            print("Usage: open URL")
            return
        url = args[0]
        if "://" not in url:
            url = "http://" + url
        if urlsplit(_check_url(url)).scheme not in ("http", "https"):
            print(self.cw.error("Only http and https URLs are supported"))
            return
        if self._open_collection(url):
            self.home = self.cwd
            print("Opened {}".format(self.cwd))

    # -- Navigation --------------------------------------------------------

    def do_cd(self, args):
        """Change the current remote collection.

    Usage: cd [URL]

    URL     Relative path, absolute path (/dav/docs) or full URL.
            Omit to return to the collection given to 'open'.
            ".." goes up one level.

    Examples:
        cd docs
        cd ../other
        cd"""
        if not self._check_connected():
            return
        if len(args) > 1:
            print("Usage: cd [URL]")
            return
        target = self.home if not args else self._resolve(args[0])
        self._open_collection(target)

    def do_pwd(self, args):
        """Print the current remote collection URL.

    Usage: pwd"""
        if not self._check_connected():
            return
        print(self.cwd)

    def do_ls(self, args):
        """List a collection, or describe a single resource.

    Usage: ls [URL]

    Shows size, last-modified time and name for each member.
    Collections end with "/"; locked members are flagged.

    Examples:
        ls
        ls docs
        ls report.pdf"""
        if not self._check_connected():
            return
        if len(args) > 1:
            print("Usage: ls [URL]")
            return
        url = self._resolve(args[0]) if args else self.cwd
        result = self._run(self.client.listdir, url)
        if result is None:
            return
        this, children = result

        if not this.is_collection:
            print(self._format_entry(this))
            return

        print(self.cw.heading(
            "Listing of {}:".format(_url_path(this.url))))
        if not children:
            print("  (empty)")
            return
        for res in sorted(children,
                          key=lambda r: (not r.is_collection, r.name.lower())):
            print(self._format_entry(res))

    def _format_entry(self, res):
        if res.is_collection:
            size = "-"
            name = self.cw.collection(res.name + "/")
        else:
            size = format_size(res.size) if res.size is not None else "?"
            name = res.name
        line = "{:>8}  {:<16}  {}".format(size, _format_date(res.modified),
                                          name)
        if res.locks:
            line += " " + self.cw.warning("(locked)")
        return line

    def do_propfind(self, args):
        """Show every property of a resource.

    Usage: propfind [URL]

    Properties in the DAV: namespace are shown by their short name,
    others as {namespace}name."""
        if not self._check_connected():
            return
        if len(args) > 1:
            print("Usage: propfind [URL]")
            return
        url = self._resolve(args[0]) if args else self.cwd
        res = self._run(self.client.stat, url)
        if res is None:
            return
        print("URL: {}".format(res.url))
        for tag in sorted(res.properties, key=short_name):
            print("{}={}".format(self.cw.prop(short_name(tag)),
                                 res.properties[tag]))
        for lock in res.locks:
            print("{}={} owner={} timeout={} depth={}".format(
                self.cw.prop("lock"), lock.token, lock.owner or "-",
                lock.timeout or "-", lock.depth or "-"))

    def do_options(self, args):
        """Show the methods and DAV classes a resource supports.

    Usage: options [URL]"""
        if not self._check_connected():
            return
        url = self._resolve(args[0]) if args else self.cwd
        info = self._run(self.client.options, url)
        if info is None:
            return
        print("{}: {}".format(self.cw.prop("Allow"),
                              ", ".join(info["allow"]) or "-"))
        print("{}: {}".format(self.cw.prop("DAV"),
                              ", ".join(info["dav"]) or "-"))

    # -- File transfer -----------------------------------------------------

    def do_cat(self, args):
        """Print a remote file's contents to the terminal.

    Usage: cat URL

    Use 'get' to save to a local file instead."""
        if not self._check_connected():
            return
        if len(args) != 1:
            print("Usage: cat URL")
            return
        url = self._resolve(args[0])

        def write_chunk(status, message, url, so_far, length, data):
            if status == PROGRESS:
                sys.stdout.buffer.write(data)
            elif status == FAILURE:
                print(self.cw.error("Error: {}".format(message)))
            sys.stdout.flush()

        sys.stdout.flush()
        self._transfer(self.client.get, url, None, callback=write_chunk)

    def do_get(self, args):
        """Download a file.

    Usage: get URL [LOCAL]

    URL     Remote file (relative to the current collection, or absolute).
    LOCAL   Destination file or directory on this computer (default:
            the current local directory, same name as the remote file).

    Examples:
        get report.pdf
        get docs/notes.txt /tmp/notes.txt"""
        if not self._check_connected():
            return
        if len(args) not in (1, 2):
            print("Usage: get URL [LOCAL]")
            return
        url = self._resolve(args[0])
        name = _url_basename(url)
        if url.endswith("/") or not name:
            print(self.cw.error("{} is a collection; get copies single "
                                "files".format(url)))
            return
        local = args[1] if len(args) == 2 else name
        if os.path.isdir(local):
            local = os.path.join(local, name)
        self._transfer(self.client.get, url, local, callback=self.progress)

    def do_put(self, args):
        """Upload a file.

    Usage: put LOCAL [URL]

    LOCAL   File on this computer.
    URL     Destination (default: current collection, same name as
            LOCAL). If URL is a collection the file goes inside it.

    Examples:
        put notes.txt
        put build/report.pdf docs/"""
        if not self._check_connected():
            return
        if len(args) not in (1, 2):
            print("Usage: put LOCAL [URL]")
            return
        local = args[0]
        if not os.path.isfile(local):
            print(self.cw.error("No such local file: {}".format(local)))
            return
        name = os.path.basename(local)
        if len(args) == 2:
            url = self._into_collection(self._resolve(args[1]), name)
            if url is None:
                return
        else:
            url = self.cwd + quote(name)
        self._transfer(self.client.put, local, url, callback=self.progress)

    # -- Remote manipulation -----------------------------------------------

    def do_delete(self, args):
        """Delete remote files or collections.

    Usage: delete URL [URL ...]

    Collections are deleted with everything in them. There is no
    confirmation prompt.

    Examples:
        delete old.txt
        rm scratch/"""
        if not self._check_connected():
            return
        if not args:
            print("Usage: delete URL [URL ...]")
            return
        for arg in args:
            self._transfer(self.client.delete, self._resolve(arg),
                           callback=self.progress)

    def do_mkcol(self, args):
        """Create a collection.

    Usage: mkcol URL [URL ...]

    The parent collection must already exist."""
        if not self._check_connected():
            return
        if not args:
            print("Usage: mkcol URL [URL ...]")
            return
        for arg in args:
            url = _collection_url(self._resolve(arg))
            if self._run(self.client.mkcol, url) is not None:
                print(self.cw.success("Created {}".format(url)))

    def _copy_or_move(self, args, func, verb, usage):
        if not self._check_connected():
            return
        if len(args) != 2:
            print("Usage: {}".format(usage))
            return
        src = self._resolve(args[0])
        dst = self._into_collection(self._resolve(args[1]),
                                    _url_basename(src))
        if dst is None:
            return
        if self._run(func, src, dst) is not None:
            print(self.cw.success("{}: {} -> {}".format(verb, src, dst)))

    def do_copy(self, args):
        """Copy a resource on the server.

    Usage: copy SOURCE DEST

    Collections are copied with their contents. An existing DEST is
    overwritten; if DEST is a collection the copy goes inside it."""
        self._copy_or_move(args, self.client.copy, "Copied",
                           "copy SOURCE DEST")

    def do_move(self, args):
        """Move or rename a resource on the server.

    Usage: move SOURCE DEST

    An existing DEST is overwritten; if DEST is a collection the
    resource is moved inside it."""
        self._copy_or_move(args, self.client.move, "Moved",
                           "move SOURCE DEST")

    def do_set(self, args):
        """Set a property on a resource.

    Usage: set URL PROPERTY VALUE [NAMESPACE]

    NAMESPACE defaults to DAV:.

    Examples:
        set notes.txt author "A. Writer" http://example.com/ns/"""
        if not self._check_connected():
            return
        if len(args) not in (3, 4):
            print("Usage: set URL PROPERTY VALUE [NAMESPACE]")
            return
        url = self._resolve(args[0])
        namespace = args[3] if len(args) == 4 else DAV_NS
        if self._run(self.client.set_prop, url, args[1], args[2],
                     namespace=namespace) is not None:
            print(self.cw.success("Set {} on {}".format(args[1], url)))

    def do_unset(self, args):
        """Remove a property from a resource.

    Usage: unset URL PROPERTY [NAMESPACE]"""
        if not self._check_connected():
            return
        if len(args) not in (2, 3):
            print("Usage: unset URL PROPERTY [NAMESPACE]")
            return
        url = self._resolve(args[0])
        namespace = args[2] if len(args) == 3 else DAV_NS
        if self._run(self.client.unset_prop, url, args[1],
                     namespace=namespace) is not None:
            print(self.cw.success("Removed {} from {}".format(args[1], url)))

    # -- Locking -----------------------------------------------------------

    def do_lock(self, args):
        """Lock a resource for writing.

    Usage: lock [URL] [TIMEOUT] [DEPTH]

    URL      Resource to lock (default: the current collection).
    TIMEOUT  How long the lock lasts: seconds, or a number with s, m,
             h or d, or "infinite" (default: 10h). The server may
             grant less.
    DEPTH    0 or infinity (default: infinity).

    The lock is held by this session until 'unlock'; changes made
    through davsh send its token automatically.

    Examples:
        lock report.pdf
        lock docs/ 30m 0"""
        if not self._check_connected():
            return
        if len(args) > 3:
            print("Usage: lock [URL] [TIMEOUT] [DEPTH]")
            return
        url = self._resolve(args[0]) if args else self.cwd
        try:
            timeout = parse_timeout(
                args[1] if len(args) > 1 else DEFAULT_LOCK_TIMEOUT)
        except ValueError as e:
            print("Invalid timeout: {}".format(e))
            return
        depth = args[2].lower() if len(args) > 2 else "infinity"
        if depth in ("inf", "infinite"):
            depth = "infinity"
        if depth not in ("0", "infinity"):
            print("Invalid depth: {} (use 0 or infinity)".format(args[2]))
            return
        lock = self._run(self.client.lock, url, timeout=timeout, depth=depth)
        if lock is not None:
            print(self.cw.success("Locked {} ({})".format(
                url, lock.timeout)))

    def do_unlock(self, args):
        """Release a lock held by this session.

    Usage: unlock [URL]

    Use 'steal' to remove a lock someone else holds."""
        if not self._check_connected():
            return
        if len(args) > 1:
            print("Usage: unlock [URL]")
            return
        url = self._resolve(args[0]) if args else self.cwd
        if not self.client.holds_lock(url):
            print(self.cw.error(
                "No lock held on {}. Use 'steal' to remove someone "
                "else's lock.".format(url)))
            return
        if self._run(self.client.unlock, url) is not None:
            print(self.cw.success("Unlocked {}".format(url)))

    def do_steal(self, args):
        """Remove all locks on a resource, whoever holds them.

    Usage: steal [URL]"""
        if not self._check_connected():
            return
        if len(args) > 1:
            print("Usage: steal [URL]")
            return
        url = self._resolve(args[0]) if args else self.cwd
        count = self._run(self.client.steal, url)
        if count is None:
            return
        if count == 0:
            print("No locks on {}".format(url))
        else:
            print(self.cw.success("Removed {} lock(s) on {}".format(
                count, url)))

    def do_showlocks(self, args):
        """List the locks held by this session.

    Usage: showlocks"""
        held = self.client.held_locks()
        if not held:
            print("No locks held.")
            return
        for lock in held:
            print(lock.url)
            print("    token={} timeout={} depth={} owner={}".format(
                lock.token, lock.timeout or "-", lock.depth or "-",
                lock.owner or "-"))

    # -- Editing -----------------------------------------------------------

    def do_edit(self, args):
        """Edit a remote file in a local editor.

    Usage: edit URL

    Locks the file, downloads it, opens it in $DAV_EDITOR, $EDITOR,
    the editor from the config file, or vi, and uploads it again if
    it was saved. The lock and the local copy are released afterwards,
    whatever happens. A file someone else has locked is not opened.

    Examples:
        edit notes.txt"""
        if not self._check_connected():
            return
        if len(args) != 1:
            print("Usage: edit URL")
            return
        RemoteEdit(self.client, self._resolve(args[0]), editor=self._editor,
                   tmpdir=self._tmpdir, cw=self.cw,
                   progress=self.progress).run()

    # -- Local side --------------------------------------------------------

    def do_lcd(self, args):
        """Change the local working directory.

    Usage: lcd [DIR]

    Omit DIR to go to your home directory."""
        if len(args) > 1:
            print("Usage: lcd [DIR]")
            return
        path = os.path.expanduser(args[0] if args else "~")
        try:
            os.chdir(path)
        except OSError as e:
            print(self.cw.error("lcd: {}".format(e)))
            return
        print(os.getcwd())

    def do_lpwd(self, args):
        """Print the local working directory.

    Usage: lpwd"""
        print(os.getcwd())

    def do_lls(self, args):
        """List the local working directory.

    Usage: lls [ARGS ...]

    Runs the local 'ls' with ARGS."""
        self._run_local(["ls"] + list(args))

    def do_sh(self, args):
        """Run a command in the local shell.

    Usage: sh COMMAND [ARGS ...]   or   !COMMAND [ARGS ...]

    Examples:
        !ls -l
        sh make report.pdf"""
        if not args:
            print("Usage: sh COMMAND [ARGS ...]")
            return
        self._run_local(_shell_join(args), shell=True)

    def _run_local(self, command, shell=False):
        try:
            rc = subprocess.call(command, shell=shell)
        except OSError as e:
            print(self.cw.error("Couldn't run command: {}".format(e)))
            return
        if rc != 0:
            print(self.cw.warning("Exit status {}".format(rc)))

    # -- Help --------------------------------------------------------------

    def do_help(self, args):
        """Show help for commands.

    Usage: help [-s] [COMMAND ...]

    Without COMMAND, lists all commands with a one-line summary.
    -s shows only the usage and summary instead of the full text.
    Aliases are accepted (e.g. "help rm")."""
        terse = False
        if args and args[0] == "-s":
            terse = True
            args = args[1:]

        if not args:
            print(self.cw.heading("Commands:"))
            for name in sorted(COMMANDS):
                entry = self.help_index.lookup(name)
                summary = entry.summary if entry is not None else "no help"
                line = "  {:<10} {}".format(name, summary)
                aliases = aliases_of(name)
                if aliases:
                    line += self.cw.dim(" ({})".format(", ".join(aliases)))
                print(line)
            print('Type "help COMMAND" for details.')
            return

        for word in args:
            name = resolve(word)
            entry = self.help_index.lookup(name) if name else None
            if entry is None:
                print("No help for {}".format(word))
                continue
            if terse:
                print("{} -- {}".format(entry.title, entry.summary))
                continue
            print(entry.body)
            aliases = aliases_of(entry.name)
            if aliases:
                print("\nAliases: {}".format(", ".join(aliases)))

    # -- Session control ---------------------------------------------------

    def do_quit(self, args):
        """End the session.

    Usage: quit

    You can also press Ctrl-D."""
        return True
