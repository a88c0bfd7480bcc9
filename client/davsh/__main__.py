"""CLI entry point for davsh.

Usage::

    davsh http://localhost/dav/
    davsh -u alice https://example.com/remote.php/webdav/
    davsh --man
"""

import argparse
import configparser
import logging
import os
import sys

from . import __version__


def _default_config_path():
    """$DAVSH_CONFIG, or ~/.davsh.conf."""
    return (os.environ.get("DAVSH_CONFIG")
            or os.path.expanduser("~/.davsh.conf"))


def _load_config(path, explicit):
    """Load settings from a config file.

    Args:
        path: File path to read.
        explicit: True if the user passed --config (errors are fatal).

    Returns a dict with keys 'url', 'username', 'editor', 'tmpdir' (any
    may be None), or {} when there is no usable file.
    """
    if not os.path.exists(path):
        if explicit:
            print("Error: config file not found: {}".format(path),
                  file=sys.stderr)
            sys.exit(1)
        return {}

    config = configparser.ConfigParser()
    try:
        config.read(path)
    except configparser.Error as e:
        if explicit:
            print("Error: failed to parse config file: {}".format(e),
                  file=sys.stderr)
            sys.exit(1)
        print("Warning: failed to parse config file: {}".format(e),
              file=sys.stderr)
        return {}

    def value(section, option):
        text = config.get(section, option, fallback=None)
        if text is not None:
            text = text.strip() or None
        return text

    return {
        "url": value("connection", "url"),
        "username": value("connection", "username"),
        "editor": value("editor", "command"),
        "tmpdir": value("transfer", "tmpdir"),
    }


def _configure_logging(level):
    """Map -d LEVEL onto the logging module (0 = warnings only)."""
    if level >= 2:
        log_level = logging.DEBUG
    elif level == 1:
        log_level = logging.INFO
    else:
        log_level = logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )


def main(argv=None):
    """Parse arguments and run the interactive shell."""
    parser = argparse.ArgumentParser(
        prog="davsh",
        description="Interactive WebDAV shell",
    )
    parser.add_argument(
        "url", nargs="?", default=None,
        help="Collection to open at start-up (default: $DAVSH_URL or "
             "the config file)",
    )
    parser.add_argument("-u", "--username", default=None,
                        help="Username to offer when the server asks")
    parser.add_argument("-p", "--password", default=None,
                        help="Password to try once per realm before "
                             "prompting")
    parser.add_argument("-d", "--debug", type=int, default=0,
                        metavar="LEVEL",
                        help="Diagnostic level: 1 = info, 2 = debug")
    parser.add_argument("-t", "--tmpdir", default=None, metavar="DIR",
                        help="Directory for the scratch files of 'edit'")
    parser.add_argument(
        "--config", default=None, metavar="PATH",
        help="Path to config file (default: $DAVSH_CONFIG or "
             "~/.davsh.conf)",
    )
    parser.add_argument("-m", "--man", action="store_true",
                        help="Print the full command reference and exit")
    parser.add_argument("--version", action="version",
                        version="davsh {}".format(__version__))
    args = parser.parse_args(argv)

    _configure_logging(args.debug)

    if args.config is not None:
        conf = _load_config(args.config, explicit=True)
    else:
        conf = _load_config(_default_config_path(), explicit=False)

    # Command line > environment > config file > default
    url = args.url or os.environ.get("DAVSH_URL") or conf.get("url")
    username = args.username or conf.get("username")
    tmpdir = args.tmpdir or conf.get("tmpdir")
    if tmpdir is not None and not os.path.isdir(tmpdir):
        print("Error: not a directory: {}".format(tmpdir), file=sys.stderr)
        sys.exit(1)

    from .shell import DavShell
    sh = DavShell(url, username=username, password=args.password,
                  editor=conf.get("editor"), tmpdir=tmpdir)

    if args.man:
        print(sh.help_index.render_manual())
        return

    try:
        sh.cmdloop()
    except KeyboardInterrupt:
        print()


if __name__ == "__main__":
    main()
