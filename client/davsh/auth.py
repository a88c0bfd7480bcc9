"""Authenticating HTTP transport for the davsh client.

AuthenticatingTransport wraps a requests.Session so that 401 challenges
are answered without the caller noticing.  Credentials are asked for
once per (realm, host:port), held as pending until a response confirms
them, and reused silently from then on.  A realm that keeps rejecting
what the user types stops being prompted for after MAX_FAILURES
attempts, so a bad password can't trap the shell in a login loop.
"""

import getpass
import logging
import re
import sys
from collections import namedtuple
from typing import Dict, Optional, Set, Tuple
from urllib.parse import urlsplit

import requests
from requests.auth import HTTPBasicAuth, HTTPDigestAuth

log = logging.getLogger(__name__)

MAX_FAILURES = 3

Credentials = namedtuple("Credentials", "username password scheme")

_SCHEME_RE = re.compile(r"(?:^|,)\s*(Basic|Digest)\b", re.IGNORECASE)
_REALM_RE = re.compile(r'realm\s*=\s*(?:"((?:[^"\\]|\\.)*)"|([^\s,]+))',
                       re.IGNORECASE)


def parse_challenge(header):
    # type: (Optional[str]) -> Optional[Tuple[str, str]]
    """Parse a WWW-Authenticate header into (scheme, realm).

    scheme is "basic" or "digest"; Digest wins when the server offers
    both.  realm is "" when the challenge names none.  Returns None when
    the header is missing or offers no supported scheme.
    """
    if not header:
        return None
    matches = list(_SCHEME_RE.finditer(header))
    if not matches:
        return None
    chosen = matches[0]
    for m in matches:
        if m.group(1).lower() == "digest":
            chosen = m
            break
    realm = ""
    rm = _REALM_RE.search(header, chosen.end())
    if rm is not None:
        realm = rm.group(1) if rm.group(1) is not None else rm.group(2)
    return chosen.group(1).lower(), realm


def netloc_of(url):
    # type: (str) -> str
    """Return "host:port" for a URL, filling in the scheme's default port."""
    parts = urlsplit(url)
    port = parts.port
    if port is None:
        port = 443 if parts.scheme == "https" else 80
    return "{}:{}".format(parts.hostname or "", port)


class CredentialCache:
    """Credentials entered during this session.

    Entries are keyed by (realm, host:port) and are either pending
    (typed in, not yet accepted by the server) or committed (accepted,
    sent with every later request to that server).  Every challenge is
    counted per key; the count is never reset.
    """

    def __init__(self, max_failures: int = MAX_FAILURES) -> None:
        self.max_failures = max_failures
        self._pending = {}  # type: Dict[Tuple[str, str], Credentials]
        self._committed = {}  # type: Dict[Tuple[str, str], Credentials]
        self._failures = {}  # type: Dict[Tuple[str, str], int]
        self._realms = {}  # type: Dict[str, str]  # netloc -> last realm

    def committed(self, netloc: str) -> Optional[Credentials]:
        """Committed credentials for the realm last accepted at netloc."""
        realm = self._realms.get(netloc)
        if realm is None:
            return None
        return self._committed.get((realm, netloc))

    def lookup(self, realm: str, netloc: str) -> Optional[Credentials]:
        return self._committed.get((realm, netloc))

    def pending(self, realm: str, netloc: str) -> Optional[Credentials]:
        return self._pending.get((realm, netloc))

    def add_pending(self, realm: str, netloc: str,
                    creds: Credentials) -> None:
        self._pending[(realm, netloc)] = creds

    def commit(self, realm: str, netloc: str) -> Optional[Credentials]:
        """Promote the pending entry for (realm, netloc) to committed."""
        creds = self._pending.pop((realm, netloc), None)
        if creds is not None:
            self._committed[(realm, netloc)] = creds
            self._realms[netloc] = realm
        return creds

    def discard(self, realm: str, netloc: str) -> None:
        self._pending.pop((realm, netloc), None)

    def record_challenge(self, realm: str, netloc: str) -> bool:
        """Count a challenge for (realm, netloc).

        Returns False once more than max_failures challenges had already
        been counted for the key, meaning no more credentials should be
        offered for it.
        """
        key = (realm, netloc)
        prior = self._failures.get(key, 0)
        self._failures[key] = prior + 1
        return prior <= self.max_failures

    def failures(self, realm: str, netloc: str) -> int:
        return self._failures.get((realm, netloc), 0)


def prompt_credentials(realm, netloc, default_username=None):
    # type: (str, str, Optional[str]) -> Optional[Tuple[str, str]]
    """Ask the user for a username and password on the terminal.

    The password is read with getpass, which turns terminal echo off for
    the duration of the read and restores it however the read ends.
    Returns None when the username is left empty or input ends.
    """
    print("Authentication required for {!r} at {}".format(realm, netloc))
    if default_username:
        label = "Username [{}]: ".format(default_username)
    else:
        label = "Username: "
    try:
        username = input(label).strip() or (default_username or "")
        if not username:
            return None
        password = getpass.getpass("Password: ")
    except EOFError:
        print()
        return None
    return username, password


def _auth_for(creds):
    if creds is None:
        return None
    if creds.scheme == "digest":
        return HTTPDigestAuth(creds.username, creds.password)
    return HTTPBasicAuth(creds.username, creds.password)


def _same_login(a, b):
    return (b is not None and a.username == b.username
            and a.password == b.password)


def _tell(body):
    try:
        return body.tell()
    except (AttributeError, OSError):
        return None


class AuthenticatingTransport:
    """Send requests, answering authentication challenges on the way.

    Usage::

        transport = AuthenticatingTransport(username="alice")
        response = transport.request("PROPFIND", url, headers={"Depth": "0"})

    session      requests.Session to send through (a new one by default).
    cache        CredentialCache; one per shell session.
    username     Start-up username, offered as the prompt default.
    password     Start-up password; tried once per realm before prompting.
    prompt       Callable (realm, netloc, default_username) returning
                 (username, password) or None.
    interactive  Force prompting on or off; by default prompting happens
                 only when stdin is a terminal.
    """

    def __init__(self, session=None, cache=None, username=None,
                 password=None, prompt=None, interactive=None):
        self.session = session if session is not None else requests.Session()
        self.cache = cache if cache is not None else CredentialCache()
        self.username = username
        self.password = password
        self._prompt = prompt if prompt is not None else prompt_credentials
        self._interactive = interactive
        self._preset_tried = set()  # type: Set[Tuple[str, str]]

    @property
    def interactive(self) -> bool:
        if self._interactive is not None:
            return self._interactive
        return sys.stdin is not None and sys.stdin.isatty()

    def request(self, method: str, url: str,
                **kwargs) -> requests.Response:
        """Send a request; return the final response.

        A 401 comes back to the caller only when no credentials could be
        obtained for the challenge.
        """
        netloc = netloc_of(url)
        creds = self.cache.committed(netloc)
        pending = None
        body = kwargs.get("data")
        start = _tell(body)

        while True:
            response = self.session.request(
                method, url, auth=_auth_for(creds), **kwargs)

            challenge = None
            if response.status_code == 401:
                challenge = parse_challenge(
                    response.headers.get("WWW-Authenticate"))

            if pending is not None:
                if challenge is None:
                    self.cache.commit(*pending)
                    log.debug("credentials for realm %r at %s accepted",
                              pending[0], netloc)
                else:
                    self.cache.discard(*pending)
                pending = None

            if challenge is None:
                return response

            scheme, realm = challenge
            known = self.cache.lookup(realm, netloc)
            if known is not None and not _same_login(known, creds):
                # Accepted earlier for this realm; resend without counting
                creds = known._replace(scheme=scheme)
            else:
                creds = self.get_credentials(realm, netloc, scheme)
                if creds is None:
                    return response

            self.cache.add_pending(realm, netloc, creds)
            pending = (realm, netloc)
            response.close()
            if start is not None:
                body.seek(start)

    def get_credentials(self, realm: str, netloc: str,
                        scheme: str = "basic") -> Optional[Credentials]:
        """Return credentials for a challenge, or None to give up."""
        if not self.cache.record_challenge(realm, netloc):
            log.warning("Too many failed logins for realm %r at %s; "
                        "not asking again", realm, netloc)
            return None

        key = (realm, netloc)
        if (self.username and self.password is not None
                and key not in self._preset_tried):
            self._preset_tried.add(key)
            return Credentials(self.username, self.password, scheme)

        if not self.interactive:
            log.debug("no terminal; not prompting for realm %r", realm)
            return None

        answer = self._prompt(realm, netloc, self.username)
        if answer is None:
            return None
        username, password = answer
        return Credentials(username, password, scheme)
