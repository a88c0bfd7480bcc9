"""Shared fixtures and helpers for davsh tests.

No network is used.  FakeDAVServer stands in for a requests.Session: it
answers the WebDAV methods the client sends from an in-memory tree and
hands back real requests.Response objects, so DAVClient and
AuthenticatingTransport run unmodified on top of it.

Usage:
    pytest tests/ -v
"""

import http.client
import itertools
import os
import sys
import xml.etree.ElementTree as ElementTree
from urllib.parse import quote, unquote, urlsplit

import pytest
import requests
from requests.auth import HTTPBasicAuth
from requests.structures import CaseInsensitiveDict

# Add the client library to the path so tests can import davsh
_client_dir = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
    "client",
)
if _client_dir not in sys.path:
    sys.path.insert(0, _client_dir)

from davsh import AuthenticatingTransport, DAVClient  # noqa: E402
from davsh.shell import DavShell  # noqa: E402

BASE_URL = "http://dav.example.com/dav/"

_D = "{DAV:}"


# ---------------------------------------------------------------------------
# Response helpers
# ---------------------------------------------------------------------------

def make_response(status, body=b"", headers=None, url=""):
    """Build a fully-read requests.Response."""
    response = requests.Response()
    response.status_code = status
    response.reason = http.client.responses.get(status, "")
    response._content = body
    response._content_consumed = True
    response.headers = CaseInsensitiveDict(headers or {})
    response.url = url
    return response


def _key(url):
    """Unquoted path without trailing slash ("/" for the root)."""
    return unquote(urlsplit(url).path).rstrip("/") or "/"


def _parent(key):
    return key.rsplit("/", 1)[0] or "/"


def _sub(parent, tag, text=None):
    el = ElementTree.SubElement(parent, _D + tag)
    if text is not None:
        el.text = text
    return el


# ---------------------------------------------------------------------------
# Fake server
# ---------------------------------------------------------------------------

class FakeDAVServer:
    """In-memory WebDAV server with a requests.Session interface.

    files        {path: bytes}
    collections  set of collection paths ("/" and "/dav" by default)
    locks        {path: dict(token, owner, timeout, depth)}
    requests     list of (method, url, headers) for every call received

    When realm is set, every request must carry HTTPBasicAuth matching
    users, otherwise a 401 Basic challenge is returned.
    """

    def __init__(self, realm=None, users=None):
        self.files = {}
        self.collections = {"/", "/dav"}
        self.props = {}
        self.locks = {}
        self.realm = realm
        self.users = users or {}
        self.requests = []
        self._tokens = itertools.count(1)

    # -- requests.Session interface ----------------------------------------

    def request(self, method, url, auth=None, headers=None, data=None,
                stream=False, **kwargs):
        headers = CaseInsensitiveDict(headers or {})
        self.requests.append((method, url, headers))
        if hasattr(data, "read"):
            data = data.read()
        if self.realm is not None and not self._authorized(auth):
            return make_response(
                401, headers={"WWW-Authenticate":
                              'Basic realm="{}"'.format(self.realm)},
                url=url)
        handler = getattr(self, "_do_" + method.lower(), None)
        if handler is None:
            return make_response(405, url=url)
        return handler(url, headers, data or b"")

    def close(self):
        pass

    def methods(self):
        """Methods received, in order."""
        return [m for m, _u, _h in self.requests]

    # -- Tree helpers --------------------------------------------------------

    def add_file(self, path, content):
        self.files[path] = content

    def add_collection(self, path):
        self.collections.add(path.rstrip("/") or "/")

    def _authorized(self, auth):
        return (isinstance(auth, HTTPBasicAuth)
                and self.users.get(auth.username) == auth.password)

    def _exists(self, key):
        return key in self.files or key in self.collections

    def _locked_against(self, key, headers):
        """True if key (or a depth-infinity ancestor) is locked and the
        request doesn't carry the token."""
        sent = headers.get("If", "") + headers.get("Lock-Token", "")
        probe = key
        while True:
            lock = self.locks.get(probe)
            if lock is not None and (probe == key
                                     or lock["depth"] == "infinity"):
                if lock["token"] not in sent:
                    return True
            if probe == "/":
                return False
            probe = _parent(probe)

    def _lock_conflict(self, key):
        """True if key or a depth-infinity ancestor is already locked.
        Exclusive locks conflict whatever tokens the request carries."""
        if key in self.locks:
            return True
        probe = key
        while probe != "/":
            probe = _parent(probe)
            lock = self.locks.get(probe)
            if lock is not None and lock["depth"] == "infinity":
                return True
        return False

    def _members(self, key):
        prefix = key.rstrip("/") + "/"
        for path in sorted(self.collections | set(self.files)):
            if path != key and path.startswith(prefix) \
                    and "/" not in path[len(prefix):]:
                yield path

    def _href(self, key):
        href = quote(key)
        if key in self.collections and key != "/":
            href += "/"
        return href

    def _activelock(self, parent, key, lock):
        active = _sub(parent, "activelock")
        _sub(_sub(active, "locktype"), "write")
        _sub(_sub(active, "lockscope"), "exclusive")
        _sub(active, "depth", lock["depth"])
        _sub(active, "owner", lock["owner"])
        _sub(active, "timeout", lock["timeout"])
        _sub(_sub(active, "locktoken"), "href", lock["token"])
        _sub(_sub(active, "lockroot"), "href", self._href(key))

    def _response_for(self, root, key):
        response = _sub(root, "response")
        _sub(response, "href", self._href(key))
        propstat = _sub(response, "propstat")
        prop = _sub(propstat, "prop")
        rtype = _sub(prop, "resourcetype")
        if key in self.collections:
            _sub(rtype, "collection")
        else:
            _sub(prop, "getcontentlength", str(len(self.files[key])))
            _sub(prop, "getcontenttype", "text/plain")
        _sub(prop, "getlastmodified", "Mon, 05 Oct 2026 14:30:00 GMT")
        for tag, value in self.props.get(key, {}).items():
            ElementTree.SubElement(prop, tag).text = value
        discovery = _sub(prop, "lockdiscovery")
        if key in self.locks:
            self._activelock(discovery, key, self.locks[key])
        _sub(propstat, "status", "HTTP/1.1 200 OK")

    # -- Methods -------------------------------------------------------------

    def _do_propfind(self, url, headers, data):
        key = _key(url)
        if not self._exists(key):
            return make_response(404, url=url)
        root = ElementTree.Element(_D + "multistatus")
        self._response_for(root, key)
        if headers.get("Depth", "1") != "0" and key in self.collections:
            for member in self._members(key):
                self._response_for(root, member)
        return make_response(207, ElementTree.tostring(root), url=url)

    def _do_get(self, url, headers, data):
        key = _key(url)
        if key in self.collections:
            return make_response(200, b"<html></html>", url=url)
        if key not in self.files:
            return make_response(404, url=url)
        content = self.files[key]
        return make_response(200, content,
                             {"Content-Length": str(len(content))}, url=url)

    def _do_put(self, url, headers, data):
        key = _key(url)
        if _parent(key) not in self.collections:
            return make_response(409, url=url)
        if key in self.collections:
            return make_response(405, url=url)
        if self._locked_against(key, headers):
            return make_response(423, url=url)
        existed = key in self.files
        self.files[key] = data
        return make_response(204 if existed else 201, url=url)

    def _do_delete(self, url, headers, data):
        key = _key(url)
        if not self._exists(key):
            return make_response(404, url=url)
        if self._locked_against(key, headers):
            return make_response(423, url=url)
        prefix = key + "/"
        self.files = {p: c for p, c in self.files.items()
                      if p != key and not p.startswith(prefix)}
        self.collections = {p for p in self.collections
                            if p != key and not p.startswith(prefix)}
        self.locks.pop(key, None)
        return make_response(204, url=url)

    def _do_mkcol(self, url, headers, data):
        key = _key(url)
        if self._exists(key):
            return make_response(405, url=url)
        if _parent(key) not in self.collections:
            return make_response(409, url=url)
        self.collections.add(key)
        return make_response(201, url=url)

    def _do_copy(self, url, headers, data, move=False):
        src = _key(url)
        dst = _key(headers["Destination"])
        if not self._exists(src):
            return make_response(404, url=url)
        if _parent(dst) not in self.collections:
            return make_response(409, url=url)
        existed = self._exists(dst)
        if existed and headers.get("Overwrite", "T") == "F":
            return make_response(412, url=url)
        if move and self._locked_against(src, headers):
            return make_response(423, url=url)
        if src in self.collections:
            self.collections.add(dst)
        else:
            self.files[dst] = self.files[src]
        if move:
            self.files.pop(src, None)
            self.collections.discard(src)
        return make_response(204 if existed else 201, url=url)

    def _do_move(self, url, headers, data):
        return self._do_copy(url, headers, data, move=True)

    def _do_lock(self, url, headers, data):
        key = _key(url)
        if self._lock_conflict(key):
            return make_response(423, url=url)
        info = ElementTree.fromstring(data)
        token = "opaquelocktoken:fake-{}".format(next(self._tokens))
        lock = {
            "token": token,
            "owner": info.findtext(_D + "owner") or "",
            "timeout": headers.get("Timeout", "Infinite"),
            "depth": headers.get("Depth", "infinity"),
        }
        self.locks[key] = lock
        created = not self._exists(key)
        if created:
            self.files[key] = b""
        root = ElementTree.Element(_D + "prop")
        self._activelock(_sub(root, "lockdiscovery"), key, lock)
        return make_response(201 if created else 200,
                             ElementTree.tostring(root),
                             {"Lock-Token": "<{}>".format(token)}, url=url)

    def _do_unlock(self, url, headers, data):
        key = _key(url)
        lock = self.locks.get(key)
        token = headers.get("Lock-Token", "").strip("<>")
        if lock is None or lock["token"] != token:
            return make_response(409, url=url)
        del self.locks[key]
        return make_response(204, url=url)

    def _do_options(self, url, headers, data):
        return make_response(200, headers={
            "Allow": "OPTIONS, GET, PUT, DELETE, PROPFIND, PROPPATCH, "
                     "MKCOL, COPY, MOVE, LOCK, UNLOCK",
            "DAV": "1, 2",
        }, url=url)

    def _do_proppatch(self, url, headers, data):
        key = _key(url)
        if not self._exists(key):
            return make_response(404, url=url)
        if self._locked_against(key, headers):
            return make_response(423, url=url)
        update = ElementTree.fromstring(data)
        props = self.props.setdefault(key, {})
        for action in update:
            for prop in action.iter(_D + "prop"):
                for child in prop:
                    if action.tag == _D + "set":
                        props[child.tag] = child.text or ""
                    else:
                        props.pop(child.tag, None)
        root = ElementTree.Element(_D + "multistatus")
        response = _sub(root, "response")
        _sub(response, "href", self._href(key))
        propstat = _sub(response, "propstat")
        _sub(propstat, "prop")
        _sub(propstat, "status", "HTTP/1.1 200 OK")
        return make_response(207, ElementTree.tostring(root), url=url)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def server():
    """An empty FakeDAVServer with /dav/ as its only collection."""
    return FakeDAVServer()


@pytest.fixture
def client(server):
    """DAVClient talking to the fake server, never prompting."""
    transport = AuthenticatingTransport(session=server, interactive=False)
    return DAVClient(transport, owner="tester")


@pytest.fixture
def shell(client):
    """DavShell on the fake server with /dav/ already open."""
    sh = DavShell(client=client, color=False)
    sh.do_open([BASE_URL])
    return sh

