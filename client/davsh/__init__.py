"""davsh -- interactive WebDAV shell and the client it drives.

Provides DAVClient for issuing WebDAV requests through an
AuthenticatingTransport, plus an exception hierarchy mapping HTTP error
statuses to Python exceptions.

Usage::

    client = DAVClient(AuthenticatingTransport(username="alice"))
    top, children = client.listdir("http://localhost/dav/")
    for res in children:
        print(res.name, res.size)
"""

import logging
import os
import posixpath
from typing import Dict, List, Optional, Tuple, Type
from urllib.parse import unquote, urlsplit

import requests

from .auth import AuthenticatingTransport, CredentialCache
from .progress import FAILURE, PROGRESS, SUCCESS
from .protocol import (
    DAV_NS, XML_CONTENT_TYPE, ProtocolError, dav, format_timeout,
    lock_body, parse_active_locks, parse_lock_response, parse_multistatus,
    propfind_body, proppatch_body, propstat_failures, short_name,
)


__version__ = "0.3.0"

__all__ = [
    "AuthenticatingTransport",
    "AuthenticationError",
    "ConflictError",
    "CredentialCache",
    "DAVClient",
    "DavError",
    "InsufficientStorageError",
    "Lock",
    "LockedError",
    "MethodNotAllowedError",
    "NotFoundError",
    "PermissionDeniedError",
    "PreconditionFailedError",
    "ProtocolError",
    "Resource",
]

log = logging.getLogger(__name__)

CHUNK_SIZE = 8192


# ---------------------------------------------------------------------------
# Exception hierarchy
# ---------------------------------------------------------------------------

class DavError(Exception):
    """Base exception for failed WebDAV requests.

    Attributes:
        status: HTTP status code of the failing response (0 when the
            failure was detected on this side).
        message: Human-readable description, including the URL.
    """

    def __init__(self, status: int, message: str) -> None:
        self.status = status
        self.message = message
        super().__init__("{} {}".format(status, message))


class AuthenticationError(DavError):
    """401 -- no usable credentials for the resource."""

    def __init__(self, message: str) -> None:
        super().__init__(401, message)


class PermissionDeniedError(DavError):
    """403 -- the server refuses the operation."""

    def __init__(self, message: str) -> None:
        super().__init__(403, message)


class NotFoundError(DavError):
    """404 -- resource does not exist."""

    def __init__(self, message: str) -> None:
        super().__init__(404, message)


class MethodNotAllowedError(DavError):
    """405 -- e.g. MKCOL on an existing resource."""

    def __init__(self, message: str) -> None:
        super().__init__(405, message)


class ConflictError(DavError):
    """409 -- a parent collection is missing."""

    def __init__(self, message: str) -> None:
        super().__init__(409, message)


class PreconditionFailedError(DavError):
    """412 -- Overwrite or If header precondition not met."""

    def __init__(self, message: str) -> None:
        super().__init__(412, message)


class LockedError(DavError):
    """423 -- the resource is locked by someone else."""

    def __init__(self, message: str) -> None:
        super().__init__(423, message)


class InsufficientStorageError(DavError):
    """507 -- no room on the server."""

    def __init__(self, message: str) -> None:
        super().__init__(507, message)


# Map status codes to exception classes.  Unknown codes fall back to
# the base DavError.
_ERROR_MAP = {
    401: AuthenticationError,
    403: PermissionDeniedError,
    404: NotFoundError,
    405: MethodNotAllowedError,
    409: ConflictError,
    412: PreconditionFailedError,
    423: LockedError,
    507: InsufficientStorageError,
}  # type: Dict[int, Type[DavError]]


def _raise_for_status(response: requests.Response, url: str) -> None:
    """Raise the DavError subclass matching an unwanted response."""
    status = response.status_code
    reason = response.reason or "HTTP error"
    message = "{}: {}".format(reason, url)
    exc_class = _ERROR_MAP.get(status)
    if exc_class is not None:
        raise exc_class(message)
    raise DavError(status, message)


def describe_error(exc: Exception) -> str:
    """One-line description of a client-side or transport failure."""
    return getattr(exc, "message", None) or str(exc)


# ---------------------------------------------------------------------------
# Resources and locks
# ---------------------------------------------------------------------------

def _same_resource(a: str, b: str) -> bool:
    pa = unquote(urlsplit(a).path).rstrip("/")
    pb = unquote(urlsplit(b).path).rstrip("/")
    return pa == pb


def _lock_key(url: str) -> str:
    return url.rstrip("/") or url


class Lock:
    """A write lock on a remote resource."""

    def __init__(self, url, token, owner="", timeout="", depth="",
                 scope="exclusive"):
        self.url = url
        self.token = token
        self.owner = owner
        self.timeout = timeout
        self.depth = depth
        self.scope = scope

    def __repr__(self):
        return "Lock({!r}, {!r}, timeout={!r}, depth={!r})".format(
            self.url, self.token, self.timeout, self.depth)


class Resource:
    """A remote resource and the properties PROPFIND reported for it."""

    def __init__(self, url, is_collection=False, size=None, modified="",
                 content_type="", etag="", displayname="", locks=None,
                 properties=None):
        self.url = url
        self.is_collection = is_collection
        self.size = size
        self.modified = modified
        self.content_type = content_type
        self.etag = etag
        self.displayname = displayname
        self.locks = locks or []  # type: List[Lock]
        self.properties = properties or {}  # type: Dict[str, str]

    @property
    def name(self):
        """Last path segment, unquoted ("" for the server root)."""
        path = urlsplit(self.url).path.rstrip("/")
        return unquote(posixpath.basename(path))

    @classmethod
    def from_props(cls, url, props):
        """Build a Resource from a PROPFIND (url, props) pair."""
        rtype = props.get(dav("resourcetype"))
        is_collection = (rtype is not None
                         and rtype.find(dav("collection")) is not None)

        size = None
        length = props.get(dav("getcontentlength"))
        if length is not None and (length.text or "").strip():
            try:
                size = int(length.text.strip())
            except ValueError:
                size = None

        locks = []
        discovery = props.get(dav("lockdiscovery"))
        if discovery is not None:
            for info in parse_active_locks(discovery):
                locks.append(Lock(url, info["token"], owner=info["owner"],
                                  timeout=info["timeout"],
                                  depth=info["depth"], scope=info["scope"]))

        def text(name):
            el = props.get(dav(name))
            if el is None:
                return ""
            return (el.text or "").strip()

        properties = {}
        for tag, el in props.items():
            if tag == dav("resourcetype"):
                value = " ".join(short_name(c.tag) for c in el)
            elif tag == dav("lockdiscovery"):
                value = "{} lock(s)".format(len(locks))
            else:
                value = " ".join("".join(el.itertext()).split())
            properties[tag] = value

        return cls(url, is_collection=is_collection, size=size,
                   modified=text("getlastmodified"),
                   content_type=text("getcontenttype"),
                   etag=text("getetag"),
                   displayname=text("displayname"),
                   locks=locks, properties=properties)

    def __repr__(self):
        kind = "collection" if self.is_collection else "file"
        return "Resource({!r}, {})".format(self.url, kind)


class _ProgressReader:
    """Read-only file wrapper that reports upload progress.

    requests sends objects with read() as the request body and takes the
    Content-Length from __len__.  Rewinding (for a re-sent request) does
    not repeat progress calls already made.
    """

    def __init__(self, fileobj, length, url, callback):
        self._f = fileobj
        self.length = length
        self._url = url
        self._callback = callback
        self._sent = 0
        self._reported = 0

    def __len__(self):
        return self.length

    def read(self, size=-1):
        data = self._f.read(size)
        if data:
            self._sent += len(data)
            if self._callback is not None and self._sent > self._reported:
                self._reported = self._sent
                self._callback(PROGRESS, "", self._url, self._sent,
                               self.length, data)
        return data

    def tell(self):
        return self._f.tell()

    def seek(self, offset, whence=os.SEEK_SET):
        pos = self._f.seek(offset, whence)
        self._sent = self._f.tell()
        return pos


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class DAVClient:
    """WebDAV client bound to an AuthenticatingTransport.

    All URLs are absolute.  Failures raise DavError subclasses (or
    ProtocolError for unreadable responses, requests.RequestException for
    network trouble).  Locks taken through this client are remembered in
    ``locks`` and their tokens are sent automatically with requests that
    modify the locked resources.
    """

    def __init__(self, transport=None, owner=None, chunk_size=CHUNK_SIZE):
        self.transport = (transport if transport is not None
                          else AuthenticatingTransport())
        self.owner = owner or "davsh"
        self.chunk_size = chunk_size
        self.locks = {}  # type: Dict[str, Lock]

    def __repr__(self):
        return "DAVClient(owner={!r}, {} lock(s))".format(
            self.owner, len(self.locks))

    # -- Internal helpers --------------------------------------------------

    def _request(self, method, url, ok=(200,), **kwargs):
        log.debug("%s %s", method, url)
        response = self.transport.request(method, url, **kwargs)
        log.debug("%s %s -> %s", method, url, response.status_code)
        if response.status_code not in ok:
            response.close()
            _raise_for_status(response, url)
        return response

    def _if_header(self, *urls):
        """Build an If header carrying the tokens of held locks that
        cover any of urls."""
        tokens = []
        for url in urls:
            for lock in self.covering_locks(url):
                if lock.token not in tokens:
                    tokens.append(lock.token)
        if not tokens:
            return {}
        return {"If": " ".join("(<{}>)".format(t) for t in tokens)}

    def _forget_locks(self, url):
        key = _lock_key(url)
        for held_key in list(self.locks):
            if held_key == key or held_key.startswith(key + "/"):
                del self.locks[held_key]

    # -- Properties --------------------------------------------------------

    def propfind(self, url, depth=1, props=None):
        # type: (str, int, Optional[List[str]]) -> List[Resource]
        """PROPFIND url; return a Resource per multistatus response."""
        response = self._request(
            "PROPFIND", url, ok=(207,),
            headers={"Depth": str(depth), "Content-Type": XML_CONTENT_TYPE},
            data=propfind_body(props))
        return [Resource.from_props(u, p)
                for u, _status, p in parse_multistatus(response.content, url)]

    def stat(self, url):
        # type: (str) -> Resource
        """Return the Resource for url alone (Depth 0)."""
        results = self.propfind(url, depth=0)
        if not results:
            raise ProtocolError("PROPFIND returned no entries for {}".format(
                url))
        for res in results:
            if _same_resource(res.url, url):
                return res
        return results[0]

    def listdir(self, url):
        # type: (str) -> Tuple[Resource, List[Resource]]
        """Return (resource, children) for url (Depth 1)."""
        results = self.propfind(url, depth=1)
        this = None
        children = []
        for res in results:
            if this is None and _same_resource(res.url, url):
                this = res
            else:
                children.append(res)
        if this is None:
            raise ProtocolError("PROPFIND did not describe {}".format(url))
        return this, children

    def set_prop(self, url, name, value, namespace=DAV_NS):
        """PROPPATCH: set one property."""
        self._proppatch(url, proppatch_body(name, value, namespace))

    def unset_prop(self, url, name, namespace=DAV_NS):
        """PROPPATCH: remove one property."""
        self._proppatch(url, proppatch_body(name, namespace=namespace,
                                            remove=True))

    def _proppatch(self, url, body):
        headers = {"Content-Type": XML_CONTENT_TYPE}
        headers.update(self._if_header(url))
        response = self._request("PROPPATCH", url, ok=(200, 204, 207),
                                 headers=headers, data=body)
        if response.status_code != 207:
            return
        failures = propstat_failures(response.content)
        if failures:
            name, status = failures[0]
            exc_class = _ERROR_MAP.get(status, None)
            message = "Can't change {} on {}".format(short_name(name), url)
            if exc_class is not None:
                raise exc_class(message)
            raise DavError(status, message)

    def options(self, url):
        # type: (str) -> Dict[str, List[str]]
        """OPTIONS url; return {"allow": [...], "dav": [...]}."""
        response = self._request("OPTIONS", url, ok=(200, 204))

        def split(header):
            value = response.headers.get(header, "")
            return [v.strip() for v in value.split(",") if v.strip()]

        return {"allow": split("Allow"), "dav": split("DAV")}

    # -- Transfers ---------------------------------------------------------

    def get(self, url, to, callback=None, chunk_size=None):
        """Download url.

        to is a local path, a binary file object, or None to deliver the
        data only through callback.  Returns the number of bytes read.
        callback, if given, gets PROGRESS calls per chunk and a closing
        SUCCESS or FAILURE call; failures are re-raised afterwards.
        """
        so_far = 0
        length = None
        try:
            response = self._request("GET", url, stream=True)
            try:
                length = _content_length(response)
                if to is None or hasattr(to, "write"):
                    so_far = self._copy_body(response, to, url, length,
                                             callback, chunk_size)
                else:
                    with open(to, "wb") as f:
                        so_far = self._copy_body(response, f, url, length,
                                                 callback, chunk_size)
            finally:
                response.close()
        except (DavError, ProtocolError, OSError) as e:
            if callback is not None:
                callback(FAILURE, describe_error(e), url, so_far, length, b"")
            raise
        if callback is not None:
            callback(SUCCESS, "Downloaded {} bytes from {}".format(
                so_far, url), url, so_far, length, b"")
        return so_far

    def _copy_body(self, response, out, url, length, callback, chunk_size):
        so_far = 0
        for chunk in response.iter_content(
                chunk_size=chunk_size or self.chunk_size):
            if not chunk:
                continue
            if out is not None:
                out.write(chunk)
            so_far += len(chunk)
            if callback is not None:
                callback(PROGRESS, "", url, so_far, length, chunk)
        return so_far

    def put(self, local, url, callback=None):
        """Upload the local file at path local to url.

        Returns the number of bytes sent.  callback works as for get().
        """
        size = 0
        try:
            size = os.path.getsize(local)
            with open(local, "rb") as f:
                body = _ProgressReader(f, size, url, callback)
                self._request("PUT", url, ok=(200, 201, 204), data=body,
                              headers=self._if_header(url))
        except (DavError, ProtocolError, OSError) as e:
            if callback is not None:
                callback(FAILURE, describe_error(e), url, 0, size, b"")
            raise
        if callback is not None:
            callback(SUCCESS, "Uploaded {} bytes to {}".format(size, url),
                     url, size, size, b"")
        return size

    # -- Namespace operations ----------------------------------------------

    def delete(self, url, callback=None):
        """DELETE url (recursively for collections).

        Returns the list of member URLs the server could not delete.
        Each of those is reported to callback as a FAILURE, followed by
        one closing call for url itself.
        """
        try:
            response = self._request("DELETE", url, ok=(200, 204, 207),
                                     headers=self._if_header(url))
            failed = []
            if response.status_code == 207:
                for member, status, _props in parse_multistatus(
                        response.content, url):
                    if status is not None and status >= 400:
                        failed.append(member)
                        if callback is not None:
                            callback(FAILURE, "Couldn't delete {} ({})".format(
                                member, status), member, 0, None, b"")
        except (DavError, ProtocolError, OSError) as e:
            if callback is not None:
                callback(FAILURE, describe_error(e), url, 0, None, b"")
            raise
        if failed:
            if callback is not None:
                callback(FAILURE, "Deleted {} partially".format(url), url,
                         0, None, b"")
        else:
            self._forget_locks(url)
            if callback is not None:
                callback(SUCCESS, "Deleted {}".format(url), url, 0, None, b"")
        return failed

    def mkcol(self, url):
        """Create a collection."""
        self._request("MKCOL", url, ok=(201,), headers=self._if_header(url))

    def copy(self, src, dst, overwrite=True, depth="infinity"):
        """COPY src to dst."""
        headers = {
            "Destination": dst,
            "Overwrite": "T" if overwrite else "F",
            "Depth": depth,
        }
        headers.update(self._if_header(dst))
        self._request("COPY", src, ok=(201, 204), headers=headers)

    def move(self, src, dst, overwrite=True):
        """MOVE src to dst; locks held on src are dropped."""
        headers = {
            "Destination": dst,
            "Overwrite": "T" if overwrite else "F",
        }
        headers.update(self._if_header(src, dst))
        self._request("MOVE", src, ok=(201, 204), headers=headers)
        self._forget_locks(src)

    # -- Locking -----------------------------------------------------------

    def lock(self, url, timeout=None, depth="infinity", scope="exclusive",
             owner=None):
        # type: (str, Optional[int], str, str, Optional[str]) -> Lock
        """Take a write lock on url.

        timeout is in seconds, None for infinite.  Raises LockedError when
        someone else holds a conflicting lock.
        """
        headers = {
            "Timeout": format_timeout(timeout),
            "Depth": str(depth),
            "Content-Type": XML_CONTENT_TYPE,
        }
        response = self._request("LOCK", url, ok=(200, 201), headers=headers,
                                 data=lock_body(owner or self.owner, scope))
        token = response.headers.get("Lock-Token", "").strip().strip("<>")
        info = {}
        for candidate in parse_lock_response(response.content):
            if not token or candidate["token"] == token:
                info = candidate
                break
        token = token or info.get("token", "")
        if not token:
            raise ProtocolError("LOCK response for {} has no lock token"
                                .format(url))
        lock = Lock(url, token,
                    owner=info.get("owner") or owner or self.owner,
                    timeout=info.get("timeout") or format_timeout(timeout),
                    depth=info.get("depth") or str(depth),
                    scope=info.get("scope") or scope)
        self.locks[_lock_key(url)] = lock
        log.debug("locked %s with %s", url, token)
        return lock

    def holds_lock(self, url):
        # type: (str) -> bool
        return _lock_key(url) in self.locks

    def covering_locks(self, url):
        """Held locks on url itself or on a depth-infinity ancestor."""
        key = _lock_key(url)
        return [lock for held_key, lock in sorted(self.locks.items())
                if held_key == key
                or (lock.depth.lower() == "infinity"
                    and key.startswith(held_key + "/"))]

    def covered_by_lock(self, url):
        # type: (str) -> bool
        return bool(self.covering_locks(url))

    def held_locks(self):
        # type: () -> List[Lock]
        return [self.locks[k] for k in sorted(self.locks)]

    def unlock(self, url, token=None):
        """Release a lock on url (the one held by this client by default)."""
        if token is None:
            held = self.locks.get(_lock_key(url))
            if held is None:
                raise DavError(0, "No lock held on {}".format(url))
            token = held.token
        self._request("UNLOCK", url, ok=(200, 204),
                      headers={"Lock-Token": "<{}>".format(token)})
        held = self.locks.get(_lock_key(url))
        if held is not None and held.token == token:
            del self.locks[_lock_key(url)]

    def discover_locks(self, url):
        # type: (str) -> List[Lock]
        """Return every active lock the server reports on url."""
        res = self.propfind(url, depth=0, props=["lockdiscovery"])
        for r in res:
            if _same_resource(r.url, url):
                return r.locks
        return res[0].locks if res else []

    def steal(self, url):
        # type: (str) -> int
        """Remove every lock on url, whoever owns it.  Returns the count."""
        count = 0
        for lock in self.discover_locks(url):
            if not lock.token:
                continue
            self.unlock(url, token=lock.token)
            count += 1
        self._forget_locks(url)
        return count


def _content_length(response):
    value = response.headers.get("Content-Length")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None
