"""WebDAV wire helpers for the davsh client.

Builds the XML request bodies for PROPFIND, PROPPATCH and LOCK, parses
207 Multi-Status responses, and converts between the shell's timeout
notation and the Timeout header.  All XML bodies are UTF-8.
"""

import re
import xml.etree.ElementTree as ElementTree
from typing import Dict, List, Optional, Tuple
from urllib.parse import urljoin

DAV_NS = "DAV:"
ENCODING = "utf-8"
XML_CONTENT_TYPE = 'application/xml; charset="utf-8"'

ElementTree.register_namespace("D", DAV_NS)


class ProtocolError(Exception):
    """Raised when a server response cannot be parsed (malformed XML,
    missing lock token, unexpected document root)."""


def dav(name: str) -> str:
    """Return the ElementTree tag for an element in the DAV: namespace."""
    return "{%s}%s" % (DAV_NS, name)


def short_name(tag: str) -> str:
    """Strip the namespace from a DAV: tag; keep it for foreign ones.

    "{DAV:}getetag" -> "getetag", "{urn:x}color" -> "{urn:x}color".
    """
    prefix = "{%s}" % DAV_NS
    if tag.startswith(prefix):
        return tag[len(prefix):]
    return tag


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

def propfind_body(props=None):
    # type: (Optional[List[str]]) -> bytes
    """Build a PROPFIND body asking for *props* (DAV: names) or allprop."""
    root = ElementTree.Element(dav("propfind"))
    if props:
        prop = ElementTree.SubElement(root, dav("prop"))
        for name in props:
            ElementTree.SubElement(prop, dav(name))
    else:
        ElementTree.SubElement(root, dav("allprop"))
    return ElementTree.tostring(root, encoding=ENCODING)


def proppatch_body(name, value=None, namespace=DAV_NS, remove=False):
    # type: (str, Optional[str], str, bool) -> bytes
    """Build a PROPPATCH body that sets or removes one property."""
    root = ElementTree.Element(dav("propertyupdate"))
    action = ElementTree.SubElement(root, dav("remove" if remove else "set"))
    prop = ElementTree.SubElement(action, dav("prop"))
    element = ElementTree.SubElement(prop, "{%s}%s" % (namespace, name))
    if not remove:
        element.text = value
    return ElementTree.tostring(root, encoding=ENCODING)


def lock_body(owner, scope="exclusive"):
    # type: (str, str) -> bytes
    """Build a LOCK body requesting a write lock of the given scope."""
    root = ElementTree.Element(dav("lockinfo"))
    lockscope = ElementTree.SubElement(root, dav("lockscope"))
    ElementTree.SubElement(lockscope, dav(scope))
    locktype = ElementTree.SubElement(root, dav("locktype"))
    ElementTree.SubElement(locktype, dav("write"))
    owner_el = ElementTree.SubElement(root, dav("owner"))
    owner_el.text = owner
    return ElementTree.tostring(root, encoding=ENCODING)


# ---------------------------------------------------------------------------
# Timeouts
# ---------------------------------------------------------------------------

_TIMEOUT_RE = re.compile(r"^(\d+)\s*([smhd]?)$", re.IGNORECASE)
_TIMEOUT_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}
_INFINITE_WORDS = ("infinite", "infinity", "inf")


def parse_timeout(text):
    # type: (str) -> Optional[int]
    """Parse a lock timeout such as "10h", "30m", "600" or "infinite".

    Returns the timeout in seconds, or None for an infinite timeout.
    Raises ValueError on anything else.
    """
    text = text.strip().lower()
    if text in _INFINITE_WORDS:
        return None
    m = _TIMEOUT_RE.match(text)
    if m is None:
        raise ValueError("invalid timeout: {!r}".format(text))
    return int(m.group(1)) * _TIMEOUT_UNITS[m.group(2).lower()]


def format_timeout(seconds):
    # type: (Optional[int]) -> str
    """Format a timeout for the Timeout request header."""
    if seconds is None:
        return "Infinite"
    return "Second-{}".format(int(seconds))


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------

def parse_status_line(text):
    # type: (Optional[str]) -> Optional[int]
    """Extract the code from a status element ("HTTP/1.1 404 Not Found")."""
    if not text:
        return None
    parts = text.split()
    if len(parts) < 2:
        return None
    try:
        return int(parts[1])
    except ValueError:
        return None


def _parse_xml(content):
    try:
        return ElementTree.fromstring(content)
    except ElementTree.ParseError as e:
        raise ProtocolError("Malformed XML in response: {}".format(e))


def parse_multistatus(content, base_url):
    # type: (bytes, str) -> List[Tuple[str, Optional[int], Dict[str, ElementTree.Element]]]
    """Parse a 207 Multi-Status body.

    Returns a list of (url, status, props) tuples, one per response
    element.  url is the href resolved against base_url.  status is the
    response-level status code, or None when the response only carries
    propstat elements.  props maps property tags to their elements, for
    properties reported with a 2xx propstat status.
    """
    root = _parse_xml(content)
    if root.tag != dav("multistatus"):
        raise ProtocolError(
            "Expected a multistatus document, got {}".format(root.tag))

    results = []
    for node in root.findall(dav("response")):
        href = node.findtext(dav("href"))
        if href is None:
            continue
        url = urljoin(base_url, href.strip())
        status = parse_status_line(node.findtext(dav("status")))
        props = {}
        for propstat in node.findall(dav("propstat")):
            code = parse_status_line(propstat.findtext(dav("status")))
            if code is not None and not 200 <= code < 300:
                continue
            prop = propstat.find(dav("prop"))
            if prop is None:
                continue
            for child in prop:
                props[child.tag] = child
        results.append((url, status, props))
    return results


def propstat_failures(content):
    # type: (bytes) -> List[Tuple[str, int]]
    """Return (property tag, status) for every failed propstat in a
    PROPPATCH Multi-Status body."""
    root = _parse_xml(content)
    failures = []
    for propstat in root.iter(dav("propstat")):
        code = parse_status_line(propstat.findtext(dav("status")))
        if code is None or 200 <= code < 300:
            continue
        prop = propstat.find(dav("prop"))
        names = [child.tag for child in prop] if prop is not None else []
        for name in names or ["?"]:
            failures.append((name, code))
    return failures


def parse_active_locks(element):
    # type: (ElementTree.Element) -> List[Dict[str, str]]
    """Collect the activelock entries under a lockdiscovery element.

    Each lock is a dict with keys: token, owner, timeout, depth, scope,
    root.  Missing values are empty strings.
    """
    locks = []
    for active in element.iter(dav("activelock")):
        token = active.findtext("{}/{}".format(dav("locktoken"), dav("href")))
        scope = "exclusive"
        scope_el = active.find(dav("lockscope"))
        if scope_el is not None and len(scope_el):
            scope = short_name(scope_el[0].tag)
        owner_el = active.find(dav("owner"))
        owner = ""
        if owner_el is not None:
            owner = "".join(owner_el.itertext()).strip()
        root = active.findtext("{}/{}".format(dav("lockroot"), dav("href")))
        locks.append({
            "token": (token or "").strip(),
            "owner": owner,
            "timeout": (active.findtext(dav("timeout")) or "").strip(),
            "depth": (active.findtext(dav("depth")) or "").strip(),
            "scope": scope,
            "root": (root or "").strip(),
        })
    return locks


def parse_lock_response(content):
    # type: (bytes) -> List[Dict[str, str]]
    """Parse the prop/lockdiscovery body returned by a successful LOCK."""
    if not content:
        return []
    return parse_active_locks(_parse_xml(content))
