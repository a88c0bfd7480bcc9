"""Edit a remote resource in a local editor.

RemoteEdit runs one edit from start to finish: lock the resource,
download it into a scratch file, run the editor, upload the file if it
changed, then remove the scratch file and release the lock.  Once the
lock or the scratch file exists it is released on every way out,
including editor and upload failures.
"""

import os
import posixpath
import shlex
import subprocess
import tempfile
import time
from urllib.parse import unquote, urlsplit

from . import DavError, LockedError, ProtocolError, describe_error
from .colors import ColorWriter
from .progress import TransferProgress

# First lock attempt asks for 10 hours; the retry asks for no limit.
LOCK_TIMEOUT = 10 * 60 * 60

# Pause before starting the editor so that a save made within the same
# second still moves the mtime on filesystems with 1-2 s resolution.
SETTLE_DELAY = 1.0

DEFAULT_EDITOR = "vi"

# RemoteEdit.run() outcomes
ABORTED = "aborted"
UNCHANGED = "unchanged"
UPLOADED = "uploaded"
FAILED = "failed"


def resolve_editor(configured=None):
    """Pick the editor command: $DAV_EDITOR, $EDITOR, config, then vi."""
    return (os.environ.get("DAV_EDITOR")
            or os.environ.get("EDITOR")
            or configured
            or DEFAULT_EDITOR)


def _scratch_suffix(url):
    name = unquote(posixpath.basename(urlsplit(url).path.rstrip("/")))
    # Keep the extension so editors pick the right mode
    name = name.replace(os.sep, "_")
    return "-" + name if name else ""


class RemoteEdit:
    """One run of the edit workflow for a single remote file.

    Attributes describe the edit in progress:
        url           Remote resource being edited.
        scratch       Local scratch file path, once created.
        locked        True while this edit holds a lock it took itself.
        lock_timeout  Timeout (seconds, None = infinite) of that lock.
        saved_mtime   Scratch file mtime right after the download.
    """

    def __init__(self, client, url, editor=None, tmpdir=None, cw=None,
                 progress=None):
        self.client = client
        self.url = url
        self.editor = editor
        self.tmpdir = tmpdir
        self.cw = cw if cw is not None else ColorWriter()
        self.progress = (progress if progress is not None
                         else TransferProgress(cw=self.cw))
        self.scratch = None
        self.locked = False
        self.lock_timeout = None
        self.saved_mtime = None

    def run(self):
        """Run the edit.  Returns ABORTED, UNCHANGED, UPLOADED or FAILED."""
        try:
            resource = self.client.stat(self.url)
        except (DavError, ProtocolError, OSError) as e:
            print(self.cw.error("Error: {}".format(describe_error(e))))
            return ABORTED
        if resource.is_collection:
            print(self.cw.error(
                "{} is a collection, can't edit".format(self.url)))
            return ABORTED

        if not self._lock():
            return ABORTED
        try:
            if not self._download():
                print("Edit of {} aborted.".format(self.url))
                return ABORTED
            return self._edit_and_upload()
        finally:
            self._remove_scratch()
            self._unlock()

    # -- Steps -------------------------------------------------------------

    def _lock(self):
        """Lock the resource.  Returns False only if the edit must stop."""
        if self.client.covered_by_lock(self.url):
            # Already locked by this session (the resource or a
            # depth-infinity ancestor); that lock stays after the edit
            return True
        errors = []
        for timeout in (LOCK_TIMEOUT, None):
            try:
                self.client.lock(self.url, timeout=timeout, depth="0")
            except (DavError, ProtocolError, OSError) as e:
                errors.append(e)
                continue
            self.locked = True
            self.lock_timeout = timeout
            return True

        if any(isinstance(e, LockedError) for e in errors):
            print(self.cw.error(
                "{} is locked, can't edit".format(self.url)))
            return False
        print(self.cw.warning(
            "Couldn't lock {} ({}); editing without a lock.".format(
                self.url, describe_error(errors[-1]))))
        return True

    def _download(self):
        try:
            fd, self.scratch = tempfile.mkstemp(
                prefix="davsh-", suffix=_scratch_suffix(self.url),
                dir=self.tmpdir)
        except OSError as e:
            print(self.cw.error("Can't create scratch file: {}".format(e)))
            return False
        os.close(fd)

        self.progress.reset()
        try:
            self.client.get(self.url, self.scratch, callback=self.progress)
        except (DavError, ProtocolError, OSError):
            return False  # reported by the progress callback

        self.saved_mtime = os.path.getmtime(self.scratch)
        return True

    def _edit_and_upload(self):
        time.sleep(SETTLE_DELAY)
        command = shlex.split(resolve_editor(self.editor)) + [self.scratch]
        try:
            rc = subprocess.call(command)
        except OSError as e:
            print(self.cw.error(
                "Couldn't run editor {}: {}".format(command[0], e)))
            return FAILED
        if rc != 0:
            print(self.cw.warning("Editor exited with status {}".format(rc)))

        try:
            mtime = os.path.getmtime(self.scratch)
        except OSError as e:
            print(self.cw.error("Scratch file vanished: {}".format(e)))
            return FAILED
        if mtime == self.saved_mtime:
            print("{} unchanged, not uploading.".format(self.url))
            return UNCHANGED

        self.progress.reset()
        try:
            self.client.put(self.scratch, self.url, callback=self.progress)
        except (DavError, ProtocolError, OSError):
            return FAILED  # reported by the progress callback
        return UPLOADED

    # -- Cleanup -----------------------------------------------------------

    def _remove_scratch(self):
        if self.scratch is None:
            return
        try:
            os.remove(self.scratch)
        except OSError as e:
            print(self.cw.warning(
                "Couldn't remove scratch file {}: {}".format(
                    self.scratch, e)))
        self.scratch = None

    def _unlock(self):
        if not self.locked:
            return
        try:
            self.client.unlock(self.url)
        except (DavError, ProtocolError, OSError) as e:
            print(self.cw.error("Couldn't unlock {}: {}".format(
                self.url, describe_error(e))))
        self.locked = False
