#
# ----------------------------------------------------------------------------------------------------
#
# Copyright (c) 2024, 2024, Oracle and/or its affiliates. All rights reserved.
# DO NOT ALTER OR REMOVE COPYRIGHT NOTICES OR THIS FILE HEADER.
#
# This code is free software; you can redistribute it and/or modify it
# under the terms of the GNU General Public License version 2 only, as
# published by the Free Software Foundation.
#
# This code is distributed in the hope that it will be useful, but WITHOUT
# ANY WARRANTY; without even the implied warranty of MERCHANTABILITY or
# FITNESS FOR A PARTICULAR PURPOSE.  See the GNU General Public License
# version 2 for more details (a copy is included in the LICENSE file that
# accompanied this code).
#
# You should have received a copy of the GNU General Public License version
# 2 along with this work; if not, write to the Free Software Foundation,
# Inc., 51 Franklin St, Fifth Floor, Boston, MA 02110-1301 USA.
#
# Please contact Oracle, 500 Oracle Parkway, Redwood Shores, CA 94065 USA
# or visit www.oracle.com if you need additional information or have any
# questions.
#
# ----------------------------------------------------------------------------------------------------
#

from __future__ import annotations

__all__ = [
    "ensure_dir_exists",
    "SafeFileCreation",
    "write_text_safely",
    "delete_file",
    "file_digest",
    "list_files",
]

import errno
import hashlib
import os
import tempfile
from os.path import basename, dirname, exists, isdir, join
from typing import Iterator, Optional


def ensure_dir_exists(path: str, mode: Optional[int] = None) -> str:
    """
    Ensures all directories on 'path' exists, creating them first if necessary with os.makedirs().
    """
    if not isdir(path):
        try:
            if mode:
                os.makedirs(path, mode=mode)
            else:
                os.makedirs(path)
        except OSError as e:
            if e.errno == errno.EEXIST and isdir(path):
                # another build already created the path
                pass
            else:
                raise e
    return path


# Capture the current umask since there's no way to query it without mutating it.
_current_umask = os.umask(0)
os.umask(_current_umask)


class SafeFileCreation:
    """
    Context manager that creates `path` through a temporary file in the same directory.
    The temporary file replaces `path` when the block completes normally and is deleted
    when the block raises, so readers never observe a half written file.

    :Example:

    with SafeFileCreation(status_file) as sfc:
        with open(sfc.tmpPath, "w") as fp:
            fp.write(text)

    """

    def __init__(self, path: str):
        self.path = path
        self.tmpFd: Optional[int] = None
        self.tmpPath: Optional[str] = None

    def __enter__(self) -> SafeFileCreation:
        path_dir = dirname(self.path) or "."
        ensure_dir_exists(path_dir)
        # Temporary file must be on the same file system as self.path for os.replace to be atomic.
        fd, tmp = tempfile.mkstemp(suffix=basename(self.path), dir=path_dir)
        self.tmpFd = fd
        self.tmpPath = tmp
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        # Windows will complain about tmp being in use when renaming if the descriptor is still open.
        os.close(self.tmpFd)
        if not exists(self.tmpPath):
            return
        if exc_value:
            os.remove(self.tmpPath)
        else:
            # mkstemp creates the file with restrictive permissions
            os.chmod(self.tmpPath, 0o666 & ~_current_umask)
            os.replace(self.tmpPath, self.path)


def write_text_safely(path: str, text: str) -> None:
    with SafeFileCreation(path) as sfc:
        with open(sfc.tmpPath, "w", encoding="utf-8", newline="") as fp:
            fp.write(text)


def delete_file(path: str) -> bool:
    """
    Deletes `path` if it exists. Returns True if a file was deleted.
    """
    try:
        os.remove(path)
        return True
    except FileNotFoundError:
        return False


def file_digest(path: str) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as fp:
        for chunk in iter(lambda: fp.read(65536), b""):
            h.update(chunk)
    return h.hexdigest()


def list_files(root: str) -> Iterator[str]:
    """
    Yields the paths of all regular files under `root` relative to it, in sorted order,
    using "/" as the separator.
    """
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        rel_dir = os.path.relpath(dirpath, root)
        for name in sorted(filenames):
            rel = name if rel_dir == os.curdir else join(rel_dir, name)
            yield rel.replace(os.sep, "/")
