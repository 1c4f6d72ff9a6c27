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

__all__ = ["TimeStampFile"]

import os.path as ospath
import time
from typing import Optional


class TimeStampFile:
    """
    Represents a file and its modification time stamp at the time the TimeStampFile is created.
    Time stamps are compared with a tolerance of `stale_millis` milliseconds.
    """

    path: str
    timestamp: Optional[float]

    def __init__(self, path: str, stale_millis: int = 0):
        self.path = path
        self.tolerance = stale_millis / 1000.0
        self.timestamp = ospath.getmtime(path) if ospath.exists(path) else None

    def isOlderThan(self, arg: float | str | TimeStampFile) -> bool:
        """
        Returns True if self does not exist or is older than `arg` by more than the tolerance.
        A path that does not exist is considered newer than anything.
        """
        if self.timestamp is None:
            return True
        if isinstance(arg, (int, float)):
            other = arg
        elif isinstance(arg, TimeStampFile):
            if arg.timestamp is None:
                return False
            other = arg.timestamp
        else:
            if not ospath.exists(arg):
                return True
            other = ospath.getmtime(arg)
        return other - self.timestamp > self.tolerance

    def differsFrom(self, timestamp: Optional[float]) -> bool:
        if self.timestamp is None or timestamp is None:
            return self.timestamp != timestamp
        return abs(self.timestamp - timestamp) > self.tolerance

    def __str__(self) -> str:
        if self.timestamp:
            ts = time.strftime("[%Y-%m-%d %H:%M:%S]", time.localtime(self.timestamp))
        else:
            ts = "[does not exist]"
        return self.path + ts
