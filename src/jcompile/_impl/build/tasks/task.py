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

__all__ = ["Task", "PENDING", "COMPILING", "COMPLETED", "FAILED"]

from abc import ABCMeta, abstractmethod
from typing import MutableSequence, Optional

from ...sources import SourcesForRelease

PENDING = "pending"
COMPILING = "compiling"
COMPLETED = "completed"
FAILED = "failed"


class Task(object, metaclass=ABCMeta):
    """A task executed during a compilation."""

    subject: SourcesForRelease
    deps: MutableSequence[Task]
    state: str

    def __init__(self, subject: SourcesForRelease):
        """
        :param subject: the unit for which this task is executed
        """
        self.subject = subject
        self.deps = []
        self.state = PENDING
        self.failure: Optional[BaseException] = None

    def __str__(self) -> str:
        return f"{self.__class__.__name__}[{self.subject}]"

    def __repr__(self) -> str:
        return str(self)

    @property
    def name(self) -> str:
        return str(self.subject)

    @property
    def completed(self) -> bool:
        return self.state == COMPLETED

    @abstractmethod
    def execute(self) -> None:
        """Executes this task."""
