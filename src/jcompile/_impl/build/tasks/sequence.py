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

__all__ = ["TaskSequence", "ReleaseSequence"]

from abc import abstractmethod
from typing import List, Sequence

from .task import COMPILING, COMPLETED, FAILED, PENDING, Task
from ...errors import CompilationFailureException
from ...support.logging import logv


class TaskSequence(Task):
    """A Task that executes a sequence of subtasks."""

    def __str__(self) -> str:
        def indent(s, padding="  "):
            return padding + s.replace("\n", "\n" + padding)

        return self.__class__.__name__ + "[\n" + indent("\n".join(map(str, self.subtasks))) + "\n]"

    @property
    @abstractmethod
    def subtasks(self) -> Sequence[Task]:
        pass

    def execute(self) -> None:
        self.state = COMPILING
        for subtask in self.subtasks:
            subtask.deps += self.deps
            subtask.execute()
        self.state = COMPLETED


class ReleaseSequence(object):
    """
    Executes the tasks of all releases of one scope in ascending release order. The tasks of a
    release only run once all tasks of the lower releases completed: the first failure leaves the
    remaining tasks pending and is raised to the caller.
    """

    def __init__(self, tasks: Sequence[Task]):
        releases = [t.subject.release for t in tasks]
        assert releases == sorted(releases), "tasks must be sorted by release"
        self.tasks: List[Task] = list(tasks)
        self.state = PENDING

    def __str__(self) -> str:
        return "ReleaseSequence[" + ", ".join(map(str, self.tasks)) + "]"

    @property
    def completed_tasks(self) -> List[Task]:
        return [t for t in self.tasks if t.completed]

    def execute(self) -> None:
        self.state = COMPILING
        for i, task in enumerate(self.tasks):
            task.deps += self.tasks[:i]
            logv(f"Executing {task}")
            try:
                task.execute()
            except CompilationFailureException as e:
                task.state = FAILED
                task.failure = e
                self.state = FAILED
                pending = len(self.tasks) - i - 1
                if pending:
                    logv(f"Skipping {pending} remaining task{'s' if pending != 1 else ''}")
                raise
            except BaseException as e:
                task.state = FAILED
                task.failure = e
                self.state = FAILED
                raise
        self.state = COMPLETED
