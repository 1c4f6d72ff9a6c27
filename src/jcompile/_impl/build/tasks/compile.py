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

__all__ = ["CompilationTaskSources", "ModuleInfoSubstitution", "OverwritingTestCompilation", "to_compilation_tasks"]

import os
import signal
import threading
from os.path import basename, exists, join
from typing import List, Optional, Sequence, Tuple

from .sequence import TaskSequence
from .task import COMPILING, COMPLETED, FAILED, Task
from ...diagnostics import DiagnosticLogger
from ...errors import CompilationFailureException, ModuleInfoRestoreError
from ...modules import MODULE_INFO_CLASS, MODULE_INFO_JAVA
from ...sources import ModuleInfoOverwrite, SourcesForRelease
from ...support.java_argument_file import write_arguments
from ...support.logging import abort, logv, logvv, warn
from ...support.options import _opts
from ...support.processes import terminate_subprocesses


class CompilationTaskSources(Task):
    """
    One invocation of the compiler: the options and the files of (a part of) a unit.

    :param args_file: where the arguments are written when the compilation fails or in verbose mode
    """

    def __init__(
        self,
        subject: SourcesForRelease,
        compiler,
        options: Sequence[str],
        files: Sequence[str],
        listener: DiagnosticLogger,
        args_file: Optional[str] = None,
    ):
        super(CompilationTaskSources, self).__init__(subject)
        self.compiler = compiler
        self.options = list(options)
        self.files = list(files)
        self.listener = listener
        self.args_file = args_file

    def __str__(self) -> str:
        n = len(self.files)
        return f"Compile {n} file{'s' if n != 1 else ''} for release {self.subject.release}"

    @property
    def args(self) -> List[str]:
        return self.options + self.files

    def _write_args_file(self) -> Optional[str]:
        if self.args_file is None:
            return None
        try:
            return write_arguments(self.args_file, self.args)
        except OSError as e:
            warn(f"Cannot write the compiler arguments to {self.args_file}: {e}")
            return None

    def execute(self) -> None:
        self.state = COMPILING
        if _opts.verbose:
            written = self._write_args_file()
            if written:
                logv(f"Compiler arguments written to {written}")
        os.makedirs(self.subject.output_directory, exist_ok=True)
        errors_before = len(self.listener.error_messages)
        logvv(f"{self.compiler.name()} {' '.join(self.args)}")
        success = self.compiler.compile(self.args, self.listener)
        if success:
            self.state = COMPLETED
            return
        self.state = FAILED
        messages = self.listener.error_messages[errors_before:] or [f"{self.compiler.name()} failed without reporting an error"]
        failure = CompilationFailureException(messages, self._write_args_file())
        self.failure = failure
        raise failure


class ModuleInfoSubstitution(object):
    """
    Puts the compiled test module descriptor in place of the main one for the duration of the
    `with` block, and hides the test module-info.java from the compilation of the other test sources.
    Every file moved is moved back on exit, whether the block completed or not.
    """

    def __init__(self, overwrite: ModuleInfoOverwrite, test_output_directory: str):
        self.test_source = overwrite.test_module_info
        self.main_class = join(overwrite.main_output_directory, MODULE_INFO_CLASS)
        self.test_class = join(test_output_directory, MODULE_INFO_CLASS)
        self._moves: List[Tuple[str, str]] = []
        self._previous_handler = None
        self._handler_installed = False

    def _move(self, src: str, dst: str) -> None:
        os.replace(src, dst)
        self._moves.append((src, dst))
        logvv(f"Moved {src} to {dst}")

    def _recover(self) -> None:
        """
        Moves back the files left behind by a process that was killed while the descriptors were swapped.
        """
        for original in (self.test_source, self.main_class):
            backup = original + ".bak"
            if exists(backup) and (original == self.main_class or not exists(original)):
                warn(f"Restoring {original} left over by an interrupted build")
                os.replace(backup, original)

    def _terminate(self, signum, frame):
        terminate_subprocesses()
        abort(1)

    def __enter__(self) -> ModuleInfoSubstitution:
        self._recover()
        if threading.current_thread() is threading.main_thread():
            # SIGTERM unwinds through __exit__ so that the descriptors are restored
            self._previous_handler = signal.signal(signal.SIGTERM, self._terminate)
            self._handler_installed = True
        return self

    def swap(self) -> bool:
        """
        Replaces the main module-info.class with the test one. Returns False if the files could not
        be moved, in which case the main descriptor is left untouched.
        """
        done = len(self._moves)
        try:
            self._move(self.test_source, self.test_source + ".bak")
            if exists(self.main_class):
                self._move(self.main_class, self.main_class + ".bak")
            self._move(self.test_class, self.main_class)
            return True
        except OSError as e:
            warn(f"Cannot substitute {self.main_class} with {self.test_class}: {e}")
            self._undo(self._moves[done:])
            del self._moves[done:]
            return False

    def _undo(self, moves: Sequence[Tuple[str, str]]) -> List[str]:
        errors = []
        for src, dst in reversed(moves):
            try:
                os.replace(dst, src)
                logvv(f"Restored {src}")
            except OSError as e:
                errors.append(f"{dst} -> {src}: {e}")
        return errors

    def restore(self) -> None:
        errors = self._undo(self._moves)
        self._moves = []
        if errors:
            raise ModuleInfoRestoreError("Cannot restore the module descriptors:\n" + "\n".join(errors))

    def __exit__(self, exc_type, exc_value, traceback):
        if self._handler_installed:
            signal.signal(signal.SIGTERM, self._previous_handler or signal.SIG_DFL)
            self._handler_installed = False
        self.restore()
        return False


class OverwritingTestCompilation(TaskSequence):
    """
    Compiles test sources declaring their own module-info.java for the main module. The test
    descriptor is compiled alone first, then substituted for the main descriptor while the other
    test sources compile as a patch of the main module.
    """

    def __init__(self, module_info_task: CompilationTaskSources, sources_task: Optional[CompilationTaskSources],
                 overwrite: ModuleInfoOverwrite, test_output_directory: str):
        super(OverwritingTestCompilation, self).__init__(module_info_task.subject)
        self.module_info_task = module_info_task
        self.sources_task = sources_task
        self.overwrite = overwrite
        self.test_output_directory = test_output_directory

    @property
    def subtasks(self) -> Sequence[Task]:
        return [t for t in (self.module_info_task, self.sources_task) if t is not None]

    def execute(self) -> None:
        self.state = COMPILING
        try:
            with ModuleInfoSubstitution(self.overwrite, self.test_output_directory) as substitution:
                self.module_info_task.execute()
                if self.sources_task is not None:
                    substitution.swap()
                    self.sources_task.execute()
        except BaseException as e:
            self.state = FAILED
            self.failure = e
            raise
        self.state = COMPLETED


def to_compilation_tasks(
    unit: SourcesForRelease,
    compiler,
    options: Sequence[str],
    listener: DiagnosticLogger,
    overwrite: Optional[ModuleInfoOverwrite] = None,
    test_output_directory: Optional[str] = None,
    files: Optional[Sequence[str]] = None,
    args_file: Optional[str] = None,
) -> Task:
    """
    Creates the task compiling `files` of `unit`, all of them by default. When a test module-info
    overwrites the main descriptor, its compilation is split into a leading task of its own.
    """
    files = list(unit.files if files is None else files)
    if overwrite is None or overwrite.test_module_info not in files:
        return CompilationTaskSources(unit, compiler, options, files, listener, args_file)
    assert test_output_directory is not None
    others = [f for f in files if f != overwrite.test_module_info and basename(f) != MODULE_INFO_JAVA]
    module_info_options = _without_patch_module(options)
    module_info_task = CompilationTaskSources(unit, compiler, module_info_options, [overwrite.test_module_info], listener, args_file)
    sources_task = CompilationTaskSources(unit, compiler, options, others, listener, args_file) if others else None
    return OverwritingTestCompilation(module_info_task, sources_task, overwrite, test_output_directory)


def _without_patch_module(options: Sequence[str]) -> List[str]:
    result = []
    skip = False
    for option in options:
        if skip:
            skip = False
        elif option == "--patch-module":
            skip = True
        else:
            result.append(option)
    return result
