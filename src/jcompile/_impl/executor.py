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
"""
Runs the compilation of one scope: decides what to compile, computes the compiler options,
executes the compiler tasks and records the state of the build for the next execution.
"""

from __future__ import annotations

__all__ = ["CompilationExecutor", "ExecutionResult", "MODULE_PATCH_ARGS"]

import hashlib
import os
from dataclasses import dataclass, field
from os.path import join
from typing import Dict, List, Optional, Sequence

from .build.tasks.compile import to_compilation_tasks
from .build.tasks.sequence import ReleaseSequence, TaskSequence
from .build.tasks.task import Task
from .config import CompilerConfiguration
from .context import BuildContext
from .dependencies import DependencyResolution
from .diagnostics import DiagnosticLogger
from .errors import CompilationFailureException
from .incremental import (
    FULL_REBUILD,
    INCREMENTAL,
    NO_OP,
    BuildDecision,
    BuildStatusRecord,
    ChangeTracker,
    StatusPersister,
    delete_class_files,
    output_manifest,
    parse_aspects,
)
from .sources import TEST, ResolvedSources, SourcesForRelease
from .support.logging import log, logv, warn
from .synthesizer import OptionSynthesizer, SynthesizedOptions
from .util import write_text_safely

MODULE_PATCH_ARGS = "module-info-patch.args"


@dataclass
class ExecutionResult:
    decision: BuildDecision
    compiled_units: List[SourcesForRelease] = field(default_factory=list)
    runtime_lines: List[str] = field(default_factory=list)


def _task_files(task: Task) -> List[str]:
    if isinstance(task, TaskSequence):
        return [f for t in task.subtasks for f in _task_files(t)]
    return list(getattr(task, "files", []))


def _with_class_path_entry(options: Sequence[str], entry: str) -> List[str]:
    """
    Prepends `entry` to the class path of `options`, adding a class path if there is none.
    """
    result = list(options)
    for i, option in enumerate(result):
        if option in ("--class-path", "-classpath", "-cp") and i + 1 < len(result):
            result[i + 1] = entry + os.pathsep + result[i + 1]
            return result
    return result + ["--class-path", entry]


class CompilationExecutor(object):
    """
    Compiles the resolved sources of one scope.

    :param main_output_directory: the classes of the main scope, only used for the test scope
    """

    def __init__(
        self,
        configuration: CompilerConfiguration,
        scope: str,
        compiler,
        resolution: Optional[DependencyResolution],
        context: BuildContext,
        listener: DiagnosticLogger,
        main_output_directory: Optional[str] = None,
    ):
        self.configuration = configuration
        self.scope = scope
        self.compiler = compiler
        self.resolution = resolution
        self.context = context
        self.listener = listener
        self.main_output_directory = main_output_directory
        self.tracker = ChangeTracker(parse_aspects(configuration.incremental_compilation), configuration.stale_millis)
        self.persister = StatusPersister(join(configuration.status_path, f"{scope}.json"))

    @property
    def args_file(self) -> str:
        name = "javac-test.args" if self.scope == TEST else "javac.args"
        return join(self.configuration.path(self.configuration.build_directory), name)

    def _dependency_identities(self) -> List[str]:
        identities = self.resolution.identities(self.scope) if self.resolution is not None else []
        if self.scope == TEST and self.main_output_directory is not None:
            manifest = output_manifest([self.main_output_directory])[self.main_output_directory]
            digest = hashlib.sha256(repr(sorted(manifest.items())).encode("utf-8")).hexdigest()
            identities.append(f"main-classes:{digest}")
        return sorted(identities)

    def synthesize(self, sources: ResolvedSources) -> List[SynthesizedOptions]:
        synthesizer = OptionSynthesizer(
            self.configuration,
            self.compiler,
            self.resolution,
            scope=self.scope,
            context=self.context,
            main_output_directory=self.main_output_directory,
        )
        result = []
        previous_outputs: List[str] = []
        for unit in sources.units:
            result.append(synthesizer.synthesize(unit, previous_outputs, overwrite=sources.overwrite is not None))
            previous_outputs.append(unit.output_directory)
        return result

    @staticmethod
    def _fingerprint(synthesized: Sequence[SynthesizedOptions]) -> str:
        return hashlib.sha256("\n".join(s.fingerprint() for s in synthesized).encode("utf-8")).hexdigest()

    def _files_to_compile(self, sources: ResolvedSources, decision: BuildDecision) -> Dict[int, List[str]]:
        """
        Gets the files to compile per unit index. A modular unit is always compiled as a whole.
        """
        if decision.kind == FULL_REBUILD:
            return {i: list(unit.files) for i, unit in enumerate(sources.units)}
        selected = set(decision.files)
        result = {}
        for i, unit in enumerate(sources.units):
            files = [f for f in unit.files if f in selected]
            if files and (unit.is_modular or sources.overwrite is not None):
                logv(f"Compiling all files of {unit} because it belongs to a module")
                files = list(unit.files)
            if files:
                result[i] = files
        return result

    @staticmethod
    def _delete_removed(current, previous: Optional[BuildStatusRecord]) -> None:
        if previous is None:
            return
        for path, status in previous.files.items():
            if path not in current:
                for deleted in delete_class_files(path, status):
                    logv(f"Deleted {deleted}")

    def execute(self, sources: ResolvedSources) -> ExecutionResult:
        synthesized = self.synthesize(sources)
        fingerprint = self._fingerprint(synthesized)
        dependencies = self._dependency_identities()
        current = self.tracker.scan(sources)
        previous = self.persister.load()
        decision = self.tracker.decide(current, previous, fingerprint, dependencies)
        log(decision.message())
        if decision.kind == NO_OP:
            return ExecutionResult(decision)

        self.persister.delete()
        self._delete_removed(current, previous)

        files_by_unit = self._files_to_compile(sources, decision)
        tasks = []
        for i, unit in enumerate(sources.units):
            files = files_by_unit.get(i)
            if not files:
                continue
            options = synthesized[i].options.options
            if decision.kind == INCREMENTAL and not unit.is_modular:
                # classes of the files that are not recompiled are found in the output directory
                options = _with_class_path_entry(options, unit.output_directory)
            tasks.append(
                to_compilation_tasks(
                    unit,
                    self.compiler,
                    options,
                    self.listener,
                    overwrite=sources.overwrite,
                    test_output_directory=self.configuration.path(self.configuration.test_output_directory),
                    files=files,
                    args_file=self.args_file,
                )
            )

        sequence = ReleaseSequence(tasks)
        outputs = [self.configuration.path(self._output_root())]
        try:
            sequence.execute()
        except CompilationFailureException:
            failed = {f for t in sequence.tasks if not t.completed for f in _task_files(t)}
            self._persist(current, fingerprint, dependencies, outputs, [p for p in current if p not in failed])
            raise
        finally:
            self.listener.log_summary()

        self._persist(current, fingerprint, dependencies, outputs)
        runtime_lines = [line for s in synthesized for line in s.runtime_lines]
        if self.scope == TEST and runtime_lines:
            self._write_module_patch_args(runtime_lines)
        compiled = [sources.units[i] for i in sorted(files_by_unit)]
        return ExecutionResult(decision, compiled, runtime_lines)

    def _output_root(self) -> str:
        cfg = self.configuration
        return cfg.test_output_directory if self.scope == TEST else cfg.output_directory

    def _persist(self, current, fingerprint: str, dependencies: List[str], outputs: List[str],
                 compiled: Optional[List[str]] = None) -> None:
        record = self.tracker.create_record(current, fingerprint, dependencies, outputs, compiled)
        self.persister.write(record)

    def _write_module_patch_args(self, lines: List[str]) -> None:
        path = join(self.configuration.path(self.configuration.test_output_directory), MODULE_PATCH_ARGS)
        unique = list(dict.fromkeys(lines))
        try:
            write_text_safely(path, "\n".join(unique) + "\n")
            logv(f"Wrote {path}")
        except OSError as e:
            warn(f"Cannot write {path}: {e}")
