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

__all__ = ["BuildResult", "CompilerGoal", "TestCompilerGoal"]

from dataclasses import dataclass, field
from typing import List, Optional

from .compilers import get_compiler
from .config import CompilerConfiguration
from .context import BuildContext
from .dependencies import DependencyResolution
from .diagnostics import DiagnosticLogger
from .errors import CompilationFailureException
from .executor import CompilationExecutor
from .incremental import NO_OP, BuildDecision
from .sources import MAIN, TEST, SourceSetResolver, SourcesForRelease
from .support.logging import log, logv, warn


@dataclass
class BuildResult:
    decision: Optional[BuildDecision]
    output_directory: str
    compiled_units: List[SourcesForRelease] = field(default_factory=list)
    success: bool = True
    failure: Optional[CompilationFailureException] = None

    @property
    def up_to_date(self) -> bool:
        return self.decision is None or self.decision.kind == NO_OP


class CompilerGoal(object):
    """
    Compiles the main sources of a project.

    :param resolution: the resolved dependencies of the project, None if it has none
    :param compiler: the compiler backend, by default the one selected by the configuration
    """

    scope = MAIN

    def __init__(self, configuration: CompilerConfiguration, resolution: Optional[DependencyResolution] = None, compiler=None):
        self.configuration = configuration
        self.resolution = resolution
        self.compiler = compiler

    def __str__(self):
        return f"{self.scope} compilation of {self.configuration.project_directory}"

    def output_directory(self) -> str:
        return self.configuration.path(self.configuration.output_directory)

    def _main_output_directory(self) -> Optional[str]:
        return None

    def execute(self) -> BuildResult:
        cfg = self.configuration.validate()
        context = BuildContext(cfg.project_directory)
        compiler = self.compiler or get_compiler(cfg.compiler_id, cfg)
        resolver = SourceSetResolver(
            cfg.source_directories,
            cfg.path(cfg.output_directory),
            cfg.path(cfg.test_output_directory),
            cfg.release_value(),
            context,
        )
        if self.scope == TEST:
            # the modules of the main sources are known to module-info patches of the tests
            resolver.resolve(MAIN)
        sources = resolver.resolve(self.scope)
        output = self.output_directory()
        if sources.is_empty():
            log("No sources to compile.")
            return BuildResult(None, output)
        logv(f"Compiling {len(sources.files)} {self.scope} source files with {compiler.name()} to {output}")

        listener = DiagnosticLogger(cfg.project_directory)
        executor = CompilationExecutor(cfg, self.scope, compiler, self.resolution, context, listener, self._main_output_directory())
        try:
            result = executor.execute(sources)
        except CompilationFailureException as e:
            if cfg.fail_on_error:
                raise
            warn(e.long_message or e.short_message)
            return BuildResult(None, output, success=False, failure=e)
        return BuildResult(result.decision, output, result.compiled_units)


class TestCompilerGoal(CompilerGoal):
    """
    Compiles the test sources of a project against its main classes.
    """

    scope = TEST

    def output_directory(self) -> str:
        return self.configuration.path(self.configuration.test_output_directory)

    def _main_output_directory(self) -> Optional[str]:
        return self.configuration.path(self.configuration.output_directory)
