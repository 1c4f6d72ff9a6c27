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
The jcompile package.

Proxy exposing the public API of the compiler driver.

DO NOT WRITE IMPLEMENTATION CODE HERE.
"""

from ._impl.compilers import JavacCompiler, StubCompiler, get_compiler, register_compiler
from ._impl.config import CompilerConfiguration, load_configuration
from ._impl.context import BuildContext
from ._impl.dependencies import DependencyResolution, ResolvedDependency
from ._impl.diagnostics import Diagnostic, DiagnosticLogger
from ._impl.errors import (
    CompilationFailureException,
    ConfigurationError,
    JCompileError,
    ModuleInfoPatchError,
    ModuleInfoRestoreError,
)
from ._impl.goals import BuildResult, CompilerGoal, TestCompilerGoal
from ._impl.incremental import (
    FULL_REBUILD,
    INCREMENTAL,
    NO_OP,
    BuildDecision,
    BuildStatusRecord,
    ChangeTracker,
    StatusPersister,
)
from ._impl.module_patch import ModuleInfoPatch, ModulePatchOptions
from ._impl.options import Options
from ._impl.release import JavaRelease
from ._impl.sources import MAIN, TEST, SourceDirectory, SourceSetResolver, SourcesForRelease
from ._impl.synthesizer import OptionSynthesizer

__all__ = [
    "BuildContext",
    "BuildDecision",
    "BuildResult",
    "BuildStatusRecord",
    "ChangeTracker",
    "CompilationFailureException",
    "CompilerConfiguration",
    "CompilerGoal",
    "ConfigurationError",
    "DependencyResolution",
    "Diagnostic",
    "DiagnosticLogger",
    "FULL_REBUILD",
    "INCREMENTAL",
    "JCompileError",
    "JavaRelease",
    "JavacCompiler",
    "MAIN",
    "ModuleInfoPatch",
    "ModuleInfoPatchError",
    "ModuleInfoRestoreError",
    "ModulePatchOptions",
    "NO_OP",
    "OptionSynthesizer",
    "Options",
    "ResolvedDependency",
    "SourceDirectory",
    "SourceSetResolver",
    "SourcesForRelease",
    "StatusPersister",
    "StubCompiler",
    "TEST",
    "TestCompilerGoal",
    "get_compiler",
    "load_configuration",
    "register_compiler",
]
