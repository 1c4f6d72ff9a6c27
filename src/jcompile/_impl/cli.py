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

__all__ = ["main", "_main_wrapper"]

import sys
from argparse import ArgumentParser
from os.path import basename, splitext
from typing import List, Optional, Sequence

from .config import load_configuration
from .dependencies import UNSPECIFIED_VERSION, DependencyResolution, ResolvedDependency
from .errors import CompilationFailureException, JCompileError
from .goals import CompilerGoal, TestCompilerGoal
from .support.logging import abort, log_error
from .support.options import ArgsNamespace, set_options

_goals = {
    "compile": CompilerGoal,
    "test-compile": TestCompilerGoal,
}


class ArgParser(ArgumentParser):
    def __init__(self):
        ArgumentParser.__init__(self, prog="jcompile", description="Compiles the Java sources of a Maven project.")
        self.add_argument("-v", action="store_true", dest="verbose", help="enable verbose output")
        self.add_argument("-V", action="store_true", dest="very_verbose", help="enable very verbose output")
        self.add_argument("--no-warning", action="store_false", dest="warn", help="disable warning messages")
        self.add_argument("--quiet", action="store_true", help="disable log messages")
        self.add_argument(
            "--show-changes",
            action="store_true",
            dest="show_compilation_changes",
            help="list the changes that caused a full rebuild",
        )
        self.add_argument("goal", choices=sorted(_goals), help="the goal to execute")
        self.add_argument("--pom", default="pom.xml", help="the project descriptor", metavar="<path>")
        self.add_argument("--compiler", dest="compiler_id", help="the compiler backend, overrides compilerId", metavar="<id>")
        self.add_argument(
            "--incremental",
            dest="incremental_compilation",
            help="the incremental build aspects, overrides incrementalCompilation",
            metavar="<aspects>",
        )
        self.add_argument(
            "-d",
            "--dependency",
            action="append",
            default=[],
            dest="dependencies",
            help="a resolved dependency, repeatable",
            metavar="<scope>=<path>",
        )


def _parse_dependency(spec: str) -> ResolvedDependency:
    scope, sep, path = spec.partition("=")
    if not sep or not path:
        raise JCompileError(f"Invalid dependency '{spec}', expected <scope>=<path>")
    return ResolvedDependency("local", splitext(basename(path))[0], UNSPECIFIED_VERSION, scope, path)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = ArgParser().parse_args(argv, namespace=ArgsNamespace())
    set_options(args)
    try:
        configuration = load_configuration(args.pom)
        if args.compiler_id:
            configuration.compiler_id = args.compiler_id
        if args.incremental_compilation:
            configuration.incremental_compilation = args.incremental_compilation
        dependencies: List[ResolvedDependency] = [_parse_dependency(d) for d in args.dependencies]
        goal = _goals[args.goal](configuration, DependencyResolution(dependencies))
        result = goal.execute()
    except CompilationFailureException as e:
        log_error(e.long_message)
        abort(e.short_message)
    except JCompileError as e:
        abort(str(e))
    except OSError as e:
        abort(f"{e.filename or args.pom}: {e.strerror}")
    except KeyboardInterrupt:
        # no need to show the stack trace when the user presses CTRL-C
        abort(1)
    return 0 if result.success else 1


def _main_wrapper():
    sys.exit(main())
