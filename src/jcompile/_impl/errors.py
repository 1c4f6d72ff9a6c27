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
    "JCompileError",
    "ConfigurationError",
    "ModuleInfoPatchError",
    "CompilationFailureException",
    "ModuleInfoRestoreError",
]

from typing import Optional, Sequence


class JCompileError(Exception):
    """Base class of all errors reported by the compiler driver."""


class ConfigurationError(JCompileError):
    """
    Invalid or contradictory configuration. Always raised before any compiler is invoked.
    """


class ModuleInfoPatchError(ConfigurationError):
    """
    Syntax error in a module-info-patch file.
    """

    def __init__(self, message: str, file: Optional[str] = None, line: Optional[int] = None):
        self.file = file
        self.line = line
        self.reason = message
        if file is not None:
            location = file if line is None else f"{file}:{line}"
            message = f"{location}: {message}"
        super().__init__(message)


class CompilationFailureException(JCompileError):
    """
    The compiler reported one or more errors.

    `messages` are the formatted error diagnostics, `args_file` is the path of the
    debug file with the arguments of the failing invocation, if one could be written.
    """

    def __init__(self, messages: Sequence[str], args_file: Optional[str] = None):
        self.messages = list(messages)
        self.args_file = args_file
        super().__init__(self.short_message)

    @property
    def short_message(self) -> str:
        msg = "Compilation failure"
        if len(self.messages) == 1:
            msg += "\n" + self.messages[0]
        return msg

    @property
    def long_message(self) -> str:
        lines = list(self.messages)
        if self.args_file:
            lines.append(f"Compiler arguments written to {self.args_file}")
        return "\n".join(lines)


class ModuleInfoRestoreError(JCompileError):
    """
    A swapped module-info.class could not be put back into the main output directory.
    The main output is left in an inconsistent state.
    """
