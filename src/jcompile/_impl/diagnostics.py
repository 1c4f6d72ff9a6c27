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
    "ERROR",
    "WARNING",
    "MANDATORY_WARNING",
    "NOTE",
    "OTHER",
    "Diagnostic",
    "DiagnosticLogger",
]

import os
import sys
from dataclasses import dataclass
from typing import Dict, List, Optional

from .support.logging import colorize, log, log_error, warn

ERROR = "ERROR"
WARNING = "WARNING"
MANDATORY_WARNING = "MANDATORY_WARNING"
NOTE = "NOTE"
OTHER = "OTHER"


@dataclass(frozen=True)
class Diagnostic:
    """
    A message reported by the compiler. `line` and `column` are None when the
    message is not tied to a position.
    """

    kind: str
    message: str
    source: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    code: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.kind == ERROR


class DiagnosticLogger:
    """
    Logs compiler diagnostics as they are reported and keeps the statistics printed at the end of
    the compilation. Paths of source files are shown relative to `directory` when possible.
    """

    def __init__(self, directory: Optional[str] = None):
        self.directory = directory
        self.num_errors = 0
        self.num_warnings = 0
        self.first_error: Optional[str] = None
        self.code_count: Dict[str, int] = {}
        self.error_messages: List[str] = []

    def _relativize(self, file: str) -> str:
        if self.directory is not None:
            try:
                rel = os.path.relpath(file, self.directory)
            except ValueError:
                # on another drive
                return file
            if not rel.startswith(os.pardir):
                return rel
        return file

    def format(self, diagnostic: Diagnostic) -> str:
        text = diagnostic.message
        source = diagnostic.source
        if diagnostic.kind not in (ERROR, WARNING, MANDATORY_WARNING) and diagnostic.line is None:
            # generic messages such as "Recompile with -Xlint:deprecation"
            source = None
        if source is not None:
            text += "\n    at " + self._relativize(source)
            if diagnostic.line is not None or diagnostic.column is not None:
                position = "["
                if diagnostic.line is not None:
                    position += str(diagnostic.line)
                if diagnostic.column is not None:
                    position += "," + str(diagnostic.column)
                text += position + "]"
        return text

    def __call__(self, diagnostic: Diagnostic) -> None:
        self.report(diagnostic)

    def report(self, diagnostic: Diagnostic) -> None:
        if not diagnostic.message or not diagnostic.message.strip():
            return
        text = self.format(diagnostic)
        if diagnostic.kind == ERROR:
            if self.first_error is None:
                self.first_error = diagnostic.message
            self.error_messages.append(text)
            log_error(text)
            self.num_errors += 1
        elif diagnostic.kind in (WARNING, MANDATORY_WARNING):
            warn(text)
            self.num_warnings += 1
        else:
            log(text)
        if diagnostic.code is not None:
            self.code_count[diagnostic.code] = self.code_count.get(diagnostic.code, 0) + 1

    @staticmethod
    def _pattern_for_count(n: int) -> str:
        return "    %" + str(len(str(n))) + "d %s"

    def summary_lines(self) -> List[str]:
        lines = []
        if self.code_count:
            entries = sorted(self.code_count.items(), key=lambda e: -e[1])
            pattern = self._pattern_for_count(max(entries[0][1], self.num_warnings, self.num_errors))
            lines.append("Summary of compiler messages:")
            for code, count in entries:
                lines.append(pattern % (count, code))
        else:
            pattern = self._pattern_for_count(max(self.num_warnings, self.num_errors))
        if self.num_warnings or self.num_errors:
            lines.append("Total:")
        if self.num_warnings:
            lines.append(pattern % (self.num_warnings, "warning") + ("s" if self.num_warnings > 1 else ""))
        if self.num_errors:
            lines.append(pattern % (self.num_errors, "error") + ("s" if self.num_errors > 1 else ""))
        return lines

    def log_summary(self) -> None:
        lines = self.summary_lines()
        if lines:
            lines[0] = colorize(lines[0], color="cyan", stream=sys.stdout)
            log("\n".join(lines))
