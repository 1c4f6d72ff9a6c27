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
Compiler backends. A backend is any object providing:

- ``name()``: a short identifier used in messages,
- ``is_supported_option(flag)``: how many values follow `flag`, or -1 if the flag is not supported,
- ``compile(args, listener)``: runs the compiler on `args` (options followed by source files),
  reports each `Diagnostic` to `listener` and returns True on success.

A backend with a true ``forked`` attribute runs an external executable that decides by itself
which options are valid.
"""

from __future__ import annotations

__all__ = [
    "JAVAC_OPTIONS",
    "javac_option_arity",
    "split_arguments",
    "parse_javac_output",
    "JavacCompiler",
    "StubCompiler",
    "StubInvocation",
    "register_compiler",
    "get_compiler",
]

import hashlib
import os
import re
import tempfile
from os.path import basename, exists, join, splitext
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .diagnostics import ERROR, NOTE, WARNING, Diagnostic
from .errors import ConfigurationError
from .modules import MODULE_INFO_CLASS, MODULE_INFO_JAVA
from .support import java_argument_file
from .support.envvars import get_env
from .support.logging import logv, logvv
from .support.processes import run_and_capture
from .util import delete_file, ensure_dir_exists

Listener = Callable[[Diagnostic], None]

JAVAC_OPTIONS: Dict[str, int] = {
    # options with a value
    "--release": 1,
    "-source": 1,
    "--source": 1,
    "-target": 1,
    "--target": 1,
    "-d": 1,
    "-s": 1,
    "-h": 1,
    "-encoding": 1,
    "--class-path": 1,
    "-classpath": 1,
    "-cp": 1,
    "--module-path": 1,
    "-p": 1,
    "--source-path": 1,
    "-sourcepath": 1,
    "--module-source-path": 1,
    "--upgrade-module-path": 1,
    "--system": 1,
    "--processor-path": 1,
    "-processorpath": 1,
    "--processor-module-path": 1,
    "-processor": 1,
    "--add-modules": 1,
    "--limit-modules": 1,
    "--add-reads": 1,
    "--add-exports": 1,
    "--patch-module": 1,
    "--module": 1,
    "-m": 1,
    "--module-version": 1,
    "--default-module-for-created-files": 1,
    "-Xmaxerrs": 1,
    "-Xmaxwarns": 1,
    # flags
    "-g": 0,
    "-nowarn": 0,
    "-verbose": 0,
    "-deprecation": 0,
    "-parameters": 0,
    "--enable-preview": 0,
    "-Werror": 0,
    "-Xlint": 0,
    "-Xdoclint": 0,
    "-version": 0,
    "--version": 0,
    "-help": 0,
    "--help": 0,
    "-X": 0,
}

# flags carrying their value after a ':' or directly appended
_JAVAC_PREFIXES = ("-g:", "-proc:", "-implicit:", "-Xlint:", "-Xdoclint:", "-Xdiags:", "-Xplugin:", "-XD", "-J", "-A")


def javac_option_arity(flag: str) -> int:
    """
    Gets the number of values following `flag` on a javac command line, or -1 if javac does not know it.
    """
    arity = JAVAC_OPTIONS.get(flag)
    if arity is not None:
        return arity
    if flag.startswith(_JAVAC_PREFIXES):
        return 0
    if flag.startswith("--") and "=" in flag and JAVAC_OPTIONS.get(flag.split("=", 1)[0]) == 1:
        return 0
    return -1


def split_arguments(args: Sequence[str], arity: Callable[[str], int] = javac_option_arity) -> Tuple[List[str], List[str]]:
    """
    Splits a command line into its options and its trailing source files.
    """
    options: List[str] = []
    files: List[str] = []
    i = 0
    while i < len(args):
        arg = args[i]
        if arg.startswith("-"):
            n = max(arity(arg), 0)
            options.extend(args[i : i + 1 + n])
            i += 1 + n
        else:
            files.append(arg)
            i += 1
    return options, files


_positioned_re = re.compile(r"^(?P<file>.+?):(?P<line>\d+): (?P<kind>error|warning): (?P<message>.*)$")
_positionless_re = re.compile(r"^(?P<kind>error|warning): (?P<message>.*)$")
_note_re = re.compile(r"^Note: (?P<message>.*)$")
_count_re = re.compile(r"^\d+ (error|warning)s?$")
_code_re = re.compile(r"^\[([\w.-]+)\] ")


def _kind(text: str) -> str:
    return ERROR if text == "error" else WARNING


def parse_javac_output(output: str) -> List[Diagnostic]:
    """
    Converts the console output of javac into diagnostics. A positioned diagnostic is followed by the
    offending source line and a caret line giving the column, then by optional detail lines.
    """
    diagnostics: List[Diagnostic] = []
    current: Optional[dict] = None
    continuation = 0

    def flush():
        if current is not None:
            message = current["message"]
            m = _code_re.match(message)
            code = m.group(1) if m and current["kind"] == WARNING else None
            diagnostics.append(
                Diagnostic(current["kind"], message, current["source"], current["line"], current["column"], code)
            )

    for line in output.splitlines():
        m = _positioned_re.match(line)
        if m:
            flush()
            current = dict(
                kind=_kind(m.group("kind")),
                message=m.group("message"),
                source=m.group("file"),
                line=int(m.group("line")),
                column=None,
            )
            continuation = 0
            continue
        m = _positionless_re.match(line)
        if m:
            flush()
            current = dict(kind=_kind(m.group("kind")), message=m.group("message"), source=None, line=None, column=None)
            continuation = -1
            continue
        m = _note_re.match(line)
        if m:
            flush()
            current = None
            diagnostics.append(Diagnostic(NOTE, m.group("message")))
            continue
        if _count_re.match(line.strip()) or current is None:
            continue
        if continuation == 0:
            # echo of the source line
            continuation = 1
        elif continuation == 1 and line.strip() == "^":
            current["column"] = line.index("^") + 1
            continuation = 2
        elif line.strip():
            current["message"] += "\n" + line.rstrip()
    flush()
    return diagnostics


def _default_executable() -> str:
    configured = get_env("JCOMPILE_JAVAC")
    if configured:
        return configured
    java_home = get_env("JAVA_HOME")
    if java_home:
        candidate = join(java_home, "bin", "javac.exe" if os.name == "nt" else "javac")
        if exists(candidate):
            return candidate
    return "javac"


class JavacCompiler:
    """
    Runs the ``javac`` executable in a separate process. Options are passed through an argument
    file, except the ``-J`` options which are for the launcher and must be on the command line.
    """

    forked = True

    def __init__(self, executable: Optional[str] = None, timeout: Optional[float] = None):
        self.executable = executable or _default_executable()
        self.timeout = timeout

    def name(self) -> str:
        return "javac"

    def __str__(self):
        return f"javac ({self.executable})"

    @staticmethod
    def is_supported_option(flag: str) -> int:
        return javac_option_arity(flag)

    def compile(self, args: Sequence[str], listener: Listener) -> bool:
        launcher = [a for a in args if a.startswith("-J")]
        arguments = [a for a in args if not a.startswith("-J")]
        fd, argfile = tempfile.mkstemp(prefix="javac", suffix=".args")
        os.close(fd)
        try:
            java_argument_file.write_arguments(argfile, arguments)
            try:
                rc, output = run_and_capture([self.executable] + launcher + ["@" + argfile], timeout=self.timeout)
            except OSError as e:
                listener(Diagnostic(ERROR, f"Cannot run {self.executable}: {e}"))
                return False
        finally:
            delete_file(argfile)
        logvv(output)
        diagnostics = parse_javac_output(output)
        for diagnostic in diagnostics:
            listener(diagnostic)
        if rc != 0 and not any(d.is_error for d in diagnostics):
            listener(Diagnostic(ERROR, f"{basename(self.executable)} exited with status {rc}:\n{output.strip()}"))
        return rc == 0


class StubInvocation:
    def __init__(self, options: List[str], files: List[str]):
        self.options = options
        self.files = files

    @property
    def args(self) -> List[str]:
        return self.options + self.files

    def value_of(self, flag: str) -> Optional[str]:
        for i, option in enumerate(self.options[:-1]):
            if option == flag:
                return self.options[i + 1]
        return None

    def __repr__(self):
        return f"StubInvocation({self.options!r}, {self.files!r})"


_package_re = re.compile(r"^\s*package\s+([\w.]+)\s*;", re.MULTILINE)


class StubCompiler:
    """
    A backend for tests. It accepts every option, records each invocation and writes a fake class
    file for every source file into the ``-d`` directory. The content of a fake class file is
    derived from its source, so distinct sources produce distinct class files.

    `fail_on` scripts the n-th invocation (counting from 0) to report the given diagnostics and fail.
    """

    forked = False

    def __init__(self):
        self.invocations: List[StubInvocation] = []
        self._failures: Dict[int, List[Diagnostic]] = {}

    def name(self) -> str:
        return "stub"

    @staticmethod
    def is_supported_option(flag: str) -> int:
        return max(javac_option_arity(flag), 0)

    def fail_on(self, invocation: int, diagnostics: Iterable[Diagnostic]) -> StubCompiler:
        self._failures[invocation] = list(diagnostics)
        return self

    def compile(self, args: Sequence[str], listener: Listener) -> bool:
        options, files = split_arguments(args, self.is_supported_option)
        index = len(self.invocations)
        invocation = StubInvocation(options, files)
        self.invocations.append(invocation)
        logv(f"[stub compiler invocation {index}: {len(files)} files]")
        failure = self._failures.get(index)
        if failure is not None:
            for diagnostic in failure:
                listener(diagnostic)
            return not any(d.is_error for d in failure)
        output = invocation.value_of("-d")
        if output is None:
            return True
        for source in files:
            self._write_class(source, output)
        return True

    @staticmethod
    def _write_class(source: str, output: str) -> None:
        with open(source, "rb") as fp:
            content = fp.read()
        stem = splitext(basename(source))[0]
        if basename(source) == MODULE_INFO_JAVA:
            target = join(output, MODULE_INFO_CLASS)
        else:
            m = _package_re.search(content.decode("utf-8", errors="replace"))
            package_dir = join(*m.group(1).split(".")) if m else ""
            target = join(output, package_dir, stem + ".class")
        ensure_dir_exists(os.path.dirname(target))
        with open(target, "wb") as fp:
            fp.write(b"\xca\xfe\xba\xbe" + hashlib.sha256(content).digest())


_compilers: Dict[str, Callable[[Optional[object]], object]] = {
    "javac": lambda configuration: JavacCompiler(getattr(configuration, "executable", None)),
    "stub": lambda configuration: StubCompiler(),
}


def register_compiler(compiler_id: str, factory: Callable[[Optional[object]], object]) -> None:
    """
    Registers a backend factory. The factory receives the compiler configuration, or None.
    """
    _compilers[compiler_id] = factory


def get_compiler(compiler_id: str, configuration=None):
    """
    Creates the backend registered as `compiler_id`.
    """
    factory = _compilers.get(compiler_id)
    if factory is None:
        raise ConfigurationError(
            f"Unknown compiler '{compiler_id}'. Available compilers are: {', '.join(sorted(_compilers))}"
        )
    return factory(configuration)
