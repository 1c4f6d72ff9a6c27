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
Parser and resolver for ``module-info-patch.maven`` files.

A patch file declares the options needed for compiling and running the tests of a module
whose test sources do not have their own module declaration::

    patch-module org.foo {
        add-modules TEST-MODULE-PATH;
        add-reads TEST-MODULE-PATH;
        add-exports org.foo.internal to TEST-MODULE-PATH, SUBPROJECT-MODULES;
        add-opens org.foo.model to org.junit.platform.commons;
        limit-modules java.base, java.logging;
    }

Some values are placeholders resolved against the dependencies of the build when the options
are synthesized, see `ModuleInfoPatch.resolve`.
"""

from __future__ import annotations

__all__ = [
    "ALL_MODULE_PATH",
    "ALL_UNNAMED",
    "SUBPROJECT_MODULES",
    "TEST_MODULE_PATH",
    "PATCH_FILE_NAME",
    "ModuleInfoPatch",
    "ModulePatchOptions",
]

import re
from os.path import exists, join
from typing import Collection, Dict, Iterator, List, Optional, Set, Tuple

from .dependencies import TEST, TEST_ONLY, TEST_RUNTIME, DependencyResolution
from .errors import ConfigurationError, ModuleInfoPatchError
from .modules import JavaModuleDescriptor, get_transitive_closure, is_valid_module_name
from .support.logging import logvv

ALL_MODULE_PATH = "ALL-MODULE-PATH"
ALL_UNNAMED = "ALL-UNNAMED"
SUBPROJECT_MODULES = "SUBPROJECT-MODULES"
TEST_MODULE_PATH = "TEST-MODULE-PATH"

PATCH_FILE_NAME = "module-info-patch.maven"

SENTINELS = frozenset([ALL_MODULE_PATH, ALL_UNNAMED, SUBPROJECT_MODULES, TEST_MODULE_PATH])

_ADD_MODULES_SPECIAL_CASES = frozenset([ALL_MODULE_PATH, TEST_MODULE_PATH])
_ADD_READS_SPECIAL_CASES = frozenset([TEST_MODULE_PATH])
_ADD_EXPORTS_SPECIAL_CASES = frozenset([ALL_UNNAMED, TEST_MODULE_PATH, SUBPROJECT_MODULES])

# bit mask of the stages a value applies to
_COMPILE = 1
_RUNTIME = 2

_token_re = re.compile(
    r"(?P<comment>//[^\n]*|/\*.*?\*/)|(?P<space>\s+)|(?P<word>[^\s{},;/]+)|(?P<punct>[{},;])", re.DOTALL
)


def _tokenize(text: str, file: Optional[str]) -> Iterator[Tuple[str, int]]:
    """
    Yields (token, line) pairs. Words and the punctuation characters are tokens, comments are skipped.
    """
    line = 1
    pos = 0
    while pos < len(text):
        m = _token_re.match(text, pos)
        if not m:
            raise ModuleInfoPatchError(f'Unexpected character "{text[pos]}"', file, line)
        if m.lastgroup in ("word", "punct"):
            yield m.group(), line
        line += m.group().count("\n")
        pos = m.end()


class _Tokens:
    def __init__(self, text: str, file: Optional[str]):
        self.file = file
        self._tokens = list(_tokenize(text, file))
        self._index = 0
        self.line = 1

    def next(self) -> Optional[str]:
        if self._index >= len(self._tokens):
            return None
        token, self.line = self._tokens[self._index]
        self._index += 1
        return token

    def error(self, message: str) -> ModuleInfoPatchError:
        return ModuleInfoPatchError(message, self.file, self.line)

    def expect(self, expected: str) -> None:
        if self.next() != expected:
            raise self.error(f'Expected "{expected}"')

    def name(self, module: bool) -> str:
        token = self.next()
        kind = "module" if module else "package"
        if token is None or token in "{},;":
            raise self.error(f"Expected a {kind} name")
        return self.valid_name(token, module)

    def valid_name(self, name: str, module: bool) -> str:
        if not is_valid_module_name(name):
            raise self.error(f'Invalid {"module" if module else "package"} name "{name}"')
        return name


class _Directives:
    """
    The option values of one stage (compilation or execution) of a patched module.
    """

    def __init__(self):
        self.add_modules: List[str] = []
        self.limit_modules: List[str] = []
        self.add_reads: List[str] = []
        self.add_exports: Dict[str, List[str]] = {}
        self.add_opens: Dict[str, List[str]] = {}

    def copy(self) -> _Directives:
        other = _Directives()
        other.add_modules = list(self.add_modules)
        other.limit_modules = list(self.limit_modules)
        other.add_reads = list(self.add_reads)
        other.add_exports = {k: list(v) for k, v in self.add_exports.items()}
        other.add_opens = {k: list(v) for k, v in self.add_opens.items()}
        return other


def _add(values: List[str], value: str) -> bool:
    if value in values:
        return False
    values.append(value)
    return True


def _add_for(compile_values: List[str], runtime_values: List[str], mask: int, value: str) -> bool:
    modified = False
    if mask & _COMPILE:
        modified = _add(compile_values, value)
    if mask & _RUNTIME:
        modified = _add(runtime_values, value) or modified
    return modified


def _required_modules(resolution: DependencyResolution, descriptor: JavaModuleDescriptor) -> Set[str]:
    """
    Gets the modules required by `descriptor`, including those they require transitively.
    """
    observable = [d for d in (resolution.descriptor(dep) for dep in resolution.dependencies) if d is not None]
    names = set(descriptor.requires)
    closure = get_transitive_closure(sorted(names), observable, lambda modifiers: "transitive" in modifiers, strict=False)
    for m in closure:
        names.update(name for name, modifiers in m.requires.items() if "transitive" in modifiers)
    return names


class ModulePatchOptions:
    """
    The options of a patched module after resolution of the placeholders, for compilation and for execution.
    """

    def __init__(self, module_name: str, compile: _Directives, runtime: _Directives):  # pylint: disable=redefined-builtin
        self.module_name = module_name
        self.compile = compile
        self.runtime = runtime

    def _options(self, directives: _Directives, shared: bool, opens: bool) -> List[Tuple[str, str]]:
        options = []
        if shared and directives.add_modules:
            options.append(("--add-modules", ",".join(directives.add_modules)))
        if shared and directives.limit_modules:
            options.append(("--limit-modules", ",".join(directives.limit_modules)))
        if directives.add_reads:
            options.append(("--add-reads", f"{self.module_name}={','.join(directives.add_reads)}"))
        for package, targets in directives.add_exports.items():
            if targets:
                options.append(("--add-exports", f"{self.module_name}/{package}={','.join(targets)}"))
        if opens:
            # not a compiler option
            for package, targets in directives.add_opens.items():
                if targets:
                    options.append(("--add-opens", f"{self.module_name}/{package}={','.join(targets)}"))
        return options

    def compile_options(self, shared: bool = True) -> List[Tuple[str, str]]:
        """
        Gets the (flag, value) pairs for the compiler. The add-modules and limit-modules values are
        shared by all patches of a build and only emitted when `shared` is True.
        """
        return self._options(self.compile, shared, opens=False)

    def runtime_lines(self, shared: bool = True) -> List[str]:
        """
        Gets the "--option value" lines for launching the tests.
        """
        return [f"{flag} {value}" for flag, value in self._options(self.runtime, shared, opens=True)]


class ModuleInfoPatch:
    """
    The parsed content of a module-info-patch file. Instances are not modified after parsing;
    `resolve` computes the effective options against the dependencies of a build.

    The add-modules and limit-modules values of all patches loaded with the same `shared`
    lists are unioned.
    """

    def __init__(self, module_name: Optional[str] = None, shared_add_modules: Optional[List[str]] = None,
                 shared_limit_modules: Optional[List[str]] = None):
        self.module_name = module_name
        self.add_modules: List[str] = shared_add_modules if shared_add_modules is not None else []
        self.limit_modules: List[str] = shared_limit_modules if shared_limit_modules is not None else []
        self.add_reads: List[str] = []
        self.add_exports: Dict[str, List[str]] = {}
        self.add_opens: Dict[str, List[str]] = {}
        self.file: Optional[str] = None

    def __str__(self):
        return f"patch-module {self.module_name}"

    def set_to_defaults(self) -> ModuleInfoPatch:
        """
        The declarations used when a module has no patch file: the test dependencies are added and read.
        """
        _add(self.add_modules, TEST_MODULE_PATH)
        _add(self.add_reads, TEST_MODULE_PATH)
        return self

    @staticmethod
    def find(roots: Collection[str]) -> Optional[str]:
        """
        Gets the first patch file found at the top of `roots`.
        """
        for root in roots:
            candidate = join(root, PATCH_FILE_NAME)
            if exists(candidate):
                return candidate
        return None

    def load_file(self, path: str) -> ModuleInfoPatch:
        with open(path, encoding="utf-8") as fp:
            return self.load(fp.read(), path)

    def load(self, text: str, file: Optional[str] = None) -> ModuleInfoPatch:
        self.file = file
        tokens = _Tokens(text, file)
        tokens.expect("patch-module")
        self.module_name = tokens.name(module=True)
        tokens.expect("{")
        while True:
            keyword = tokens.next()
            if keyword == "}":
                break
            if keyword is None:
                raise tokens.error('Expected "}"')
            if keyword == "add-modules":
                self._read_module_list(tokens, self.add_modules, _ADD_MODULES_SPECIAL_CASES)
            elif keyword == "limit-modules":
                self._read_module_list(tokens, self.limit_modules, frozenset())
            elif keyword == "add-reads":
                self._read_module_list(tokens, self.add_reads, _ADD_READS_SPECIAL_CASES)
            elif keyword == "add-exports":
                self._read_qualified(tokens, self.add_exports, _ADD_EXPORTS_SPECIAL_CASES)
            elif keyword == "add-opens":
                self._read_qualified(tokens, self.add_opens, frozenset())
            else:
                raise tokens.error(f'Unknown keyword "{keyword}"')
        trailing = tokens.next()
        if trailing is not None:
            raise tokens.error(f'Expected end of file but found "{trailing}"')
        logvv(f"Loaded {self} from {file}")
        return self

    @staticmethod
    def _read_module_list(tokens: _Tokens, target: List[str], special_cases: Collection[str]) -> None:
        expect_name = True
        while True:
            token = tokens.next()
            if token == ";":
                if expect_name:
                    raise tokens.error("Expected a module name")
                return
            if token is None or token in "{}":
                raise tokens.error("Missing ';' character")
            if token == ",":
                if expect_name:
                    raise tokens.error("Expected a module name")
                expect_name = True
                continue
            if token not in special_cases:
                tokens.valid_name(token, module=True)
            _add(target, token)
            expect_name = False

    def _read_qualified(self, tokens: _Tokens, target: Dict[str, List[str]], special_cases: Collection[str]) -> None:
        package = tokens.name(module=False)
        tokens.expect("to")
        self._read_module_list(tokens, target.setdefault(package, []), special_cases)

    def _declared_modules(self) -> Iterator[str]:
        yield from self.add_modules
        yield from self.limit_modules
        yield from self.add_reads
        for targets in self.add_exports.values():
            yield from targets
        for targets in self.add_opens.values():
            yield from targets

    def resolve(
        self,
        resolution: Optional[DependencyResolution],
        project_modules: Collection[str] = (),
        simplify: bool = True,
    ) -> ModulePatchOptions:
        """
        Expands the placeholders and checks that every referenced module exists.

        ``TEST-MODULE-PATH`` stands for the modules of the test dependencies: those in the ``test`` and
        ``test-only`` scopes at compile time, those in the ``test`` and ``test-runtime`` scopes at run time.
        Test dependencies that are not modules contribute ``ALL-UNNAMED`` to the reads and the exports.
        ``SUBPROJECT-MODULES`` stands for the other modules compiled by the build.

        When `simplify` is True, a module already required by a module added before is not added again.
        This only shortens the options.
        """
        compile_dirs = _Directives()
        compile_dirs.add_modules = [m for m in self.add_modules if m != TEST_MODULE_PATH]
        compile_dirs.limit_modules = list(self.limit_modules)
        compile_dirs.add_reads = [m for m in self.add_reads if m != TEST_MODULE_PATH]
        compile_dirs.add_exports = {
            p: [m for m in targets if m not in (TEST_MODULE_PATH, SUBPROJECT_MODULES)] for p, targets in self.add_exports.items()
        }
        compile_dirs.add_opens = {p: list(targets) for p, targets in self.add_opens.items()}
        runtime_dirs = compile_dirs.copy()

        for package, targets in self.add_exports.items():
            if SUBPROJECT_MODULES in targets:
                for module in project_modules:
                    if module != self.module_name:
                        _add_for(compile_dirs.add_exports[package], runtime_dirs.add_exports[package], _COMPILE | _RUNTIME, module)

        exports_to_test_module_path = [p for p, targets in self.add_exports.items() if TEST_MODULE_PATH in targets]
        add_all = TEST_MODULE_PATH in self.add_modules
        read_all = TEST_MODULE_PATH in self.add_reads
        known = set(project_modules)
        if self.module_name:
            known.add(self.module_name)
        if resolution is not None:
            known.update(resolution.system_modules)
            for dep in resolution.dependencies:
                name = resolution.module_name(dep)
                if name:
                    known.add(name)
                    descriptor = resolution.descriptor(dep)
                    if descriptor is not None:
                        known.update(descriptor.requires.keys())

        if resolution is not None and (add_all or read_all or exports_to_test_module_path):
            done: Dict[str, int] = {}
            unnamed_mask = 0
            for dep in resolution.dependencies:
                if dep.scope == TEST:
                    mask = _COMPILE | _RUNTIME
                elif dep.scope == TEST_ONLY:
                    mask = _COMPILE
                elif dep.scope == TEST_RUNTIME:
                    mask = _RUNTIME
                else:
                    # the main module declaration already covers the other scopes
                    continue
                module = resolution.module_name(dep)
                if module is None:
                    unnamed_mask |= mask
                    continue
                previous = done.get(module, 0)
                if previous & mask == mask:
                    continue
                mask &= ~previous
                done[module] = previous | mask
                modified = False
                if add_all:
                    modified = _add_for(compile_dirs.add_modules, runtime_dirs.add_modules, mask, module) or modified
                if read_all:
                    modified = _add_for(compile_dirs.add_reads, runtime_dirs.add_reads, mask, module) or modified
                for package in exports_to_test_module_path:
                    modified = _add_for(
                        compile_dirs.add_exports[package], runtime_dirs.add_exports[package], mask, module
                    ) or modified
                if simplify and modified:
                    descriptor = resolution.descriptor(dep)
                    if descriptor is not None:
                        for required in _required_modules(resolution, descriptor):
                            done[required] = done.get(required, 0) | mask
            if unnamed_mask:
                if read_all:
                    _add_for(compile_dirs.add_reads, runtime_dirs.add_reads, unnamed_mask, ALL_UNNAMED)
                for package in exports_to_test_module_path:
                    _add_for(compile_dirs.add_exports[package], runtime_dirs.add_exports[package], unnamed_mask, ALL_UNNAMED)

        for module in self._declared_modules():
            if module in SENTINELS or module in known or module.startswith(("java.", "jdk.")):
                continue
            location = f" in {self.file}" if self.file else ""
            raise ConfigurationError(
                f"Module {module} referenced by {self}{location} is neither a dependency nor a module of the project"
            )
        return ModulePatchOptions(self.module_name, compile_dirs, runtime_dirs)
