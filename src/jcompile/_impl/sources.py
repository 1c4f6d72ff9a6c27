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
    "MAIN",
    "TEST",
    "SourceDirectory",
    "SourcesForRelease",
    "ModuleInfoOverwrite",
    "ResolvedSources",
    "SourceSetResolver",
    "PathFilter",
]

import os
import re
from dataclasses import dataclass, field
from os.path import abspath, exists, isdir, join, normpath
from typing import Dict, List, Optional, Sequence, Tuple

from .context import BuildContext
from .errors import ConfigurationError
from .modules import MODULE_INFO_JAVA, read_module_info_file
from .release import JavaRelease
from .support.logging import logv, logvv
from .util import list_files

MAIN = "main"
TEST = "test"

DEFAULT_INCLUDES = ("**/*.java",)


@dataclass(frozen=True)
class SourceDirectory:
    """
    A configured source root. When `module` is set, all files under the root belong to that module.
    `release` is the Java release targeted by the files of this root, or None for the build-wide release.
    """

    root: str
    scope: str = MAIN
    module: Optional[str] = None
    release: Optional[JavaRelease] = None
    includes: Tuple[str, ...] = ()
    excludes: Tuple[str, ...] = ()

    def __post_init__(self):
        if self.scope not in (MAIN, TEST):
            raise ConfigurationError(f"Unknown scope '{self.scope}' for source directory {self.root}")

    @property
    def module_info(self) -> str:
        return join(self.root, MODULE_INFO_JAVA)


def _glob_to_regex(pattern: str) -> str:
    i, n = 0, len(pattern)
    out = []
    while i < n:
        c = pattern[i]
        if pattern.startswith("**/", i):
            out.append("(?:.*/)?")
            i += 3
            continue
        if pattern.startswith("**", i):
            out.append(".*")
            i += 2
            continue
        if c == "*":
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        else:
            out.append(re.escape(c))
        i += 1
    return "".join(out) + r"\Z"


class PathFilter:
    """
    Include/exclude glob patterns matched against "/" separated paths relative to a source root.
    ``*`` and ``?`` do not match a separator, ``**`` spans directories. A pattern ending with
    ``/`` matches everything below that directory.
    """

    def __init__(self, includes: Sequence[str] = (), excludes: Sequence[str] = ()):
        self.includes = [re.compile(_glob_to_regex(self._normalize(p))) for p in (includes or DEFAULT_INCLUDES)]
        self.excludes = [re.compile(_glob_to_regex(self._normalize(p))) for p in excludes]

    @staticmethod
    def _normalize(pattern: str) -> str:
        pattern = pattern.replace("\\", "/")
        if pattern.endswith("/"):
            pattern += "**"
        return pattern

    def matches(self, relative_path: str) -> bool:
        return any(p.match(relative_path) for p in self.includes) and not any(
            p.match(relative_path) for p in self.excludes
        )


@dataclass
class SourcesForRelease:
    """
    The files compiled in one pass for one release. `modules` maps each module declared by the
    roots of this unit to its roots. `output_directory` receives the class files of this unit.
    """

    release: JavaRelease
    files: List[str]
    roots: List[SourceDirectory]
    output_directory: str
    modules: Dict[str, List[str]] = field(default_factory=dict)
    module_infos: Dict[str, str] = field(default_factory=dict)
    """module name to the module-info.java declaring it"""
    patched_module: Optional[str] = None
    """set when test sources without their own module declaration patch the main module"""

    @property
    def is_modular(self) -> bool:
        return bool(self.modules) or self.patched_module is not None

    @property
    def module_name(self) -> Optional[str]:
        if len(self.modules) == 1:
            return next(iter(self.modules))
        return self.patched_module

    def __str__(self):
        return f"release {self.release} ({len(self.files)} files)"


@dataclass
class ModuleInfoOverwrite:
    """
    A test module-info.java replacing the descriptor of the main module while the tests compile.
    """

    test_module_info: str
    main_module: str
    main_output_directory: str


@dataclass
class ResolvedSources:
    scope: str
    units: List[SourcesForRelease]
    main_module: Optional[str] = None
    overwrite: Optional[ModuleInfoOverwrite] = None

    @property
    def files(self) -> List[str]:
        return [f for u in self.units for f in u.files]

    def is_empty(self) -> bool:
        return not self.files


class SourceSetResolver:
    """
    Enumerates the files of the configured source directories and groups them by release.

    :param directories: all configured source directories, of both scopes
    :param output_directory: where main classes are written
    :param test_output_directory: where test classes are written
    :param release: the build-wide release used by directories that do not declare one
    """

    def __init__(
        self,
        directories: Sequence[SourceDirectory],
        output_directory: str,
        test_output_directory: Optional[str] = None,
        release: Optional[JavaRelease] = None,
        context: Optional[BuildContext] = None,
    ):
        self.directories = list(directories)
        self.output_directory = abspath(output_directory)
        self.test_output_directory = abspath(test_output_directory) if test_output_directory else None
        self.release = release
        self.context = context or BuildContext()

    def _output_root(self, scope: str) -> str:
        if scope == TEST:
            if self.test_output_directory is None:
                raise ConfigurationError("No output directory configured for test classes")
            return self.test_output_directory
        return self.output_directory

    def _release_of(self, directory: SourceDirectory) -> JavaRelease:
        if directory.release is not None:
            return directory.release
        return self.release if self.release is not None else JavaRelease.default()

    def _declared_module(self, directory: SourceDirectory) -> Optional[str]:
        if directory.module:
            return directory.module
        if exists(directory.module_info):
            return read_module_info_file(directory.module_info).name
        return None

    def main_module_name(self) -> Optional[str]:
        """
        Gets the module declared by the main source directories, cached in the build context.
        """

        def compute():
            names = sorted({m for d in self.directories if d.scope == MAIN for m in [self._declared_module(d)] if m})
            if not names:
                return None
            if len(names) > 1:
                logv(f"Main sources declare several modules: {', '.join(names)}")
                return None
            return names[0]

        return self.context.main_module_name(compute)

    def output_directory_for(self, scope: str, release: JavaRelease, base: JavaRelease) -> str:
        root = self._output_root(scope)
        if release == base or release.is_default():
            return root
        return join(root, "META-INF", "versions", str(release))

    def _check_collisions(self, units: List[SourcesForRelease]) -> None:
        outputs = {normpath(self.output_directory)}
        if self.test_output_directory:
            outputs.add(normpath(self.test_output_directory))
        outputs.update(normpath(u.output_directory) for u in units)
        for d in self.directories:
            root = normpath(abspath(d.root))
            for out in outputs:
                if root == out or root.startswith(out + os.sep):
                    raise ConfigurationError(f"Source directory {d.root} collides with the output directory {out}")

        claims: Dict[Tuple[str, str, JavaRelease], str] = {}
        for d in self.directories:
            if not exists(d.module_info):
                continue
            module = self._declared_module(d)
            key = (d.scope, module, self._release_of(d))
            if key in claims and normpath(claims[key]) != normpath(d.root):
                raise ConfigurationError(
                    f"Module {module} is declared by both {claims[key]} and {d.root} in the {d.scope} sources"
                )
            claims[key] = d.root

    def resolve(self, scope: str) -> ResolvedSources:
        """
        Resolves the source files of `scope` into units sorted by ascending release.
        """
        by_release: Dict[JavaRelease, List[SourceDirectory]] = {}
        for d in self.directories:
            if d.scope != scope:
                continue
            if not isdir(d.root):
                logvv(f"Skipping non-existent source directory {d.root}")
                continue
            by_release.setdefault(self._release_of(d), []).append(d)

        releases = sorted(by_release.keys())
        if len(releases) > 1 and any(r.is_default() for r in releases):
            no_release = [d.root for d in by_release[JavaRelease.default()]]
            raise ConfigurationError(
                f"Source directories {', '.join(no_release)} do not declare a release while others do; "
                "configure the release option"
            )

        main_module = self.main_module_name()
        overwrite = None
        if scope == TEST and main_module is not None:
            for d in self.directories:
                if d.scope == TEST and isdir(d.root) and exists(d.module_info):
                    overwrite = ModuleInfoOverwrite(abspath(d.module_info), main_module, self.output_directory)
                    break

        units = []
        base = releases[0] if releases else None
        for release in releases:
            roots = by_release[release]
            files: List[str] = []
            seen = set()
            modules: Dict[str, List[str]] = {}
            module_infos: Dict[str, str] = {}
            patched = None
            for d in roots:
                root = abspath(d.root)
                path_filter = PathFilter(d.includes, d.excludes)
                for rel in list_files(root):
                    if not path_filter.matches(rel):
                        continue
                    path = join(root, rel)
                    if path in seen:
                        continue
                    seen.add(path)
                    files.append(path)
                module = self._declared_module(d)
                if module and scope == TEST and not exists(d.module_info):
                    # a test directory associated with a module without declaring it patches that module
                    patched = module
                elif module:
                    modules.setdefault(module, []).append(root)
                    if exists(d.module_info):
                        module_infos[module] = abspath(d.module_info)

            output = self.output_directory_for(scope, release, base)
            unit = SourcesForRelease(release, files, roots, output, modules, module_infos)
            unit.patched_module = patched
            if scope == TEST and main_module is not None and (not modules and patched is None or overwrite is not None):
                # the tests are compiled as a patch of the main module, an overwriting
                # test module-info only replaces the main descriptor while they compile
                unit.modules = {}
                unit.patched_module = main_module
            units.append(unit)

        for unit in units:
            for module, roots in unit.modules.items():
                self.context.project_modules.setdefault(module, [])
                self.context.project_modules[module].extend(r for r in roots if r not in self.context.project_modules[module])
        self._check_collisions(units)
        return ResolvedSources(scope, units, main_module, overwrite)
