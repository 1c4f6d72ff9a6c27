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
    "COMPILE",
    "COMPILE_ONLY",
    "PROVIDED",
    "RUNTIME",
    "TEST",
    "TEST_ONLY",
    "TEST_RUNTIME",
    "ResolvedDependency",
    "DependencyResolution",
    "UNSPECIFIED_VERSION",
]

import hashlib
import os
from dataclasses import dataclass
from os.path import isdir, isfile, join
from typing import Dict, List, Optional, Sequence

from .errors import ConfigurationError
from .modules import JavaModuleDescriptor, describe_jar
from .util import file_digest, list_files

COMPILE = "compile"
COMPILE_ONLY = "compile-only"
PROVIDED = "provided"
RUNTIME = "runtime"
TEST = "test"
TEST_ONLY = "test-only"
TEST_RUNTIME = "test-runtime"

# the version of artifacts given by path only, their content stands in for it
UNSPECIFIED_VERSION = "unspecified"

_all_scopes = (COMPILE, COMPILE_ONLY, PROVIDED, RUNTIME, TEST, TEST_ONLY, TEST_RUNTIME)

_stages = {
    # main compilation
    "main": (COMPILE, COMPILE_ONLY, PROVIDED),
    # test compilation sees the main class path plus the test scopes available at compile time
    "test": (COMPILE, COMPILE_ONLY, PROVIDED, TEST, TEST_ONLY),
}


def _content_fingerprint(path: str) -> str:
    """
    Digest of a jar file, or of the names, sizes and modification times of the files of a class directory.
    """
    if isfile(path):
        return file_digest(path)
    if isdir(path):
        h = hashlib.sha256()
        for rel in list_files(path):
            st = os.stat(join(path, rel))
            h.update(f"{rel}:{st.st_size}:{st.st_mtime_ns}\n".encode("utf-8"))
        return h.hexdigest()
    return "absent"


@dataclass(frozen=True)
class ResolvedDependency:
    """
    An artifact resolved by the build system. `module_name` and `descriptor` may be provided by the
    resolver; otherwise they are derived from the artifact itself when first needed.
    """

    group_id: str
    artifact_id: str
    version: str
    scope: str
    path: str
    module_name: Optional[str] = None
    descriptor: Optional[JavaModuleDescriptor] = None

    def __post_init__(self):
        if self.scope not in _all_scopes:
            raise ConfigurationError(f"Unknown dependency scope '{self.scope}' for {self.identity}")

    @property
    def identity(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.version}"

    def __str__(self):
        return f"{self.identity} ({self.scope})"


class DependencyResolution:
    """
    The resolved dependencies of the project being compiled, as handed over by the build system.

    `system_modules` names modules that are observable without being on the module path, such as the
    modules of the JDK used for compilation.
    """

    def __init__(self, dependencies: Sequence[ResolvedDependency], system_modules: Sequence[str] = ()):
        self.dependencies = list(dependencies)
        self.system_modules = frozenset(system_modules)
        self._descriptors: Dict[str, Optional[JavaModuleDescriptor]] = {}

    def for_stage(self, stage: str) -> List[ResolvedDependency]:
        """
        Gets the dependencies visible in `stage`, either "main" or "test", in resolution order.
        """
        scopes = _stages.get(stage)
        if scopes is None:
            raise ValueError(f"Unknown stage '{stage}'")
        return [d for d in self.dependencies if d.scope in scopes]

    def descriptor(self, dep: ResolvedDependency) -> Optional[JavaModuleDescriptor]:
        if dep.descriptor is not None:
            return dep.descriptor
        key = dep.path
        if key not in self._descriptors:
            self._descriptors[key] = describe_jar(dep.path) if dep.module_name is None else None
        return self._descriptors[key]

    def module_name(self, dep: ResolvedDependency) -> Optional[str]:
        """
        Gets the module name of `dep`, or None if it belongs to the unnamed module.
        """
        if dep.module_name is not None:
            return dep.module_name
        descriptor = self.descriptor(dep)
        return descriptor.name if descriptor is not None else None

    def identities(self, stage: Optional[str] = None) -> List[str]:
        """
        Gets the sorted identities, including versions and scopes, of the dependencies of `stage` or of all dependencies.
        Artifacts without a version are identified by a digest of their content.
        """
        deps = self.dependencies if stage is None else self.for_stage(stage)
        result = []
        for d in deps:
            version = d.version
            if version == UNSPECIFIED_VERSION:
                version = "sha256-" + _content_fingerprint(d.path)[:16]
            result.append(f"{d.group_id}:{d.artifact_id}:{version}:{d.scope}")
        return sorted(result)
