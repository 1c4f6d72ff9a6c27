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
    "CompilerConfiguration",
    "PomReader",
    "load_configuration",
    "IMPLICIT_VALUES",
    "PROC_VALUES",
]

import re
from dataclasses import dataclass, field
from os.path import abspath, dirname, isabs, join, normpath
from typing import Dict, List, Optional, cast

from defusedxml.ElementTree import parse as etreeParse

from .errors import ConfigurationError
from .release import JavaRelease
from .sources import MAIN, TEST, SourceDirectory
from .support.envvars import str_to_bool
from .support.logging import logv

IMPLICIT_VALUES = ("none", "class")
PROC_VALUES = ("none", "only", "full")

COMPILER_PLUGIN = "maven-compiler-plugin"


@dataclass
class CompilerConfiguration:
    """
    The settings of a compilation. Relative paths are resolved against `project_directory`.
    """

    source_directories: List[SourceDirectory] = field(default_factory=list)
    project_directory: str = "."
    build_directory: str = "target"
    output_directory: str = join("target", "classes")
    test_output_directory: str = join("target", "test-classes")
    status_directory: Optional[str] = None
    """Where the build status records are kept, by default a directory in `build_directory`"""

    release: Optional[str] = None
    source: Optional[str] = None
    target: Optional[str] = None
    fork: bool = False
    executable: Optional[str] = None
    compiler_id: str = "javac"
    implicit: Optional[str] = None
    proc: Optional[str] = None
    annotation_processor_paths: List[str] = field(default_factory=list)
    use_module_path: bool = True
    fail_on_error: bool = True
    meminitial: Optional[str] = None
    maxmem: Optional[str] = None
    encoding: Optional[str] = None
    parameters: bool = False
    enable_preview: bool = False
    debug: bool = True
    debuglevel: Optional[str] = None
    show_warnings: bool = True
    verbose: bool = False
    compiler_args: List[str] = field(default_factory=list)
    incremental_compilation: str = "options,dependencies,sources"
    stale_millis: int = 0

    def path(self, p: str) -> str:
        return normpath(p if isabs(p) else join(abspath(self.project_directory), p))

    @property
    def status_path(self) -> str:
        return self.path(self.status_directory or join(self.build_directory, "jcompile-status"))

    def release_value(self) -> Optional[JavaRelease]:
        if self.release is None:
            return None
        return JavaRelease(self.release, context="release")

    def validate(self) -> CompilerConfiguration:
        if self.implicit is not None and self.implicit not in IMPLICIT_VALUES:
            raise ConfigurationError(f"Invalid implicit value '{self.implicit}', expected one of {', '.join(IMPLICIT_VALUES)}")
        if self.proc is not None and self.proc not in PROC_VALUES:
            raise ConfigurationError(f"Invalid proc value '{self.proc}', expected one of {', '.join(PROC_VALUES)}")
        if self.stale_millis < 0:
            raise ConfigurationError(f"staleMillis must not be negative: {self.stale_millis}")
        self.release_value()
        return self


class PomReader:
    """
    A read-only convenience wrapper around the ElementTree elements of a pom.xml file.
    Paths are relative ElementTree paths without namespace prefixes.
    """

    DefaultNamespace = "http://maven.apache.org/POM/4.0.0"

    def __init__(self, path: str):
        self._path = path
        self._pom = etreeParse(path)
        self._element = self._pom.getroot()
        m = re.match(r"\{(.*)\}", self._element.tag)
        self._namespaces = {"": m.group(1)} if m else None

    @property
    def path(self) -> str:
        return self._path

    def _wrap(self, e) -> PomReader:
        result = self.__class__.__new__(self.__class__)
        result._path = self._path  # pylint: disable=protected-access
        result._pom = self._pom  # pylint: disable=protected-access
        result._element = e  # pylint: disable=protected-access
        result._namespaces = self._namespaces  # pylint: disable=protected-access
        return result

    def __getitem__(self, path: str) -> PomReader:
        if (e := self._element.find(path, namespaces=self._namespaces)) is not None:
            return self._wrap(e)
        raise KeyError(path)

    def get(self, path: str, default: None | PomReader = None) -> None | PomReader:
        try:
            return self[path]
        except KeyError:
            return default

    def getall(self, path: str) -> List[PomReader]:
        return [self._wrap(e) for e in self._element.findall(path, namespaces=self._namespaces)]

    def get_text(self, path: str, default: Optional[str] = None) -> Optional[str]:
        """
        Return the stripped text content of the child element named 'path', or the default if
        that element does not exist or is empty.
        """
        try:
            text = cast(str, self[path].text)
        except KeyError:
            return default
        text = text.strip() if text else ""
        return text if text else default

    @property
    def tag(self) -> str:
        return self._element.tag.split("}")[-1]

    @property
    def text(self) -> Optional[str]:
        return self._element.text

    def children(self) -> List[PomReader]:
        return [self._wrap(e) for e in self._element]


_property_re = re.compile(r"\$\{([^}]+)\}")


def _interpolate(value: Optional[str], properties: Dict[str, str]) -> Optional[str]:
    if value is None:
        return None
    return _property_re.sub(lambda m: properties.get(m.group(1), m.group(0)), value)


def _compiler_plugin_configuration(pom: PomReader) -> Optional[PomReader]:
    for plugins in ("build/plugins/plugin", "build/pluginManagement/plugins/plugin"):
        for plugin in pom.getall(plugins):
            if plugin.get_text("artifactId") == COMPILER_PLUGIN:
                configuration = plugin.get("configuration")
                if configuration is not None:
                    return configuration
    return None


def load_configuration(pom_path: str) -> CompilerConfiguration:
    """
    Reads the compiler settings of the project described by `pom_path`: the ``maven.compiler.*``
    properties, the ``<build>`` directories and the ``configuration`` of the compiler plugin.
    The plugin configuration takes precedence over the properties.
    """
    pom = PomReader(pom_path)
    project_dir = dirname(abspath(pom_path))
    properties: Dict[str, str] = {"basedir": project_dir, "project.basedir": project_dir}
    props = pom.get("properties")
    if props is not None:
        for prop in props.children():
            properties[prop.tag] = (prop.text or "").strip()

    build_dir = _interpolate(pom.get_text("build/directory", "target"), properties)
    properties["project.build.directory"] = build_dir
    config = CompilerConfiguration(project_directory=project_dir, build_directory=build_dir)
    config.output_directory = _interpolate(pom.get_text("build/outputDirectory"), properties) or join(build_dir, "classes")
    config.test_output_directory = (
        _interpolate(pom.get_text("build/testOutputDirectory"), properties) or join(build_dir, "test-classes")
    )

    plugin = _compiler_plugin_configuration(pom)

    def setting(name: str, property_name: Optional[str] = None) -> Optional[str]:
        value = plugin.get_text(name) if plugin is not None else None
        if value is None and property_name is not None:
            value = properties.get(property_name) or None
        return _interpolate(value, properties)

    def flag(name: str, default: bool, property_name: Optional[str] = None) -> bool:
        value = setting(name, property_name)
        if value is None:
            return default
        try:
            return str_to_bool(value)
        except ConfigurationError:
            raise ConfigurationError(f"{pom_path}: invalid boolean value '{value}' for {name}") from None

    def values(name: str, item: str) -> List[str]:
        if plugin is None:
            return []
        container = plugin.get(name)
        if container is None:
            return []
        return [_interpolate(e.text.strip(), properties) for e in container.getall(item) if e.text and e.text.strip()]

    config.release = setting("release", "maven.compiler.release")
    config.source = setting("source", "maven.compiler.source")
    config.target = setting("target", "maven.compiler.target")
    config.encoding = setting("encoding", "maven.compiler.encoding") or properties.get("project.build.sourceEncoding")
    config.fork = flag("fork", False, "maven.compiler.fork")
    config.executable = setting("executable", "maven.compiler.executable")
    config.compiler_id = setting("compilerId", "maven.compiler.compilerId") or "javac"
    config.implicit = setting("implicit", "maven.compiler.implicit")
    config.proc = setting("proc", "maven.compiler.proc")
    config.use_module_path = flag("useModulePath", True, "maven.compiler.useModulePath")
    config.fail_on_error = flag("failOnError", True, "maven.compiler.failOnError")
    config.meminitial = setting("meminitial", "maven.compiler.meminitial")
    config.maxmem = setting("maxmem", "maven.compiler.maxmem")
    config.parameters = flag("parameters", False, "maven.compiler.parameters")
    config.enable_preview = flag("enablePreview", False, "maven.compiler.enablePreview")
    config.debug = flag("debug", True, "maven.compiler.debug")
    config.debuglevel = setting("debuglevel", "maven.compiler.debuglevel")
    config.show_warnings = flag("showWarnings", True, "maven.compiler.showWarnings")
    config.verbose = flag("verbose", False, "maven.compiler.verbose")
    config.incremental_compilation = (
        setting("incrementalCompilation", "maven.compiler.incrementalCompilation") or config.incremental_compilation
    )
    stale = setting("staleMillis", "lastModGranularityMs")
    if stale is not None:
        try:
            config.stale_millis = int(stale)
        except ValueError:
            raise ConfigurationError(f"{pom_path}: invalid staleMillis value '{stale}'") from None
    config.compiler_args = values("compilerArgs", "arg")
    config.annotation_processor_paths = values("annotationProcessorPaths", "path")

    sources = plugin.get("sources") if plugin is not None else None
    if sources is not None:
        for source in sources.getall("source"):
            directory = _interpolate(source.get_text("directory"), properties)
            if directory is None:
                raise ConfigurationError(f"{pom_path}: <source> element without <directory>")
            scope = source.get_text("scope", MAIN)
            target_version = _interpolate(source.get_text("targetVersion"), properties)
            includes = source.get("includes")
            excludes = source.get("excludes")
            config.source_directories.append(
                SourceDirectory(
                    config.path(directory),
                    scope=scope,
                    module=source.get_text("module"),
                    release=JavaRelease(target_version, context=directory) if target_version else None,
                    includes=tuple(e.text.strip() for e in includes.getall("include") if e.text) if includes is not None else (),
                    excludes=tuple(e.text.strip() for e in excludes.getall("exclude") if e.text) if excludes is not None else (),
                )
            )
    else:
        main = _interpolate(pom.get_text("build/sourceDirectory"), properties) or join("src", "main", "java")
        test = _interpolate(pom.get_text("build/testSourceDirectory"), properties) or join("src", "test", "java")
        config.source_directories = [SourceDirectory(config.path(main), MAIN), SourceDirectory(config.path(test), TEST)]
    logv(f"Loaded compiler configuration from {pom_path}")
    return config.validate()
