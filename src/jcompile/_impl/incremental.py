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
Incremental build support: the build status record kept between builds, and the decision
whether the sources need to be compiled again.
"""

from __future__ import annotations

__all__ = [
    "FULL_REBUILD",
    "INCREMENTAL",
    "NO_OP",
    "ASPECTS",
    "DEFAULT_ASPECTS",
    "parse_aspects",
    "SymbolInfo",
    "scan_symbols",
    "FileStatus",
    "BuildStatusRecord",
    "BuildDecision",
    "ChangeTracker",
    "StatusPersister",
    "output_manifest",
    "delete_class_files",
]

import glob
import json
import os
import re
import time
from dataclasses import dataclass, field
from os.path import basename, exists, join, splitext
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence

from .errors import ConfigurationError
from .modules import MODULE_INFO_CLASS, MODULE_INFO_JAVA
from .sources import ResolvedSources
from .support.logging import logv, logvv, warn
from .support.options import _opts
from .support.timestampfile import TimeStampFile
from .util import delete_file, file_digest, list_files, write_text_safely

FULL_REBUILD = "full"
INCREMENTAL = "incremental"
NO_OP = "no-op"

OPTIONS = "options"
DEPENDENCIES = "dependencies"
SOURCES = "sources"
CLASSES = "classes"
ADDITIONS = "additions"
NONE = "none"

ASPECTS = (OPTIONS, DEPENDENCIES, SOURCES, CLASSES, ADDITIONS, NONE)
DEFAULT_ASPECTS = frozenset([OPTIONS, DEPENDENCIES, SOURCES])


def parse_aspects(value: str) -> FrozenSet[str]:
    """
    Parses a comma-separated list of incremental build aspects such as "options,sources".
    """
    aspects = set()
    for item in value.split(","):
        item = item.strip().lower()
        if not item:
            continue
        if item not in ASPECTS:
            raise ConfigurationError(
                f'Illegal incremental build setting: "{item}". Valid values are {", ".join(ASPECTS)}.'
            )
        aspects.add(item)
    if not aspects:
        raise ConfigurationError("Incremental build setting cannot be empty.")
    if NONE in aspects and len(aspects) > 1:
        other = sorted(aspects - {NONE})[0]
        raise ConfigurationError(f'Illegal incremental build setting: "{NONE}" and "{other}" are mutually exclusive.')
    return frozenset(aspects)


_comment_re = re.compile(r"//[^\n]*|/\*.*?\*/", re.DOTALL)
_literal_re = re.compile(r'"""(?:.|\n)*?"""|"(?:\\.|[^"\\\n])*"|\'(?:\\.|[^\'\\\n])*\'')
_package_re = re.compile(r"^\s*package\s+([\w.]+)\s*;", re.MULTILINE)
_import_re = re.compile(r"^\s*import\s+(?:static\s+)?([\w.]+(?:\.\*)?)\s*;", re.MULTILINE)
_type_re = re.compile(r"\b(?:class|interface|enum|record)\s+([A-Za-z_$][\w$]*)")
_simple_ref_re = re.compile(r"\b[A-Z][\w$]*\b")
_qualified_ref_re = re.compile(r"\b(?:[a-z_$][\w$]*\.)+[A-Z][\w$]*\b")


@dataclass
class SymbolInfo:
    """
    What a source file declares and uses, as far as a scan of its text can tell.
    """

    package: str
    types: List[str]
    imports: List[str]
    references: List[str]

    def qualified(self, type_name: str) -> str:
        return f"{self.package}.{type_name}" if self.package else type_name

    def uses(self, other: SymbolInfo) -> bool:
        """
        Whether this file may reference one of the types declared by `other`.
        """
        refs = set(self.references)
        imports = set(self.imports)
        for t in other.types:
            name = other.qualified(t)
            if name in refs:
                return True
            # static imports and imports of nested types name the type only as a prefix
            if name in imports or any(i.startswith(name + ".") for i in imports):
                return True
            if t in refs and (self.package == other.package or (other.package and f"{other.package}.*" in imports)):
                return True
        return False

    def to_dict(self) -> dict:
        return dict(package=self.package, types=self.types, imports=self.imports, references=self.references)

    @staticmethod
    def from_dict(data: Mapping) -> SymbolInfo:
        return SymbolInfo(data["package"], list(data["types"]), list(data["imports"]), list(data["references"]))


def scan_symbols(text: str) -> SymbolInfo:
    text = _comment_re.sub(" ", text)
    text = _literal_re.sub('""', text)
    m = _package_re.search(text)
    package = m.group(1) if m else ""
    imports = _import_re.findall(text)
    types = sorted(set(_type_re.findall(text)))
    body = _import_re.sub(" ", _package_re.sub(" ", text))
    references = set(_simple_ref_re.findall(body)) | set(_qualified_ref_re.findall(body))
    references.difference_update(types)
    return SymbolInfo(package, types, sorted(set(imports)), sorted(references))


@dataclass
class FileStatus:
    """
    The state of one source file when it was compiled.
    """

    mtime: float
    digest: str
    output_directory: str
    symbols: Optional[SymbolInfo] = None

    def class_file(self, path: str) -> str:
        if basename(path) == MODULE_INFO_JAVA:
            return join(self.output_directory, MODULE_INFO_CLASS)
        package_dir = self.symbols.package.replace(".", os.sep) if self.symbols and self.symbols.package else ""
        return join(self.output_directory, package_dir, splitext(basename(path))[0] + ".class")

    def to_dict(self) -> dict:
        data = dict(mtime=self.mtime, digest=self.digest, output=self.output_directory)
        if self.symbols is not None:
            data["symbols"] = self.symbols.to_dict()
        return data

    @staticmethod
    def from_dict(data: Mapping) -> FileStatus:
        symbols = data.get("symbols")
        return FileStatus(
            float(data["mtime"]),
            str(data["digest"]),
            str(data["output"]),
            SymbolInfo.from_dict(symbols) if symbols is not None else None,
        )


def output_manifest(directories: Iterable[str]) -> Dict[str, Dict[str, List[float]]]:
    """
    Gets the size and modification time of every file in `directories`.
    """
    manifest = {}
    for directory in directories:
        entries = {}
        if os.path.isdir(directory):
            for rel in list_files(directory):
                st = os.stat(join(directory, rel))
                entries[rel] = [st.st_size, st.st_mtime]
        manifest[directory] = entries
    return manifest


class BuildStatusRecord:
    """
    What the Change Tracker needs to know about the previous build: the state of each source
    file, the fingerprint of the compiler options, the dependencies and the files of the output
    directories. Stored as JSON, a record is replaced as a whole after each build.
    """

    FORMAT_VERSION = 1

    def __init__(
        self,
        files: Dict[str, FileStatus],
        option_fingerprint: str,
        dependencies: Sequence[str],
        outputs: Dict[str, Dict[str, List[float]]],
        format_version: int = FORMAT_VERSION,
        build_time: Optional[float] = None,
    ):
        self.files = files
        self.option_fingerprint = option_fingerprint
        self.dependencies = sorted(dependencies)
        self.outputs = outputs
        self.format_version = format_version
        self.build_time = build_time if build_time is not None else time.time()

    def to_json(self) -> str:
        data = {
            "format": self.format_version,
            "buildTime": self.build_time,
            "options": self.option_fingerprint,
            "dependencies": self.dependencies,
            "outputs": self.outputs,
            "files": {path: status.to_dict() for path, status in sorted(self.files.items())},
        }
        return json.dumps(data, indent=1, sort_keys=True)

    @staticmethod
    def from_json(text: str) -> BuildStatusRecord:
        data = json.loads(text)
        format_version = data.get("format")
        if format_version != BuildStatusRecord.FORMAT_VERSION:
            # the remaining content cannot be trusted to have the expected structure
            return BuildStatusRecord({}, "", [], {}, format_version=format_version)
        return BuildStatusRecord(
            {path: FileStatus.from_dict(status) for path, status in data["files"].items()},
            data["options"],
            data["dependencies"],
            {d: {rel: list(v) for rel, v in entries.items()} for d, entries in data["outputs"].items()},
            format_version=format_version,
            build_time=data.get("buildTime"),
        )

    def output_intact(self, stale_millis: int = 0) -> bool:
        """
        Whether every file recorded in the output directories still exists unchanged.
        """
        tolerance = stale_millis / 1000.0
        for directory, entries in self.outputs.items():
            for rel, (size, mtime) in entries.items():
                path = join(directory, rel)
                try:
                    st = os.stat(path)
                except OSError:
                    logvv(f"Output file {path} is missing")
                    return False
                if st.st_size != size or abs(st.st_mtime - mtime) > tolerance:
                    logvv(f"Output file {path} was modified")
                    return False
        return True


class BuildDecision:
    """
    The outcome of the Change Tracker. `files` are the sources to compile for an incremental build,
    `removed` the sources that no longer exist and `cause` tells why a full rebuild is needed.
    """

    def __init__(self, kind: str, files: Sequence[str] = (), removed: Sequence[str] = (), cause: Optional[str] = None,
                 details: Sequence[str] = ()):
        self.kind = kind
        self.files = list(files)
        self.removed = list(removed)
        self.cause = cause
        self.details = list(details)

    @staticmethod
    def full(cause: Optional[str] = None, details: Sequence[str] = ()) -> BuildDecision:
        return BuildDecision(FULL_REBUILD, cause=cause, details=details)

    @staticmethod
    def incremental(files: Sequence[str], removed: Sequence[str] = ()) -> BuildDecision:
        return BuildDecision(INCREMENTAL, files, removed)

    @staticmethod
    def no_op() -> BuildDecision:
        return BuildDecision(NO_OP)

    def message(self) -> str:
        if self.kind == NO_OP:
            return "Nothing to compile - all classes are up to date."
        if self.kind == INCREMENTAL:
            n = len(self.files)
            if n == 0 and self.removed:
                r = len(self.removed)
                return f"Deleting the classes of {r} removed source file{'s' if r != 1 else ''}."
            return f"Compiling {n} modified source file{'s' if n != 1 else ''}."
        if self.cause is None:
            return "Compiling all files."
        if self.details and _opts.show_compilation_changes:
            return f"Recompiling all files because {self.cause}:\n" + "\n".join(self.details)
        return f"Recompiling all files because {self.cause}."

    def __repr__(self):
        return f"BuildDecision({self.kind}, files={len(self.files)}, cause={self.cause!r})"


class ChangeTracker:
    """
    Compares the current sources with the record of the previous build.

    :param aspects: what is checked, see `parse_aspects`
    :param stale_millis: tolerance in milliseconds when comparing modification times
    """

    def __init__(self, aspects: Iterable[str] = DEFAULT_ASPECTS, stale_millis: int = 0):
        self.aspects = frozenset(aspects)
        self.stale_millis = stale_millis

    def scan(self, sources: ResolvedSources) -> Dict[str, FileStatus]:
        """
        Computes the current state of the source files, including their symbols.
        """
        current = {}
        for unit in sources.units:
            for path in unit.files:
                with open(path, encoding="utf-8", errors="replace") as fp:
                    text = fp.read()
                symbols = scan_symbols(text) if path.endswith(".java") else None
                current[path] = FileStatus(os.path.getmtime(path), file_digest(path), unit.output_directory, symbols)
        return current

    def _modified(self, path: str, status: FileStatus, previous: FileStatus) -> bool:
        if status.digest != previous.digest:
            return True
        return TimeStampFile(path, self.stale_millis).differsFrom(previous.mtime)

    def decide(
        self,
        current: Mapping[str, FileStatus],
        previous: Optional[BuildStatusRecord],
        option_fingerprint: str,
        dependencies: Sequence[str] = (),
    ) -> BuildDecision:
        if NONE in self.aspects or previous is None:
            return BuildDecision.full()
        if previous.format_version != BuildStatusRecord.FORMAT_VERSION:
            return BuildDecision.full("the build status was written by another version")
        if OPTIONS in self.aspects and previous.option_fingerprint != option_fingerprint:
            return BuildDecision.full("of changes in compiler options")

        changed: List[str] = []
        added: List[str] = []
        removed: List[str] = []
        if SOURCES in self.aspects:
            for path, status in current.items():
                before = previous.files.get(path)
                if before is None:
                    added.append(path)
                elif self._modified(path, status, before):
                    changed.append(path)
            removed = sorted(p for p in previous.files if p not in current)
        if CLASSES in self.aspects:
            for path, status in current.items():
                if path in changed or path in added:
                    continue
                output = TimeStampFile(status.class_file(path), self.stale_millis)
                if output.timestamp is None and ADDITIONS in self.aspects:
                    return BuildDecision.full("of added source files", ["  + " + path])
                if output.isOlderThan(path):
                    changed.append(path)

        if DEPENDENCIES in self.aspects and sorted(dependencies) != previous.dependencies:
            gone = sorted(set(previous.dependencies) - set(dependencies))
            new = sorted(set(dependencies) - set(previous.dependencies))
            return BuildDecision.full("some dependencies changed", ["  - " + d for d in gone] + ["  + " + d for d in new])

        touched = changed + added + removed
        for path in touched:
            if basename(path) == MODULE_INFO_JAVA:
                return BuildDecision.full(f"the module declaration {path} changed")
        if ADDITIONS in self.aspects and (added or removed):
            return BuildDecision.full(
                "of added or removed source files", ["  + " + p for p in added] + ["  - " + p for p in removed]
            )
        if not previous.output_intact(self.stale_millis):
            return BuildDecision.full("the content of the output directory changed")
        if not touched:
            return BuildDecision.no_op()

        roots = changed + removed
        for path in roots:
            before = previous.files.get(path)
            if before is None or before.symbols is None:
                return BuildDecision.full(f"no dependency information is available for {path}")
        dependents = self._dependents(roots, previous)
        files = sorted((set(changed) | set(added) | dependents) & set(current.keys()))
        logv(f"{len(changed)} modified, {len(added)} added, {len(removed)} removed, {len(dependents)} dependent source files")
        return BuildDecision.incremental(files, removed)

    @staticmethod
    def _dependents(roots: Sequence[str], previous: BuildStatusRecord) -> set:
        """
        Gets the files of the previous build that use, directly or transitively, a type declared by one of `roots`.
        """
        result = set()
        pending = list(roots)
        visited = set(roots)
        while pending:
            path = pending.pop()
            declaring = previous.files[path].symbols
            for other, status in previous.files.items():
                if other in visited or status.symbols is None:
                    continue
                if status.symbols.uses(declaring):
                    visited.add(other)
                    result.add(other)
                    pending.append(other)
        return result

    def create_record(
        self,
        current: Mapping[str, FileStatus],
        option_fingerprint: str,
        dependencies: Sequence[str],
        output_directories: Iterable[str],
        compiled: Optional[Iterable[str]] = None,
    ) -> BuildStatusRecord:
        """
        Creates the record of the build that just ended. When `compiled` is given, only those
        files are recorded so that the others are compiled again by the next build.
        """
        files = dict(current) if compiled is None else {p: current[p] for p in compiled if p in current}
        return BuildStatusRecord(files, option_fingerprint, dependencies, output_manifest(output_directories))


def delete_class_files(path: str, status: FileStatus) -> List[str]:
    """
    Deletes the class files generated from the source file `path`, including those of nested
    and local classes (``Outer$Inner.class``). Returns the deleted files.
    """
    deleted = []
    names = [splitext(basename(path))[0]]
    if status.symbols is not None:
        names.extend(t for t in status.symbols.types if t not in names)
    if basename(path) == MODULE_INFO_JAVA:
        candidates = [join(status.output_directory, MODULE_INFO_CLASS)]
    else:
        directory = os.path.dirname(status.class_file(path))
        candidates = []
        for name in names:
            candidates.append(join(directory, name + ".class"))
            candidates.extend(glob.glob(join(glob.escape(directory), glob.escape(name) + "$*.class")))
    for candidate in candidates:
        if delete_file(candidate):
            deleted.append(candidate)
    return deleted


class StatusPersister:
    """
    Reads and writes the build status record of one scope. Failures are reported as warnings:
    a missing or unreadable record only means that everything is compiled again.
    """

    def __init__(self, path: str):
        self.path = path

    def load(self) -> Optional[BuildStatusRecord]:
        if not exists(self.path):
            return None
        try:
            with open(self.path, encoding="utf-8") as fp:
                return BuildStatusRecord.from_json(fp.read())
        except OSError as e:
            warn(f"Cannot read the build status {self.path}: {e}")
        except (ValueError, KeyError, TypeError) as e:
            warn(f"Ignoring the corrupted build status {self.path}: {e}")
        return None

    def delete(self) -> None:
        try:
            delete_file(self.path)
        except OSError as e:
            warn(f"Cannot delete the build status {self.path}: {e}")

    def write(self, record: BuildStatusRecord) -> bool:
        try:
            write_text_safely(self.path, record.to_json())
            logvv(f"Wrote build status {self.path}")
            return True
        except OSError as e:
            warn(f"Cannot write the build status {self.path}: {e}")
            return False
