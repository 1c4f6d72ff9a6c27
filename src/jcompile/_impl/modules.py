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
    "JavaModuleDescriptor",
    "parse_module_info",
    "read_module_info_file",
    "parse_describe_module_output",
    "describe_jar",
    "get_transitive_closure",
    "is_valid_module_name",
]

import os
import re
import zipfile
from functools import total_ordering
from os.path import exists, isdir, join
from typing import Callable, Collection, Dict, Iterable, List, Optional, Set

from .errors import ConfigurationError
from .support.envvars import get_env
from .support.logging import logvv
from .support.processes import run_and_capture

MODULE_INFO_JAVA = "module-info.java"
MODULE_INFO_CLASS = "module-info.class"


@total_ordering
class JavaModuleDescriptor:
    """
    Describes a Java module. This class closely mirrors ``java.lang.module.ModuleDescriptor``.

    :param str name: the name of the module
    :param dict exports: dict from a package defined by this module to the modules it's exported to. An
             empty list denotes an unqualified export.
    :param dict requires: dict from a module dependency to the modifiers of the dependency
    :param set uses: the service types used by this module
    :param dict provides: dict from a service name to the list of providers of the service defined by this module
    :param iterable packages: the packages defined by this module
    :param set opens: the packages opened by this module, with their targets if qualified
    :param str jarpath: path to the jar file or directory the module was read from
    :param bool automatic: specifies if this is an automatic module
    :param bool open: specifies if this is an open module
    """

    def __init__(
        self,
        name: str,
        exports: Dict[str, List[str]],
        requires: Dict[str, Set[str]],
        uses: Iterable[str] = (),
        provides: Optional[Dict[str, List[str]]] = None,
        packages: Optional[Iterable[str]] = None,
        jarpath: Optional[str] = None,
        opens: Optional[Iterable[str]] = None,
        automatic: bool = False,
        open: bool = False,  # pylint: disable=redefined-builtin
    ):
        self.name = name
        self.exports = exports
        self.requires = requires
        self.uses = frozenset(uses)
        self.opens = frozenset(opens if opens else [])
        self.provides = provides if provides else {}
        exportedPackages = frozenset(exports.keys())
        self.packages = exportedPackages if packages is None else frozenset(packages) | exportedPackages
        self.conceals = self.packages - exportedPackages
        self.jarpath = jarpath
        self.automatic = automatic
        self.open = open

    def __str__(self):
        return "module:" + self.name

    def __repr__(self):
        return self.__str__()

    def __lt__(self, other):
        if not isinstance(other, JavaModuleDescriptor):
            return NotImplemented
        return self.name < other.name

    def __hash__(self):
        return hash(self.name)

    def __eq__(self, other):
        return isinstance(other, JavaModuleDescriptor) and self.name == other.name


_identifier_re = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


def is_valid_module_name(name: str) -> bool:
    return bool(name) and all(_identifier_re.match(ident) for ident in name.split("."))


_comment_re = re.compile(r"//[^\n]*|/\*.*?\*/", re.DOTALL)
_annotation_re = re.compile(r"@[\w.]+(\s*\([^)]*\))?")
_module_header_re = re.compile(r"\b(open\s+)?module\s+([\w.$]+)\s*\{(.*)\}", re.DOTALL)
_qualified_name = r"[\w.$]+"


def parse_module_info(text: str, path: Optional[str] = None) -> JavaModuleDescriptor:
    """
    Parses the source of a ``module-info.java`` compilation unit into a descriptor.
    Only the directives are interpreted, the content is not otherwise validated.
    """
    text = _comment_re.sub(" ", text)
    text = _annotation_re.sub(" ", text)
    m = _module_header_re.search(text)
    if not m:
        raise ConfigurationError(f"{path or MODULE_INFO_JAVA}: no module declaration found")
    is_open, name, body = m.group(1) is not None, m.group(2), m.group(3)

    requires: Dict[str, Set[str]] = {}
    exports: Dict[str, List[str]] = {}
    opens: Set[str] = set()
    uses: Set[str] = set()
    provides: Dict[str, List[str]] = {}

    for directive in body.split(";"):
        parts = directive.replace(",", " , ").split()
        if not parts:
            continue
        keyword = parts[0]
        if keyword == "requires":
            modifiers = {p for p in parts[1:-1] if p in ("transitive", "static")}
            requires[parts[-1]] = modifiers
        elif keyword in ("exports", "opens"):
            package = parts[1]
            targets = [p for p in parts[3:] if p != ","] if len(parts) > 2 and parts[2] == "to" else []
            if keyword == "exports":
                exports[package] = targets
            else:
                opens.add(" ".join([package] + (["to"] + targets if targets else [])))
        elif keyword == "uses":
            uses.add(parts[1])
        elif keyword == "provides":
            if len(parts) < 4 or parts[2] != "with":
                raise ConfigurationError(f"{path or MODULE_INFO_JAVA}: cannot parse directive '{directive.strip()}'")
            provides.setdefault(parts[1], []).extend(p for p in parts[3:] if p != ",")
        else:
            raise ConfigurationError(f"{path or MODULE_INFO_JAVA}: unknown module directive '{keyword}'")
    requires.setdefault("java.base", {"mandated"})
    return JavaModuleDescriptor(name, exports, requires, uses, provides, jarpath=path, opens=opens, open=is_open)


def read_module_info_file(path: str) -> JavaModuleDescriptor:
    with open(path, encoding="utf-8") as fp:
        return parse_module_info(fp.read(), path)


def parse_describe_module_output(lines: List[str], jarpath: Optional[str] = None) -> JavaModuleDescriptor:
    """
    Parses the output of ``jar --describe-module`` or ``java --describe-module``.

    The first descriptor line holds the module name, optionally followed by ``@version``, the
    location and the ``automatic`` or ``open`` markers.
    """
    lines = [line for line in lines if line.strip() and not line.startswith(("No module descriptor found", "releases:"))]
    if not lines:
        raise ConfigurationError(f"Cannot parse module description of {jarpath}: no output")
    header = lines[0].split()
    name = header[0].split("@")[0]
    automatic = "automatic" in header[1:]
    is_open = "open" in header[1:]

    accepted_modifiers = {"transitive", "static", "mandated"}
    requires: Dict[str, Set[str]] = {}
    exports: Dict[str, List[str]] = {}
    provides: Dict[str, List[str]] = {}
    opens: Set[str] = set()
    uses: Set[str] = set()
    packages: Set[str] = set()

    for line in lines[1:]:
        parts = line.strip().split()
        if parts[0:2] == ["qualified", "exports"] or parts[0:2] == ["qualified", "opens"]:
            parts = parts[1:]
        if len(parts) < 2:
            raise ConfigurationError(f"Cannot parse module descriptor line of {jarpath}: {line}")
        a = parts[0]
        if a == "requires":
            module = parts[1].split("@")[0]
            requires[module] = {m for m in parts[2:] if m in accepted_modifiers}
        elif a == "exports":
            targets = parts[3:] if len(parts) > 2 and parts[2] == "to" else []
            exports[parts[1]] = targets
        elif a == "uses":
            uses.update(parts[1:])
        elif a == "opens":
            opens.add(" ".join(parts[1:]))
        elif a == "contains":
            packages.update(parts[1:])
        elif a == "provides":
            if len(parts) < 4 or parts[2] != "with":
                raise ConfigurationError(f"Cannot parse module descriptor line of {jarpath}: {line}")
            provides.setdefault(parts[1], []).extend(parts[3:])
        elif a == "main-class":
            pass
        else:
            raise ConfigurationError(f"Cannot parse module descriptor line of {jarpath}: {line}")
    return JavaModuleDescriptor(
        name, exports, requires, uses, provides, packages, jarpath=jarpath, opens=opens, automatic=automatic, open=is_open
    )


def _jdk_executable(name: str) -> str:
    java_home = get_env("JAVA_HOME")
    if java_home:
        candidate = join(java_home, "bin", name + ".exe" if os.name == "nt" else name)
        if exists(candidate):
            return candidate
    return name


_version_re = re.compile(r"@[^\s;{]+")


def _describe_class_directory(path: str) -> JavaModuleDescriptor:
    """
    Reads the ``module-info.class`` of a class directory with ``javap``, which prints it back as a
    module declaration. ``jar --describe-module`` only accepts archives.
    """
    class_file = join(path, MODULE_INFO_CLASS)
    rc, output = run_and_capture([_jdk_executable("javap"), class_file])
    if rc != 0:
        raise ConfigurationError(f"javap failed for {class_file}:\n{output}")
    logvv(f"Module declaration of {path}:\n{output}")
    return parse_module_info(_version_re.sub("", output), path)


def _manifest_attribute(manifest: str, attribute: str) -> Optional[str]:
    prefix = attribute + ":"
    for line in manifest.splitlines():
        if line.startswith(prefix):
            return line[len(prefix):].strip()
    return None


def describe_jar(path: str, describe: Optional[Callable[[str], List[str]]] = None) -> Optional[JavaModuleDescriptor]:
    """
    Gets the module descriptor of a jar file or class directory, or None if it is not a named module.

    An explicit ``module-info.class`` is described with ``jar --describe-module`` (or `describe`, which
    receives the path and returns the output lines), or with ``javap`` for a class directory. A jar
    without one that carries an ``Automatic-Module-Name`` manifest attribute yields an automatic module.
    Anything else is unnamed.
    """
    if isdir(path):
        if not exists(join(path, MODULE_INFO_CLASS)):
            return None
        if describe is None:
            return _describe_class_directory(path)
    elif exists(path) and zipfile.is_zipfile(path):
        with zipfile.ZipFile(path) as zf:
            names = set(zf.namelist())
            if MODULE_INFO_CLASS not in names:
                if "META-INF/MANIFEST.MF" not in names:
                    return None
                manifest = zf.read("META-INF/MANIFEST.MF").decode("utf-8", errors="replace")
                name = _manifest_attribute(manifest, "Automatic-Module-Name")
                if name is None:
                    return None
                if not is_valid_module_name(name):
                    raise ConfigurationError(f"Invalid Automatic-Module-Name '{name}' in {path}")
                return JavaModuleDescriptor(name, {}, {"java.base": {"mandated"}}, jarpath=path, automatic=True)
    else:
        return None

    if describe is None:
        def describe(p):
            rc, output = run_and_capture([_jdk_executable("jar"), "--describe-module", "--file", p])
            if rc != 0:
                raise ConfigurationError(f"jar --describe-module failed for {p}:\n{output}")
            return output.splitlines()
    lines = describe(path)
    logvv(f"Module description of {path}:\n" + "\n".join(lines))
    return parse_describe_module_output(lines, jarpath=path)


def get_transitive_closure(
    roots: Iterable[JavaModuleDescriptor | str],
    observable_modules: Collection[JavaModuleDescriptor],
    requiresPredicate: Optional[Callable[[Collection[str]], bool]] = None,
    strict: bool = True,
) -> Set[JavaModuleDescriptor]:
    """
    Gets the transitive closure of the dependencies of a set of root modules
    (i.e. `roots`) with respect to a set of observable modules (i.e. `observable_modules`)

    :param requiresPredicate: an optional predicate that determines if the transitive closure
                            should include edges with the given requires modifiers (default all)
    :param strict: if False, required modules that are not observable are ignored instead of
                   raising a ConfigurationError
    """
    name_to_module = {m.name: m for m in observable_modules}
    transitive_closure: Set[JavaModuleDescriptor] = set()

    def lookup_module(name):
        m = name_to_module.get(name, None)
        if m is None and strict:
            raise ConfigurationError(f"{name} is not in the set of observable modules {sorted(name_to_module.keys())}")
        return m

    def add_transitive(mod):
        if mod not in transitive_closure:
            transitive_closure.add(mod)
            for name, modifiers in mod.requires.items():
                if requiresPredicate is None or requiresPredicate(modifiers):
                    dep = lookup_module(name)
                    if dep is not None:
                        add_transitive(dep)

    for root in roots:
        if isinstance(root, str):
            root = lookup_module(root)
            if root is None:
                continue
        add_transitive(root)
    return transitive_closure
