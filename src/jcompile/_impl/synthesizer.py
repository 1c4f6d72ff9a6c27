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

__all__ = ["OptionSynthesizer", "SynthesizedOptions", "MODULE_FLAGS"]

import os
from os.path import abspath, exists
from typing import Dict, List, Optional, Sequence

from .config import IMPLICIT_VALUES, PROC_VALUES, CompilerConfiguration
from .context import BuildContext
from .dependencies import DependencyResolution
from .errors import ConfigurationError
from .module_patch import ModuleInfoPatch
from .options import RELEASE_FLAGS, SOURCE_TARGET_FLAGS, Options
from .sources import MAIN, TEST, SourcesForRelease
from .support.logging import log_deprecation, logv, logvv, warn

MODULE_FLAGS = (
    "--add-modules",
    "--limit-modules",
    "--add-reads",
    "--add-exports",
    "--patch-module",
    "--module-path",
    "-p",
    "--module-source-path",
    "--class-path",
    "-classpath",
    "-cp",
)

DEBUG_LEVELS = ("lines", "vars", "source")


class SynthesizedOptions:
    """
    The compiler options of one unit, and the options a test launcher needs to run the compiled
    classes (one "--option value" per line), which are empty unless a module is patched.
    """

    def __init__(self, options: Options, runtime_lines: Optional[List[str]] = None):
        self.options = options
        self.runtime_lines = runtime_lines or []

    def fingerprint(self) -> str:
        return self.options.fingerprint()


def _user_flag(args: Sequence[str], flags: Sequence[str]) -> bool:
    return any(a in flags or a.split("=", 1)[0] in flags for a in args)


class OptionSynthesizer:
    """
    Derives the compiler options of the units of one scope. The options are appended in a fixed
    order: release, configured flags, paths and module options, then the user's compiler arguments.
    For identical inputs the result is identical.

    :param main_output_directory: the main classes, put on the path of test compilations
    """

    def __init__(
        self,
        configuration: CompilerConfiguration,
        compiler,
        resolution: Optional[DependencyResolution],
        scope: str = MAIN,
        context: Optional[BuildContext] = None,
        main_output_directory: Optional[str] = None,
        simplify: bool = True,
    ):
        self.configuration = configuration
        self.compiler = compiler
        self.resolution = resolution
        self.scope = scope
        self.context = context or BuildContext()
        self.main_output_directory = main_output_directory
        self.simplify = simplify
        self._patches: Dict[str, ModuleInfoPatch] = {}

    def _patch_for(self, unit: SourcesForRelease) -> ModuleInfoPatch:
        roots = [abspath(d.root) for d in unit.roots]
        path = ModuleInfoPatch.find(roots)
        key = path or f"<defaults>:{unit.patched_module}"
        patch = self._patches.get(key)
        if patch is None:
            patch = ModuleInfoPatch(unit.patched_module, self.context.add_modules, self.context.limit_modules)
            if path is not None:
                patch.load_file(path)
                if patch.module_name != unit.patched_module:
                    raise ConfigurationError(
                        f"{path} patches module {patch.module_name} but the tests belong to module {unit.patched_module}"
                    )
            else:
                patch.set_to_defaults()
            self._patches[key] = patch
        return patch

    def _add_release(self, options: Options, unit: SourcesForRelease) -> None:
        cfg = self.configuration
        user_source_target = _user_flag(cfg.compiler_args, SOURCE_TARGET_FLAGS)
        source_target = bool(cfg.source or cfg.target or user_source_target)
        if source_target and (cfg.release is not None or any(d.release is not None for d in unit.roots)):
            raise ConfigurationError("The release option cannot be combined with the source or target options")
        if source_target:
            options.add_if_non_blank("--source", cfg.source)
            options.add_if_non_blank("--target", cfg.target)
        elif not unit.release.is_default():
            options.set_release(str(unit.release))

    def _add_configured_flags(self, options: Options) -> None:
        cfg = self.configuration
        if cfg.proc:
            options.add_comma_separated("-proc", cfg.proc, PROC_VALUES)
        if cfg.implicit:
            options.add_comma_separated("-implicit", cfg.implicit, IMPLICIT_VALUES)
        options.add_if_non_blank("-encoding", cfg.encoding)
        if cfg.debug:
            if cfg.debuglevel:
                options.add_comma_separated("-g", cfg.debuglevel, DEBUG_LEVELS)
            else:
                options.add_if_true("-g", True)
        else:
            options.add_comma_separated("-g", "none")
        options.add_if_true("-parameters", cfg.parameters)
        options.add_if_true("--enable-preview", cfg.enable_preview)
        options.add_if_true("-nowarn", not cfg.show_warnings)
        options.add_if_true("-verbose", cfg.verbose)
        if cfg.fork or getattr(self.compiler, "forked", False):
            options.add_memory_value("-J-Xms", "meminitial", cfg.meminitial)
            options.add_memory_value("-J-Xmx", "maxmem", cfg.maxmem)
        elif cfg.meminitial or cfg.maxmem:
            logv("The meminitial and maxmem settings are ignored because the compiler runs in process.")
        if cfg.annotation_processor_paths:
            options.add_if_non_blank(
                "--processor-path", os.pathsep.join(cfg.path(p) for p in cfg.annotation_processor_paths)
            )

    def _add_paths(self, options: Options, unit: SourcesForRelease, previous_outputs: Sequence[str], overwrite: bool) -> List[str]:
        cfg = self.configuration
        options.add_if_non_blank("-d", unit.output_directory)
        resolution = self.resolution
        deps = resolution.for_stage(self.scope) if resolution is not None else []
        # the output of the previous release shadows everything else
        earlier = list(reversed(previous_outputs))
        main_output = self.main_output_directory if self.scope == TEST else None
        if main_output is not None and not exists(main_output):
            main_output = None

        class_path: List[str] = []
        module_path: List[str] = []
        runtime_lines: List[str] = []
        modular = unit.is_modular and cfg.use_module_path
        if unit.is_modular and not cfg.use_module_path and self.scope == MAIN:
            log_deprecation(
                f"Module {unit.module_name} is compiled with its dependencies on the class path. "
                "Set useModulePath to true to place them on the module path."
            )
        if modular:
            if main_output is not None:
                module_path.append(main_output)
            for dep in deps:
                if resolution.module_name(dep) is not None:
                    module_path.append(dep.path)
                else:
                    class_path.append(dep.path)
            module_path = earlier + module_path
        else:
            if main_output is not None:
                class_path.append(main_output)
            class_path = earlier + class_path + [dep.path for dep in deps]

        if module_path:
            options.add_if_non_blank("--module-path", os.pathsep.join(module_path))
        if class_path:
            options.add_if_non_blank("--class-path", os.pathsep.join(class_path))
        if not modular:
            return runtime_lines

        if len(unit.modules) > 1:
            for module, roots in sorted(unit.modules.items()):
                options.add_if_non_blank("--module-source-path", f"{module}={os.pathsep.join(roots)}")
        module = unit.module_name
        if unit.patched_module is not None or (earlier and module is not None and module not in unit.module_infos):
            roots = [abspath(d.root) for d in unit.roots]
            options.add_if_non_blank("--patch-module", f"{module}={os.pathsep.join(roots)}")
        if unit.patched_module is not None and not overwrite:
            patch = self._patch_for(unit)
            project_modules = set(self.context.project_modules)
            project_modules.add(unit.patched_module)
            resolved = patch.resolve(resolution, project_modules, simplify=self.simplify)
            for flag, value in resolved.compile_options():
                options.add_if_non_blank(flag, value)
            runtime_lines = resolved.runtime_lines()
        return runtime_lines

    def _add_user_arguments(self, options: Options) -> None:
        emitted = {pair for pair in options.pairs() if pair[0] in MODULE_FLAGS}
        args = list(self.configuration.compiler_args)
        i = 0
        while i < len(args):
            arg = args[i]
            if arg.startswith("--release="):
                options.set_release(arg.split("=", 1)[1])
                i += 1
                continue
            if arg in RELEASE_FLAGS and i + 1 < len(args):
                options.set_release(args[i + 1])
                i += 2
                continue
            n = options.arity(arg) if arg.startswith("-") else 0
            values = args[i + 1 : i + 1 + n]
            if arg in MODULE_FLAGS and len(values) == 1 and (arg, values[0]) in emitted:
                warn(f"Ignoring the compiler argument '{arg} {values[0]}' because the option is already set.")
            else:
                options.add_unchecked([arg] + values)
            i += 1 + n

    def synthesize(
        self, unit: SourcesForRelease, previous_outputs: Sequence[str] = (), overwrite: bool = False
    ) -> SynthesizedOptions:
        """
        Computes the options for compiling `unit`.

        :param previous_outputs: output directories of the units of lower releases, in ascending release order
        :param overwrite: whether a test module-info replaces the main module descriptor, in which case
                          the test dependencies are declared by that module-info instead of patch options
        """
        options = Options(self.compiler)
        self._add_release(options, unit)
        self._add_configured_flags(options)
        runtime_lines = self._add_paths(options, unit, previous_outputs, overwrite)
        self._add_user_arguments(options)
        if options.has_flag(*RELEASE_FLAGS) and options.has_flag(*SOURCE_TARGET_FLAGS):
            raise ConfigurationError("The --release option cannot be combined with the source or target options")
        logvv(f"Options for {unit}:\n{options.format()}")
        return SynthesizedOptions(options, runtime_lines)
