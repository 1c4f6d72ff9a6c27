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

__all__ = ["BuildContext"]

from typing import Callable, Dict, List, Optional

_UNSET = object()


class BuildContext:
    """
    State shared by the components of one build execution. A fresh context is created for each
    execution of a goal so that builds running in the same process do not see each other's caches.
    """

    def __init__(self, project_dir: Optional[str] = None):
        self.project_dir = project_dir
        self._main_module_name = _UNSET
        self.add_modules: List[str] = []
        """Union of the add-modules values of all module-info patches of the build."""
        self.limit_modules: List[str] = []
        """Union of the limit-modules values of all module-info patches of the build."""
        self.project_modules: Dict[str, List[str]] = {}
        """Module names declared by the source directories of the build, mapped to their roots."""

    def main_module_name(self, compute: Callable[[], Optional[str]]) -> Optional[str]:
        """
        Gets the name of the module declared by the main sources, calling `compute` the first time only.
        """
        if self._main_module_name is _UNSET:
            self._main_module_name = compute()
        return self._main_module_name
