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

from argparse import Namespace
from dataclasses import dataclass

__all__ = ["ArgsNamespace", "_opts", "set_options"]


@dataclass(repr = False)
class ArgsNamespace(Namespace):
    verbose: bool = False
    very_verbose: bool = False
    warn: bool = True
    quiet: bool = False
    show_compilation_changes: bool = False
    """Lists the added, removed and modified files when a full rebuild is decided"""


_opts = ArgsNamespace()


def set_options(args: Namespace) -> None:
    """
    Copies the console related attributes of `args` into the global options.
    Attributes that are absent from `args` keep their current value.
    """
    for name in ("verbose", "very_verbose", "warn", "quiet", "show_compilation_changes"):
        if hasattr(args, name):
            setattr(_opts, name, getattr(args, name))
    if _opts.very_verbose:
        _opts.verbose = True
