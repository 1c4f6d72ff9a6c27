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

__all__ = ["JavaRelease"]

import re
from functools import total_ordering
from typing import Optional, Union

from .errors import ConfigurationError


@total_ordering
class JavaRelease:
    """
    A Java feature release such as 8, 17 or 21, or the "default" release meaning
    whatever the compiler targets when no release option is given.

    Valid specifications: "8", "1.8", "17", 21. The default release sorts after all numbered releases.
    """

    _release_re = re.compile(r"(1\.)?(\d+)$")

    value: Optional[int]

    def __init__(self, spec: Union[None, int, str, JavaRelease], context=None):
        if isinstance(spec, JavaRelease):
            self.value = spec.value
            return
        if spec is None:
            self.value = None
            return
        if isinstance(spec, int):
            value = spec
        else:
            m = JavaRelease._release_re.match(str(spec).strip())
            if not m:
                raise ConfigurationError(self._error_message(spec, "not a Java release", context))
            if m.group(1) and int(m.group(2)) >= 10:
                raise ConfigurationError(
                    self._error_message(spec, 'the "1." prefix is only valid for releases below 10', context)
                )
            value = int(m.group(2))
        if value < 6:
            raise ConfigurationError(self._error_message(spec, "releases before 6 are not supported", context))
        self.value = value

    @staticmethod
    def _error_message(spec, msg, context) -> str:
        prefix = f"{context}: " if context else ""
        return f'{prefix}Invalid release "{spec}": {msg}'

    @staticmethod
    def default() -> JavaRelease:
        return JavaRelease(None)

    def is_default(self) -> bool:
        return self.value is None

    def _key(self):
        return (self.value is None, self.value or 0)

    def __eq__(self, other):
        if not isinstance(other, JavaRelease):
            return NotImplemented
        return self.value == other.value

    def __lt__(self, other):
        if not isinstance(other, JavaRelease):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self):
        return hash(self.value)

    def __str__(self):
        return "default" if self.value is None else str(self.value)

    def __repr__(self):
        return f"JavaRelease({self})"
