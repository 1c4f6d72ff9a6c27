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

__all__ = ["Options", "RELEASE_FLAGS", "SOURCE_TARGET_FLAGS"]

import hashlib
from typing import Callable, Collection, Iterable, List, Optional, Sequence, Tuple

from .support.logging import warn

RELEASE_FLAGS = ("--release",)
SOURCE_TARGET_FLAGS = ("-source", "--source", "-target", "--target")


def _strip(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value if value else None


class Options:
    """
    The ordered list of arguments given to the compiler, excluding the source files.

    Flags are validated against `checker`, the compiler backend, which tells how many arguments a
    flag consumes (see `is_supported_option`). Options are only appended, except the release
    value which can be replaced in place.
    """

    def __init__(self, checker):
        self.checker = checker
        self.options: List[str] = []
        self._release_index = -1
        self._warning: Optional[str] = None

    def __iter__(self):
        return iter(self.options)

    def __len__(self):
        return len(self.options)

    def __str__(self):
        return self.format()

    def set_release(self, value: Optional[str]) -> bool:
        """
        Adds the ``--release`` option, or replaces its value if it was already added.
        A blank value removes the option.
        """
        if self._release_index < 0:
            added = self.add_if_non_blank("--release", value)
            if added:
                self._release_index = len(self.options) - 1
            return added
        value = _strip(value)
        if value is not None:
            self.options[self._release_index] = value
            return True
        del self.options[self._release_index - 1 : self._release_index + 1]
        self._release_index = -1
        return False

    @property
    def release(self) -> Optional[str]:
        return self.options[self._release_index] if self._release_index >= 0 else None

    def add_if_true(self, option: str, value: bool) -> bool:
        if value and self._check_number_of_arguments(option, 0, True):
            self.options.append(option)
            return True
        return False

    def add_if_non_blank(self, option: str, value: Optional[str]) -> bool:
        value = _strip(value)
        if value is not None and self._check_number_of_arguments(option, 1, True):
            self.options.append(option)
            self.options.append(value)
            return True
        return False

    def add_comma_separated(
        self,
        option: str,
        values: Optional[str],
        valids: Optional[Collection[str]] = None,
        filter: Optional[Callable[[List[str]], Optional[List[str]]]] = None,  # pylint: disable=redefined-builtin
    ) -> bool:
        """
        Adds an option of the form ``-option:value1,value2`` such as ``-g:lines,vars``.
        Blank values are ignored and values are lower-cased. `filter` can rewrite the values
        or return None to cancel the option.
        """
        if values is None:
            return False
        split = [v.strip().lower() for v in values.split(",") if v.strip()]
        if not split:
            return False
        if filter is not None:
            split = filter(split)
            if split is None:
                return False
        s = option + ":" + ",".join(split)
        if self._check_number_of_arguments(s, 0, False):
            self.options.append(s)
            return True
        warning = self._warning
        if valids is not None:
            for value in split:
                if value not in valids:
                    quoted = [f"'{v}'" for v in valids]
                    legal = ", ".join(quoted[:-1]) + (", and " if len(quoted) > 1 else "") + quoted[-1]
                    warning = (
                        f"{warning[:-1]}, because the specified {option} value '{value}' is unexpected. "
                        f"Legal values are: {legal}."
                    )
                    break
        warn(warning)
        self._warning = None
        return False

    def add_memory_value(self, option: str, label: str, value: Optional[str], add_default_unit: bool = True) -> bool:
        """
        Adds a memory setting such as ``-J-Xmx512M``. The value is digits optionally followed by
        one of the K, M or G units. Invalid values are ignored with a warning.
        """
        value = _strip(value)
        if value is None:
            return False
        for i, c in enumerate(value):
            if not ("0" <= c <= "9"):
                if i == len(value) - 1 and c.upper() in "KMG":
                    add_default_unit = False
                    break
                warn(f'Invalid value for {label}="{value}". Ignoring this option.')
                return False
        if add_default_unit:
            value += "M"
            warn(
                f'Value {label}="{value}" has been specified without unit. '
                'An explicit "M" unit symbol should be appended for avoiding ambiguity.'
            )
        option += value
        if self._check_number_of_arguments(option, 0, True):
            self.options.append(option)
            return True
        return False

    def _check_number_of_arguments(self, option: str, count: int, immediate: bool) -> bool:
        expected = self.checker.is_supported_option(option)
        if expected == count:
            self._warning = None
            return True
        elif expected < 0:
            if getattr(self.checker, "forked", False):
                # the external executable is the judge of which options exist
                return True
            self._warning = f"The '{option}' option is not supported."
        elif expected == 0:
            self._warning = f"The '{option}' option does not expect any argument."
        elif expected == 1:
            self._warning = f"The '{option}' option expects a single argument."
        else:
            self._warning = f"The '{option}' option expects {expected} arguments."
        if immediate:
            warn(self._warning)
            self._warning = None
        return False

    def add_unchecked(self, arguments: Optional[Iterable[str]]) -> None:
        if arguments is None:
            return
        for arg in arguments:
            arg = _strip(arg)
            if arg is not None:
                self.options.append(arg)

    def arity(self, flag: str) -> int:
        """
        Gets the number of values following `flag`, 0 if the flag is unknown.
        """
        return max(self.checker.is_supported_option(flag), 0)

    def pairs(self) -> List[Tuple[str, Optional[str]]]:
        """
        Groups the options as (flag, value) pairs. Flags without value are paired with None.
        """
        result = []
        i = 0
        while i < len(self.options):
            flag = self.options[i]
            if flag.startswith("-") and i + 1 < len(self.options) and self.arity(flag) == 1:
                result.append((flag, self.options[i + 1]))
                i += 2
            else:
                result.append((flag, None))
                i += 1
        return result

    def has_flag(self, *flags: str) -> bool:
        return any(flag in flags for flag, _ in self.pairs())

    def value_of(self, flag: str) -> Optional[str]:
        for f, value in self.pairs():
            if f == flag:
                return value
        return None

    def without_values(self, flags: Sequence[str]) -> List[str]:
        """
        Gets the options with the given flags and their values removed.
        """
        result: List[str] = []
        for flag, value in self.pairs():
            if flag in flags:
                continue
            result.append(flag)
            if value is not None:
                result.append(value)
        return result

    def fingerprint(self) -> str:
        return hashlib.sha256("\0".join(self.options).encode("utf-8")).hexdigest()

    def format(self) -> str:
        """
        Formats the options for display, one flag per line followed by its value.
        Memory options (``-J...``) are listed first on their own line.
        """
        lines: List[str] = []
        launcher = [o for o in self.options if o.startswith("-J")]
        if launcher:
            lines.append(" ".join(launcher))
        for flag, value in self.pairs():
            if flag.startswith("-J"):
                continue
            text = f'"{flag}"' if " " in flag else flag
            if value is not None:
                text += " " + (f'"{value}"' if " " in value else value)
            lines.append(text)
        return "\n".join(lines)
