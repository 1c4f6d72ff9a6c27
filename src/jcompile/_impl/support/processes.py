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

__all__ = ["ERROR_TIMEOUT", "run_and_capture", "terminate_subprocesses"]

import os
import signal
import subprocess
import sys
import time
from typing import List, Optional, Sequence, Tuple

from .logging import log, log_error, logvv

Args = Sequence[str]
ReturnCode = int

# The running compiler processes, so an interrupted build can clean them up
_currentSubprocesses: List[Tuple[subprocess.Popen, Args]] = []

ERROR_TIMEOUT = 0x700000000  # not 32 bits


def _is_windows() -> bool:
    return sys.platform.startswith("win32")


def _kill_process(pid: int, sig: int) -> bool:
    """
    Sends the signal `sig` to the process identified by `pid`. If `pid` is a process group
    leader, then signal is sent to the process group id.
    """
    try:
        logvv(f"[{os.getpid()} sending {sig} to {pid}]")
        pgid = os.getpgid(pid)
        if pgid == pid:
            os.killpg(pgid, sig)
        else:
            os.kill(pid, sig)
        return True
    except OSError as e:
        log("Error killing subprocess " + str(pid) + ": " + str(e))
        return False


def terminate_subprocesses() -> None:
    for p, args in list(_currentSubprocesses):
        if p.poll() is not None:
            continue
        if _is_windows():
            p.terminate()
        else:
            _kill_process(p.pid, signal.SIGTERM)
        time.sleep(0.1)
        if p.poll() is None:
            try:
                p.kill()
            except OSError as e:
                log_error(f"error while killing subprocess {p.pid} \"{' '.join(args)}\": {e}")


def run_and_capture(args: Args, cwd: Optional[str] = None, timeout: Optional[float] = None) -> Tuple[ReturnCode, str]:
    """
    Runs `args` and returns its exit code together with the merged stdout and stderr output.
    """
    logvv(" ".join(args))
    p = subprocess.Popen(
        list(args), cwd=cwd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, universal_newlines=True
    )
    entry = (p, args)
    logvv(f"[{os.getpid()}: started subprocess {p.pid}: {args}]")
    _currentSubprocesses.append(entry)
    try:
        try:
            output, _ = p.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            log_error(f"Process timed out after {timeout} seconds: {' '.join(args)}")
            p.kill()
            output, _ = p.communicate()
            return ERROR_TIMEOUT, output
        except KeyboardInterrupt:
            terminate_subprocesses()
            raise
        return p.returncode, output
    finally:
        _currentSubprocesses.remove(entry)
