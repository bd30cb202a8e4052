# errors.py
from __future__ import annotations
from typing import List, Optional


class BootstrapError(Exception):
    """Base error. `exit_code` is what the process exits with if uncaught."""

    exit_code = 1


class ValidationError(BootstrapError):
    """Bad operator input; raised before anything is mutated."""

    exit_code = 2


class ProbeError(BootstrapError):
    """Nothing usable to configure (no interface, unreadable config dir, failed pre-flight)."""

    exit_code = 3


class BackupError(BootstrapError):
    pass


class CommandError(BootstrapError):
    def __init__(self, cmd: List[str], returncode: Optional[int], output: str = "") -> None:
        self.cmd = list(cmd)
        self.returncode = returncode
        self.output = output
        msg = f"'{' '.join(self.cmd)}' exited with {returncode}"
        if output:
            msg += f": {output}"
        super().__init__(msg)


class CommandTimeout(CommandError):
    def __init__(self, cmd: List[str], timeout: float) -> None:
        self.timeout = timeout
        super().__init__(cmd, None, f"timed out after {timeout:g}s")
