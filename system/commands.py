# system/commands.py
from __future__ import annotations
import shutil
import subprocess
from typing import List, Optional
from errors import CommandError, CommandTimeout
from logger import log


def run(
    cmd: List[str],
    *,
    timeout: Optional[float] = None,
    check: bool = True,
) -> subprocess.CompletedProcess:
    """Run `cmd`, log it and its outcome to the run log."""
    printable = " ".join(cmd)
    log.info("Running: %s", printable)
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except subprocess.TimeoutExpired as e:
        log.error("Timed out after %ss: %s", timeout, printable)
        raise CommandTimeout(cmd, timeout) from e
    except FileNotFoundError as e:
        log.error("Command not found: %s", cmd[0])
        raise CommandError(cmd, 127, f"{cmd[0]}: command not found") from e

    log.info("Exit %s: %s", result.returncode, printable)
    if result.stdout and result.stdout.strip():
        log.debug("stdout: %s", result.stdout.strip())
    if result.stderr and result.stderr.strip():
        log.debug("stderr: %s", result.stderr.strip())
    if check and result.returncode != 0:
        output = (result.stderr or result.stdout or "").strip()
        raise CommandError(cmd, result.returncode, output)
    return result


def output(cmd: List[str], *, timeout: Optional[float] = 5) -> str:
    """stdout of a read-only query, or "" if it fails."""
    try:
        return run(cmd, timeout=timeout).stdout.strip()
    except CommandError as e:
        log.debug("Query failed: %s", e)
        return ""


def exists(name: str) -> bool:
    return shutil.which(name) is not None
