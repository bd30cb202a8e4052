# network/checks.py
from __future__ import annotations
from dataclasses import dataclass
from system import commands
from errors import CommandError
from logger import log


@dataclass
class CheckResult:
    label: str
    target: str
    passed: bool
    error: str = ""

    @property
    def status_icon(self) -> str:
        return "✓" if self.passed else "✗"

    def __str__(self) -> str:
        status = "PASS" if self.passed else f"FAIL ({self.error})"
        return f"[{self.status_icon}] {self.label}: {self.target} -> {status}"


def check_icmp(host: str, *, label: str, timeout: float = 3.0) -> CheckResult:
    """Single ICMP echo via 'ping -c1 -W<timeout>'."""
    try:
        result = commands.run(
            ["ping", "-c1", f"-W{int(timeout)}", host],
            timeout=timeout + 2, check=False,
        )
    except CommandError as e:
        log.warning("ICMP check ERROR: %s: %s", host, e)
        return CheckResult(label=label, target=host, passed=False, error=str(e.output))
    passed = result.returncode == 0
    log.info("ICMP check %s: %s", "PASS" if passed else "FAIL", host)
    return CheckResult(label=label, target=host, passed=passed,
                       error="" if passed else "no response")
