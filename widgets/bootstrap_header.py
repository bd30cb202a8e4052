# widgets/bootstrap_header.py
from __future__ import annotations
import pyfiglet
from textual.widgets import Static

_BANNER = pyfiglet.figlet_format("Host Bootstrap", font="small").rstrip("\n")

STEPS = ("Probe", "Target", "Plan", "Apply", "Summary")


class BootstrapHeader(Static):
    """Banner with the wizard step and a dry-run marker, shown on every screen."""

    DEFAULT_CSS = """
    BootstrapHeader {
        color: $accent;
        text-style: bold;
        width: 100%;
        padding: 0 2;
    }
    BootstrapHeader.-dry-run {
        color: $warning;
    }
    """

    def __init__(self, step: int = 0) -> None:
        super().__init__(_BANNER, markup=False)
        self.step = step

    def caption(self, dry_run: bool) -> str:
        parts = []
        if self.step:
            parts.append(f"Step {self.step}/{len(STEPS)}: {STEPS[self.step - 1]}")
        if dry_run:
            parts.append("DRY RUN, nothing will be changed")
        return "  |  ".join(parts)

    def on_mount(self) -> None:
        dry_run = bool(getattr(self.app, "dry_run", False))
        self.set_class(dry_run, "-dry-run")
        caption = self.caption(dry_run)
        self.update(f"{_BANNER}\n{caption}" if caption else _BANNER)
