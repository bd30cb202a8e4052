# app.py
from typing import List, Optional

from textual.app import App

from logger import log
from settings import Settings
from state import RunReport, SystemSnapshot, TargetState


class BootstrapWizard(App[int]):
    """Interactive host bootstrap. `run()` returns the process exit code."""

    CSS = """
    Screen {
        background: $surface;
    }
    .title {
        text-style: bold;
        color: $accent;
        margin-bottom: 1;
    }
    .notice {
        color: $warning;
        margin-bottom: 1;
    }
    #content, #form {
        margin: 1 2;
    }
    #nav_buttons {
        dock: bottom;
        height: 3;
        align: center middle;
        margin: 1 2;
    }
    Button {
        margin: 0 1;
    }
    #err_msg {
        margin-top: 1;
        color: $error;
    }
    DataTable {
        height: auto;
        max-height: 14;
        margin-bottom: 1;
    }
    Input {
        margin-bottom: 1;
    }
    RichLog {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, settings: Optional[Settings] = None, *, dry_run: bool = False) -> None:
        super().__init__()
        self.settings = settings or Settings()
        self.dry_run = dry_run
        self.snapshot: Optional[SystemSnapshot] = None
        self.target: Optional[TargetState] = None
        self.report: Optional[RunReport] = None
        self.probe_warnings: List[str] = []
        log.info("BootstrapWizard started (dry_run=%s)", dry_run)

    async def on_mount(self) -> None:
        from screens.s01_probe import ProbeScreen
        await self.push_screen(ProbeScreen())
