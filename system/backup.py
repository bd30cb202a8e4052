# system/backup.py
from __future__ import annotations
import os
import re
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional
from errors import BackupError
from logger import log

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S_%f"
_TIMESTAMP_RE = r"\d{8}_\d{6}_\d{6}"


@dataclass(frozen=True)
class BackupHandle:
    original_path: Path
    backup_path: Optional[Path]    # None = original did not exist
    timestamp: str

    @property
    def existed(self) -> bool:
        return self.backup_path is not None


class BackupManager:
    """
    Timestamped copies of files taken right before they are mutated.
    Backups are never pruned here; operators clean the directory out of band.
    """

    def __init__(self, backup_dir: str = "/var/backups/server-bootstrap"):
        self.backup_dir = Path(backup_dir)
        self.handles: List[BackupHandle] = []

    def _ensure_dir(self) -> None:
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        os.chmod(self.backup_dir, 0o700)

    # -- Backup ------------------------------------------------------------

    def backup(self, path: Path) -> BackupHandle:
        path = Path(path)
        ts = datetime.now().strftime(TIMESTAMP_FORMAT)
        if not path.exists():
            log.info("No existing %s to back up (will be created)", path)
            handle = BackupHandle(original_path=path, backup_path=None, timestamp=ts)
            self.handles.append(handle)
            return handle

        dest = self.backup_dir / f"{path.name}.{ts}"
        try:
            self._ensure_dir()
            shutil.copy2(path, dest)
        except OSError as e:
            raise BackupError(f"Failed to back up {path}: {e}") from e
        _copy_owner(path, dest)
        log.info("Backed up %s -> %s", path, dest)
        handle = BackupHandle(original_path=path, backup_path=dest, timestamp=ts)
        self.handles.append(handle)
        return handle

    # -- Lookup ------------------------------------------------------------

    def backups_for(self, path: Path) -> List[Path]:
        """All backups of `path`, oldest first."""
        path = Path(path)
        if not self.backup_dir.is_dir():
            return []
        pattern = re.compile(re.escape(path.name) + r"\." + _TIMESTAMP_RE)
        return sorted(
            p for p in self.backup_dir.iterdir() if pattern.fullmatch(p.name)
        )

    def latest(self, path: Path) -> Optional[Path]:
        found = self.backups_for(path)
        return found[-1] if found else None

    # -- Restore -----------------------------------------------------------

    def restore(self, handle: BackupHandle) -> None:
        original = handle.original_path
        if not handle.existed:
            if original.exists():
                original.unlink()
                log.info("Rollback: removed %s (did not exist before)", original)
            return

        latest = self.latest(original)
        if latest is None:
            raise BackupError(f"No backup found for {original}")
        try:
            shutil.copy2(latest, original)
        except OSError as e:
            raise BackupError(f"Failed to restore {original} from {latest}: {e}") from e
        _copy_owner(latest, original)
        log.info("Rollback: restored %s from %s", original, latest)


def _copy_owner(src: Path, dest: Path) -> None:
    st = src.stat()
    try:
        os.chown(dest, st.st_uid, st.st_gid)
    except PermissionError:
        log.debug("Cannot preserve owner on %s (not root)", dest)
