# system/files.py
from __future__ import annotations
import os
from pathlib import Path
from typing import Optional
from logger import log


def write_text(path: Path, content: str, mode: Optional[int] = None) -> None:
    """
    Write `content` to `path` via a temp file in the same directory and
    os.replace, so a reader never sees a half-written file.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.tmp")
    with open(tmp, "w", encoding="utf-8", newline="\n") as f:
        f.write(content)
        f.flush()
        os.fsync(f.fileno())
    if path.exists():
        st = path.stat()
        os.chmod(tmp, st.st_mode & 0o7777)
        try:
            os.chown(tmp, st.st_uid, st.st_gid)
        except PermissionError:
            log.debug("Cannot preserve owner of %s (not root)", path)
    if mode is not None:
        os.chmod(tmp, mode)
    os.replace(tmp, path)
    log.info("Wrote %s (%d bytes)", path, len(content.encode()))


def read_text(path: Path, errors: str = "strict") -> Optional[str]:
    try:
        return Path(path).read_text(encoding="utf-8", errors=errors)
    except FileNotFoundError:
        return None
