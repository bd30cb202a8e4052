# logger.py
import logging
import os

LOG_FILE = "/var/log/server-bootstrap.log"
FALLBACK_LOG_FILE = "/tmp/server-bootstrap.log"

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")


def setup_logger() -> logging.Logger:
    logger = logging.getLogger("host_bootstrap")
    logger.setLevel(logging.DEBUG)

    fmt = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

    # Append-only run log; fall back to /tmp if /var/log not writable
    path = os.environ.get("HOST_BOOTSTRAP_LOG", LOG_FILE)
    try:
        fh = logging.FileHandler(path, mode="a")
    except OSError:
        fh = logging.FileHandler(FALLBACK_LOG_FILE, mode="a")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(fmt)

    if not logger.handlers:
        logger.addHandler(fh)
    logger.propagate = False
    return logger

log = setup_logger()


def log_file_path() -> str:
    for h in log.handlers:
        if isinstance(h, logging.FileHandler):
            return h.baseFilename
    return LOG_FILE
