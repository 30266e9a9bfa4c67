"""Filesystem locations for the resolution database and log files."""

import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def _running_in_container():
    return os.path.exists("/.dockerenv") or os.path.isdir("/data")


if _running_in_container():
    _DEFAULT_DATA_DIR = Path("/data")
    _DEFAULT_LOG_DIR = Path("/logs")
else:
    _DEFAULT_DATA_DIR = PROJECT_ROOT / "data"
    _DEFAULT_LOG_DIR = _DEFAULT_DATA_DIR / "logs"

DATA_DIR = Path(os.environ.get("TUNEPOOL_DATA_DIR", _DEFAULT_DATA_DIR)).resolve()
LOG_DIR = Path(os.environ.get("TUNEPOOL_LOG_DIR", _DEFAULT_LOG_DIR)).resolve()
DB_PATH = DATA_DIR / "database" / "tunepool.sqlite"
LOG_FILE_NAME = "tunepool.log"


def ensure_dir(path):
    if path:
        os.makedirs(path, exist_ok=True)


def resolve_db_path(path=None):
    """Absolute database path; relative paths land under ``DATA_DIR``. Creates the parent directory."""
    if not path:
        resolved = DB_PATH
    else:
        candidate = Path(path).expanduser()
        resolved = candidate if candidate.is_absolute() else DATA_DIR / candidate
    ensure_dir(resolved.parent)
    return str(resolved)
