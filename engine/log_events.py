import logging
import os

from engine.json_utils import safe_json_dumps
from engine.paths import LOG_FILE_NAME, ensure_dir

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def log_event(level, message, **fields):
    payload = {"message": message, **fields}
    try:
        logging.log(level, safe_json_dumps(payload, sort_keys=True))
    except Exception as exc:
        logging.log(level, f"log_event_serialization_failed: {exc} message={message}")


def _resolve_level(level):
    raw = level or os.environ.get("LOG_LEVEL") or "INFO"
    if isinstance(raw, int):
        return raw
    resolved = logging.getLevelName(str(raw).strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(log_dir=None, level=None):
    root = logging.getLogger("")
    root.setLevel(_resolve_level(level))
    formatter = logging.Formatter(LOG_FORMAT)

    has_console = any(
        isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler)
        for handler in root.handlers
    )
    if not has_console:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        root.addHandler(console)

    if not log_dir:
        return
    ensure_dir(log_dir)
    log_path = os.path.join(log_dir, LOG_FILE_NAME)
    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler):
            if os.path.abspath(getattr(handler, "baseFilename", "")) == os.path.abspath(log_path):
                return
    file_handler = logging.FileHandler(log_path)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)
