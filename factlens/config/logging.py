from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
DEFAULT_LOG_FILE = "factlens.log"

# Third-party loggers that log every request at INFO.
QUIET_LOGGERS = ("httpx", "google_genai", "werkzeug")

_HANDLER_MARK = "_factlens_handler"


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    level: int | str = logging.INFO,
    log_file: str | None = DEFAULT_LOG_FILE,
) -> logging.Logger:
    """Attach the file and console handlers to the root logger.

    Calling it again replaces the handlers from the previous call, so the
    level and file can be reapplied once settings are loaded. ``log_file=None``
    logs to the console only.
    """
    root = logging.getLogger()
    resolved = _resolve_level(level)
    root.setLevel(resolved)

    for handler in [h for h in root.handlers if getattr(h, _HANDLER_MARK, False)]:
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    handlers: list[logging.Handler] = []

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    stream = sys.stderr if sys.platform == "win32" else sys.stdout
    handlers.append(logging.StreamHandler(stream))

    for handler in handlers:
        handler.setLevel(resolved)
        handler.setFormatter(formatter)
        setattr(handler, _HANDLER_MARK, True)
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root
