"""
Logging setup for the ZenCare API.

Everything logs through the root logger: a console handler always, plus
a size-rotated file when ``LOG_FILE`` is set.  ``urllib3`` (used by the
AI counsellor client through ``requests``) is held at WARNING so that
connection chatter does not drown the request log.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
QUIET_LOGGERS = ("urllib3",)


def setup_logging(level: str = "INFO", logfile: Optional[str] = None) -> None:
    """Attach handlers to the root logger unless some are already there.

    ``level`` is a level name such as ``"DEBUG"``; unknown names mean INFO.
    """
    root = logging.getLogger()
    if root.handlers:
        return
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handlers: list = [logging.StreamHandler()]
    if logfile:
        path = Path(logfile).resolve()
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(path, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
