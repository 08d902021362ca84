from __future__ import annotations

import json
import logging
import os
import sys
from typing import Optional

from dotenv import load_dotenv

_configured = False

ROOT = "eventproxy"


class JsonHandler(logging.StreamHandler):
    """One JSON object per record on stdout."""
    def __init__(self):
        super().__init__(stream=sys.stdout)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            obj = {
                "ts": record.created,
                "lvl": record.levelname,
                "name": record.name,
                "msg": record.getMessage(),
                "funcName": record.funcName,
                "lineno": record.lineno,
            }
            self.stream.write(json.dumps(obj, ensure_ascii=False, default=str) + "\n")
            self.flush()
        except Exception:  # pragma: no cover
            self.handleError(record)


def _level(name: str) -> int:
    lvl = logging.getLevelName(name.upper())
    return lvl if isinstance(lvl, int) else logging.INFO


def setup(level: Optional[str] = None, json_mode: Optional[bool] = None, *, force: bool = False) -> None:
    """Configure the root logger once.
    - LOG_LEVEL / LOG_JSON are read from the environment (and .env) when args are None
    - repeated calls are ignored unless force=True
    """
    global _configured
    if _configured and not force:
        return

    load_dotenv()

    py_level = _level(level or os.getenv("LOG_LEVEL", "INFO"))
    json_flag = json_mode if json_mode is not None else (os.getenv("LOG_JSON", "0") == "1")

    root = logging.getLogger()
    # drop old handlers so pytest re-runs don't duplicate output
    root.handlers.clear()
    root.setLevel(py_level)

    if json_flag:
        handler: logging.Handler = JsonHandler()
    else:
        handler = logging.StreamHandler(stream=sys.stdout)
        handler.setFormatter(logging.Formatter(fmt="[%(asctime)s] %(levelname)s %(name)s | %(message)s"))
    root.addHandler(handler)

    _configured = True


def get(name: str) -> logging.Logger:
    """Namespaced logger; bare names are put under `eventproxy.`."""
    if name != ROOT and not name.startswith(ROOT + "."):
        name = f"{ROOT}.{name}"
    return logging.getLogger(name)


def set_level(level: str) -> None:
    """Adjust the root level at runtime (e.g. inside a test)."""
    logging.getLogger().setLevel(_level(level))
