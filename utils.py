"""
utils.py

Small collection of utilities: filesystem helpers, atomic JSON write and a
minimal logger setup helper.
"""

from typing import Any, Dict, Optional, Union
from pathlib import Path
import json
import tempfile
import os
import logging


def ensure_dir(path: str) -> str:
    """
    Ensure directory exists; returns the path.
    """
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return str(p)


def write_json_atomic(path: str, data: Any, indent: int = 2) -> None:
    """
    Write JSON to a temp file and atomically move into place.
    """
    p = Path(path)
    ensure_dir(str(p.parent))
    fd, tmp = tempfile.mkstemp(prefix=p.name, dir=str(p.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=indent, ensure_ascii=False)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, str(p))
    finally:
        if os.path.exists(tmp):
            try:
                os.remove(tmp)
            except OSError:
                pass


def read_json(path: str) -> Optional[Dict]:
    p = Path(path)
    if not p.exists():
        return None
    with p.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def setup_basic_logger(name: str = "poly2r1cs", level: Union[int, str] = logging.INFO) -> logging.Logger:
    """
    Return a logger configured with a StreamHandler and a compact formatter.
    `level` may be a logging constant or its name ("DEBUG", "INFO", ...).
    """
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"unknown log level: {level}")
        level = resolved
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if logger.handlers:
        return logger
    ch = logging.StreamHandler()
    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    ch.setFormatter(fmt)
    logger.addHandler(ch)
    return logger
