"""Logging helpers for CUR experiments."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

import numpy as np


def get_logger(name: str = "randomized_cur", level: int = logging.INFO) -> logging.Logger:
    """Return a configured logger for the project.

    Parameters
    ----------
    name:
        Logger name; defaults to a shared project logger.
    level:
        Level set on first configuration; later calls leave it untouched.

    Returns
    -------
    logging.Logger
        Logger with a single stream handler attached.
    """

    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(level)
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            fmt="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


def _to_json(value: Any) -> Any:
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    raise TypeError(f"object of type {type(value).__name__} is not JSON serializable")


def append_jsonl(path: Path, record: Dict[str, Any]) -> None:
    """Append one trial record to a JSONL (one-JSON-per-line) file.

    NumPy scalars and index arrays are converted to plain JSON values.

    Parameters
    ----------
    path:
        Destination file path; parent directories are created.
    record:
        Mapping to be serialized on a single line.
    """

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as f:
        json.dump(record, f, default=_to_json)
        f.write("\n")
