"""Append-only, human-readable log of one batch run."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional, TextIO

from .logging_utils import get_logger

logger = get_logger(__name__)

LOG_FILE_SUFFIX = "_api_create_resources.log"


def default_log_path(directory: Path, now: Optional[datetime] = None) -> Path:
    stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    return directory / f"{stamp}{LOG_FILE_SUFFIX}"


class OutcomeLog:
    """Writes one line per event of a sync run.

    Every line is flushed as soon as it is written so a truncated run still
    leaves a usable record of the keys already processed. Lines are mirrored
    to the console logger at INFO level, or WARNING for errors.
    """

    def __init__(self, stream: TextIO, path: Optional[Path] = None) -> None:
        self._stream = stream
        self.path = path
        self._closed = False

    @classmethod
    def open(cls, path: Path) -> "OutcomeLog":
        path.parent.mkdir(parents=True, exist_ok=True)
        return cls(path.open("a", encoding="utf-8"), path=path)

    def __enter__(self) -> "OutcomeLog":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        # Only close streams this log opened itself.
        if self.path is not None and not self._closed:
            self._stream.close()
        self._closed = True

    def write(self, message: str) -> None:
        if self._closed:
            raise RuntimeError("Outcome log is closed")
        self._stream.write(message + "\n")
        self._stream.flush()
        logger.info("%s", message)

    def error(self, message: str) -> None:
        if self._closed:
            raise RuntimeError("Outcome log is closed")
        self._stream.write(f"ERROR | {message}\n")
        self._stream.flush()
        logger.warning("%s", message)
