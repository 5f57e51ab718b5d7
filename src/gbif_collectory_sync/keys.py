"""Reads the ordered list of GBIF dataset keys produced by the archive split."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Optional

from .outcome_log import OutcomeLog


def parse_key_lines(
    lines: Iterable[str], outcome_log: Optional[OutcomeLog] = None
) -> Iterator[str]:
    """Yield the first colon-delimited field of every non-blank line."""
    index = 0
    for raw in lines:
        line = raw.strip()
        if not line:
            continue
        index += 1
        key = line.split(":", 1)[0].strip()
        if outcome_log is not None:
            outcome_log.write(f"read line: {index} datasetKey: {key}")
        yield key


def read_dataset_keys(path: Path, outcome_log: Optional[OutcomeLog] = None) -> list[str]:
    with path.open("r", encoding="utf-8") as handle:
        return list(parse_key_lines(handle, outcome_log))
