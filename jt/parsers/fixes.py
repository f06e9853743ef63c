"""
Fix-log parser: read recorded location fixes from CSV or JSON-lines files.

Columns / keys (short or long form):
  ts|timestamp, lat|latitude, lon|longitude, accuracy, speed, channel
"""

import csv
import json
from pathlib import Path
from typing import Any, Iterator, Tuple

from pydantic import ValidationError

from jt.utils.log import get_logger
from jt.utils.validate import FixRecord

logger = get_logger(__name__)

JSON_SUFFIXES = (".jsonl", ".ndjson", ".json")


def _iter_rows(path: Path) -> Iterator[Any]:
    with path.open("r", encoding="utf-8", newline="") as f:
        if path.suffix.lower() in JSON_SUFFIXES:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    yield json.loads(line)
                except ValueError:
                    yield None
        else:
            yield from csv.DictReader(f)


def iter_fixes(file_path: str | Path) -> Iterator[FixRecord]:
    """
    Yield FixRecord objects from a fix log, skipping malformed rows.

    Parameters
    ----------
    file_path : str | Path
        CSV file, or JSON-lines file when the suffix is .jsonl/.ndjson/.json.
    """
    for record in _parse(Path(file_path)):
        if record is not None:
            yield record


def load_fixes(file_path: str | Path) -> Tuple[list[FixRecord], int]:
    """
    Load a whole fix log into memory.

    Returns
    -------
    Tuple[list[FixRecord], int]
        (records in file order, number of rows skipped)
    """
    p = Path(file_path)
    records: list[FixRecord] = []
    skipped = 0
    for record in _parse(p):
        if record is None:
            skipped += 1
        else:
            records.append(record)
    if skipped:
        logger.warning("Skipped %d malformed rows in %s", skipped, p)
    return records, skipped


def _parse(path: Path) -> Iterator[FixRecord | None]:
    for lineno, row in enumerate(_iter_rows(path), start=1):
        if not isinstance(row, dict):
            yield None
            continue
        try:
            yield FixRecord.model_validate(row)
        except ValidationError as exc:
            logger.debug("Row %d of %s rejected: %s", lineno, path, exc.errors()[0]["msg"])
            yield None
