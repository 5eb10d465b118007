"""
Module: loading.file_locking

Purpose:
    Cross-platform locked access to corpus JSONL files. Readers take a
    shared lock so a corpus export running in another process never hands
    the cache a half-written line.

Key Functions:
    - locked_file: Context manager for locked file access
    - locked_read_jsonl: Read all JSONL records under a shared lock
    - locked_append_jsonl: Append a record under an exclusive lock

Dependencies:
    - portalocker: Cross-platform file locking

Used By:
    - loading.loader: JsonlCorpusSource
    - scripts/run_detection.py: --results-log run log
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, List, Tuple

import portalocker

logger = logging.getLogger(__name__)


@contextmanager
def locked_file(
    path: Path,
    mode: str = 'r',
    lock_type: int = portalocker.LOCK_SH,
) -> Generator:
    """
    Context manager for cross-platform locked file access.

    Args:
        path: Path to file.
        mode: File open mode ('r', 'a', ...).
        lock_type: Lock type (LOCK_SH for shared, LOCK_EX for exclusive).

    Yields:
        Open file handle with lock held.

    Example:
        >>> with locked_file(path) as f:
        ...     first = f.readline()
    """
    if 'r' not in mode:
        path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, mode, encoding='utf-8') as f:
        portalocker.lock(f, lock_type)
        try:
            yield f
        finally:
            portalocker.unlock(f)


def locked_read_jsonl(path: Path) -> Tuple[List[Dict[str, Any]], List[Tuple[int, str]]]:
    """
    Read every JSON object from a JSONL file under a shared lock.

    Blank lines are ignored. Lines that are not valid JSON objects are
    reported back instead of aborting the read.

    Args:
        path: Path to an existing JSONL file.

    Returns:
        (records, errors) where errors holds (line number, message) pairs.
    """
    records: List[Dict[str, Any]] = []
    errors: List[Tuple[int, str]] = []
    with locked_file(path, 'r', portalocker.LOCK_SH) as f:
        for line_no, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as e:
                errors.append((line_no, str(e)))
                continue
            if not isinstance(record, dict):
                errors.append((line_no, f"expected object, got {type(record).__name__}"))
                continue
            records.append(record)
    logger.debug(f"Read {len(records)} records from {path.name}")
    return records, errors


def locked_append_jsonl(path: Path, record: Dict[str, Any]) -> None:
    """
    Append a record to a JSONL file with an exclusive lock.

    Args:
        path: Path to JSONL file (created if missing).
        record: Dictionary to append as one JSON line.

    Example:
        >>> locked_append_jsonl(corpus_dir / "papers.jsonl", {"id": "p1", "questions": []})
    """
    with locked_file(path, 'a', portalocker.LOCK_EX) as f:
        f.write(json.dumps(record, ensure_ascii=False) + '\n')

    logger.debug(f"Appended record to {path.name}")
