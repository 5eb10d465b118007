"""
Module: loading.loader

Purpose:
    Corpus sources: where raw paper and scheme documents come from. Each
    source returns a fully parsed CorpusSnapshot; the cache decides when
    to call it.

Key Functions:
    - build_snapshot(): Parse raw paper/scheme documents into a snapshot

Key Classes:
    - CorpusSource: Protocol implemented by every source
    - JsonlCorpusSource: papers.jsonl + schemes.jsonl in a directory
    - InMemoryCorpusSource: Raw documents held in memory (fixtures, tests)
    - LoaderError: Exception for loading failures

Dependencies:
    - loading.parser: Document ingestion
    - loading.file_locking: Shared-lock JSONL reads

Used By:
    - loading.cache.CorpusCache
    - scripts/run_detection.py
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Protocol, Sequence

from gcse_markscheme.core.models import CorpusPaper, CorpusSnapshot, MarkingSchemeEntry

from .file_locking import locked_read_jsonl
from .parser import ParseError, parse_paper, parse_scheme

logger = logging.getLogger(__name__)

PAPERS_FILENAME = "papers.jsonl"
SCHEMES_FILENAME = "schemes.jsonl"


class LoaderError(Exception):
    """Error loading the corpus."""
    pass


class CorpusSource(Protocol):
    """Anything that can produce a fresh corpus snapshot."""

    def load(self) -> CorpusSnapshot:
        ...


def build_snapshot(
    paper_docs: Iterable[Mapping[str, Any]],
    scheme_docs: Iterable[Mapping[str, Any]],
    *,
    origin: str = "memory",
) -> CorpusSnapshot:
    """
    Parse raw documents into a snapshot.

    Documents that cannot be parsed at all (ParseError) are skipped with a
    warning. Documents with missing structural identifiers raise
    DataIntegrityError, which is not caught here.

    Args:
        paper_docs: Raw exam paper documents
        scheme_docs: Raw marking scheme documents
        origin: Label used in log messages

    Returns:
        CorpusSnapshot with papers in document order
    """
    papers: List[CorpusPaper] = []
    for index, doc in enumerate(paper_docs):
        try:
            papers.append(parse_paper(doc))
        except ParseError as e:
            logger.warning(f"Skipping paper #{index} from {origin}: {e}")

    schemes: List[MarkingSchemeEntry] = []
    for index, doc in enumerate(scheme_docs):
        try:
            schemes.append(parse_scheme(doc))
        except ParseError as e:
            logger.warning(f"Skipping scheme #{index} from {origin}: {e}")

    logger.info(f"Loaded {len(papers)} papers and {len(schemes)} marking schemes from {origin}")
    return CorpusSnapshot(papers=tuple(papers), schemes=tuple(schemes))


class JsonlCorpusSource:
    """
    Corpus stored as two JSONL files in one directory.

    Layout:
        corpus_dir/
            papers.jsonl   (one raw paper document per line)
            schemes.jsonl  (one raw scheme document per line, optional)

    Example:
        >>> source = JsonlCorpusSource(Path("corpus"))
        >>> snapshot = source.load()
        >>> len(snapshot.papers)
        42
    """

    def __init__(self, corpus_dir: Path) -> None:
        self.corpus_dir = Path(corpus_dir)

    @property
    def papers_path(self) -> Path:
        return self.corpus_dir / PAPERS_FILENAME

    @property
    def schemes_path(self) -> Path:
        return self.corpus_dir / SCHEMES_FILENAME

    def _read(self, path: Path) -> List[Mapping[str, Any]]:
        records, errors = locked_read_jsonl(path)
        for line_no, message in errors:
            logger.warning(f"Skipping {path.name}:{line_no}: {message}")
        return records

    def load(self) -> CorpusSnapshot:
        """
        Read and parse both files.

        Raises:
            LoaderError: If the directory or papers.jsonl is missing
        """
        if not self.corpus_dir.is_dir():
            raise LoaderError(f"Corpus directory not found: {self.corpus_dir}")
        if not self.papers_path.exists():
            raise LoaderError(f"Missing {PAPERS_FILENAME} in {self.corpus_dir}")

        paper_docs = self._read(self.papers_path)
        if self.schemes_path.exists():
            scheme_docs = self._read(self.schemes_path)
        else:
            logger.warning(f"No {SCHEMES_FILENAME} in {self.corpus_dir}; detection will return no schemes")
            scheme_docs = []
        return build_snapshot(paper_docs, scheme_docs, origin=str(self.corpus_dir))

    def __repr__(self) -> str:
        return f"JsonlCorpusSource({str(self.corpus_dir)!r})"


class InMemoryCorpusSource:
    """
    Corpus held as raw documents in memory.

    Documents are re-parsed on every load, so replacing them with
    ``set_documents`` and invalidating the cache simulates a corpus update.
    """

    def __init__(
        self,
        paper_docs: Optional[Sequence[Mapping[str, Any]]] = None,
        scheme_docs: Optional[Sequence[Mapping[str, Any]]] = None,
    ) -> None:
        self._paper_docs = list(paper_docs or [])
        self._scheme_docs = list(scheme_docs or [])
        self.load_count = 0

    def set_documents(
        self,
        paper_docs: Sequence[Mapping[str, Any]],
        scheme_docs: Sequence[Mapping[str, Any]] = (),
    ) -> None:
        self._paper_docs = list(paper_docs)
        self._scheme_docs = list(scheme_docs)

    def load(self) -> CorpusSnapshot:
        self.load_count += 1
        return build_snapshot(self._paper_docs, self._scheme_docs)
