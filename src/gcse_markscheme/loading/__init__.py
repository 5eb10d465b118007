"""
Module: loading

Purpose:
    Corpus ingestion and caching. Raw paper/scheme documents are parsed
    once into the canonical models and cached per process with a TTL.

Key Functions:
    - build_snapshot(): Parse raw documents into a CorpusSnapshot
    - parse_paper() / parse_scheme(): Single-document ingestion

Key Classes:
    - CorpusCache: TTL cache, stale-while-revalidate, single-flight refresh
    - JsonlCorpusSource / InMemoryCorpusSource: Corpus sources

Used By:
    - detection.service: Corpus access
    - scripts/run_detection.py
"""

from .cache import CorpusCache, DEFAULT_TTL_SECONDS
from .file_locking import locked_append_jsonl, locked_read_jsonl
from .loader import (
    CorpusSource,
    InMemoryCorpusSource,
    JsonlCorpusSource,
    LoaderError,
    build_snapshot,
)
from .parser import ParseError, parse_mark_point, parse_paper, parse_question_scheme, parse_scheme

__all__ = [
    "CorpusCache",
    "CorpusSource",
    "DEFAULT_TTL_SECONDS",
    "InMemoryCorpusSource",
    "JsonlCorpusSource",
    "LoaderError",
    "ParseError",
    "build_snapshot",
    "locked_append_jsonl",
    "locked_read_jsonl",
    "parse_mark_point",
    "parse_paper",
    "parse_question_scheme",
    "parse_scheme",
]
