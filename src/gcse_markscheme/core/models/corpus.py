"""
Module: corpus

Purpose:
    Immutable models for the reference corpus: past papers, their
    questions and (recursively nested) sub-questions, plus the snapshot
    that groups papers and marking schemes for one cache generation.

Key Classes:
    - CorpusSubQuestion: Labelled sub-part ("a", "ii"), may nest
    - CorpusQuestion: Top-level question with aggregate text helpers
    - CorpusPaper: Paper metadata + ordered questions
    - CorpusSnapshot: Papers and schemes loaded together

Dependencies:
    - dataclasses (std)
    - functools (std)
    - core.errors.DataIntegrityError

Used By:
    - loading.parser: Builds these from raw documents
    - detection.scoring: Candidate generation
    - detection.service: Match materialisation
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from functools import cached_property
from typing import Dict, Iterator, Optional, Tuple

from gcse_markscheme.common.text import (
    base_question_number,
    normalize_exam_series,
    normalize_metadata_text,
    tier_display,
)
from gcse_markscheme.core.errors import DataIntegrityError

from .schemes import MarkingSchemeEntry


def _check_unique_labels(owner: str, children: Tuple[CorpusSubQuestion, ...]) -> None:
    seen = set()
    for child in children:
        if not child.label:
            raise DataIntegrityError(f"Sub-question of {owner} is missing its label")
        if child.label in seen:
            raise DataIntegrityError(f"Duplicate sub-question label '{child.label}' in {owner}")
        seen.add(child.label)


@dataclass(frozen=True)
class CorpusSubQuestion:
    """
    One sub-part of a corpus question (immutable).

    Attributes:
        label: Normalized part label, e.g. "a" or "ii"
        text: Sub-question text
        marks: Marks available for this part
        children: Nested sub-parts ("a" -> "i", "ii")
    """
    label: str
    text: str = ""
    marks: int = 0
    children: Tuple[CorpusSubQuestion, ...] = ()

    def __post_init__(self) -> None:
        if self.marks < 0:
            raise ValueError(f"Marks cannot be negative: {self.marks}")
        _check_unique_labels(f"part '{self.label}'", self.children)

    def iter_parts(self, prefix: str = "") -> Iterator[Tuple[str, CorpusSubQuestion]]:
        """Yield (label path, sub-question) for this part and its descendants."""
        path = f"{prefix}{self.label}"
        yield path, self
        for child in self.children:
            yield from child.iter_parts(path)


@dataclass(frozen=True)
class CorpusQuestion:
    """
    Top-level question of a past paper (immutable).

    Attributes:
        number: Question number as printed, e.g. "12"
        text: Question stem text
        marks: Total marks for the question
        sub_questions: Ordered sub-parts

    Example:
        >>> q = CorpusQuestion("5", "Here is a triangle.", 4,
        ...     (CorpusSubQuestion("a", "Work out the area.", 2),))
        >>> q.aggregate_text
        'Here is a triangle.\\nWork out the area.'
    """
    number: str
    text: str = ""
    marks: int = 0
    sub_questions: Tuple[CorpusSubQuestion, ...] = ()

    def __post_init__(self) -> None:
        if not self.number:
            raise DataIntegrityError("Corpus question is missing its number")
        if self.marks < 0:
            raise ValueError(f"Marks cannot be negative: {self.marks}")
        _check_unique_labels(f"question {self.number}", self.sub_questions)

    @cached_property
    def base_number(self) -> str:
        """Leading digit run of the question number."""
        return base_question_number(self.number)

    def iter_sub_questions(self) -> Iterator[Tuple[str, CorpusSubQuestion]]:
        """Yield (label path, sub-question) depth-first, e.g. ("a", ...), ("ai", ...)."""
        for sub in self.sub_questions:
            yield from sub.iter_parts()

    @cached_property
    def aggregate_text(self) -> str:
        """Question text followed by every descendant sub-question text."""
        texts = [self.text] + [sub.text for _, sub in self.iter_sub_questions()]
        return "\n".join(t for t in texts if t)

    def find_sub_question(self, label_path: str) -> Optional[CorpusSubQuestion]:
        """Look up a sub-question by its full label path ("b", "bii")."""
        for path, sub in self.iter_sub_questions():
            if path == label_path:
                return sub
        return None

    @cached_property
    def sub_question_max_scores(self) -> Dict[str, int]:
        """Full question number -> marks for every sub-question ("5a" -> 2)."""
        return {f"{self.number}{path}": sub.marks for path, sub in self.iter_sub_questions()}

    @cached_property
    def sub_question_texts(self) -> Dict[str, str]:
        """Full question number -> text for every sub-question."""
        return {f"{self.number}{path}": sub.text for path, sub in self.iter_sub_questions()}


@dataclass(frozen=True)
class CorpusPaper:
    """
    A past exam paper (immutable).

    Attributes:
        paper_id: Unique document id
        board: Exam board, e.g. "Pearson Edexcel"
        qualification: Qualification/subject name, e.g. "GCSE Mathematics"
        paper_code: Paper code, e.g. "1MA1/1H"
        exam_series: Sitting, e.g. "June 2023"
        tier: Tier as stored ("H", "F", "Higher", "")
        subject: Subject name
        questions: Ordered top-level questions

    Metadata fields may be empty on a loaded paper; a paper with missing
    board/qualification/code/series is only rejected when it is matched.
    """
    paper_id: str
    board: str = ""
    qualification: str = ""
    paper_code: str = ""
    exam_series: str = ""
    tier: str = ""
    subject: str = ""
    questions: Tuple[CorpusQuestion, ...] = ()

    def missing_metadata(self) -> Tuple[str, ...]:
        """Names of required metadata fields that are empty."""
        required = {
            "board": self.board,
            "qualification": self.qualification,
            "paper_code": self.paper_code,
            "exam_series": self.exam_series,
        }
        return tuple(name for name, value in required.items() if not value)

    @property
    def paper_key(self) -> Tuple[str, str, str, str]:
        """Identity of the paper: (board, code, series, tier)."""
        return (self.board, self.paper_code, normalize_exam_series(self.exam_series), self.tier)

    @cached_property
    def title(self) -> str:
        """Display title, e.g. "Pearson Edexcel GCSE Mathematics 1MA1/1H (June 2023) Higher Tier"."""
        title = f"{self.board} {self.qualification} {self.paper_code} ({normalize_exam_series(self.exam_series)})"
        tier = tier_display(self.tier)
        return f"{title} {tier}" if tier else title

    @cached_property
    def search_text(self) -> str:
        """Normalized metadata haystack used for paper-hint narrowing."""
        parts = [
            self.board,
            self.qualification,
            self.subject,
            self.paper_code,
            self.exam_series,
            normalize_exam_series(self.exam_series),
            self.tier,
            tier_display(self.tier),
        ]
        return normalize_metadata_text(" ".join(p for p in parts if p))

    def __repr__(self) -> str:
        return f"CorpusPaper({self.paper_id!r}, {self.paper_code!r}, {len(self.questions)} questions)"


@dataclass(frozen=True)
class CorpusSnapshot:
    """
    Papers and marking schemes loaded together (immutable).

    A snapshot is swapped atomically by the corpus cache; readers holding
    an older snapshot keep a consistent view.
    """
    papers: Tuple[CorpusPaper, ...] = ()
    schemes: Tuple[MarkingSchemeEntry, ...] = ()
    loaded_at: datetime = field(default_factory=datetime.now)

    @property
    def is_empty(self) -> bool:
        return not self.papers

    def __repr__(self) -> str:
        return f"CorpusSnapshot({len(self.papers)} papers, {len(self.schemes)} schemes)"
