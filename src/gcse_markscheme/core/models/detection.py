"""
Module: detection

Purpose:
    Immutable result models produced by question detection: scored
    candidates, the denormalised exam-paper match, hint diagnostics and
    the overall detection result.

Key Classes:
    - ScoreBreakdown: Text/numeric/semantic/structural signals
    - Candidate: One corpus question scored against a query
    - AuditEntry: Candidate summary kept for diagnostics
    - HintMetadata: How hints shaped the search
    - ExamPaperMatch: Accepted match, denormalised
    - DetectionResult: found flag + match + diagnostics

Dependencies:
    - dataclasses (std)
    - .corpus, .schemes

Used By:
    - detection.scoring / detection.ranking / detection.service
    - orchestration: Consensus, merging and statistics
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Mapping, Optional, Tuple

from .corpus import CorpusPaper, CorpusQuestion
from .schemes import ResolvedScheme


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    """
    Signals behind a candidate score.

    Attributes:
        text: Normalized text similarity [0, 1]
        numeric: Numeric fingerprint overlap [0, 1]
        semantic: Keyword sets agree (or too sparse to judge)
        structural: Question-number agreement (1.0 / 0.0, or 0.5 without hint)
        hybrid: Combined text/numeric/semantic score before structure
    """
    text: float
    numeric: float
    semantic: bool
    structural: float
    hybrid: float


@dataclass(frozen=True)
class Candidate:
    """
    One corpus question scored against a query (immutable).

    Attributes:
        paper: Paper the question belongs to
        question: Scored top-level question
        breakdown: Score signals
        score: Final score after gates and penalties
        sub_label: Matched sub-question label path ("" when none)
        order: Corpus position, used to break score ties
    """
    paper: CorpusPaper
    question: CorpusQuestion
    breakdown: ScoreBreakdown
    score: float
    sub_label: str = ""
    order: int = 0

    @property
    def candidate_id(self) -> str:
        return f"{self.paper.paper_id}#{self.question.number}{self.sub_label}"


@dataclass(frozen=True, slots=True)
class AuditEntry:
    """Candidate summary kept in the audit trail."""
    candidate_id: str
    paper_title: str
    question_number: str
    score: float
    text: float
    numeric: float
    semantic: bool
    structural: float

    @classmethod
    def from_candidate(cls, candidate: Candidate) -> AuditEntry:
        return cls(
            candidate_id=candidate.candidate_id,
            paper_title=candidate.paper.title,
            question_number=candidate.question.number,
            score=candidate.score,
            text=candidate.breakdown.text,
            numeric=candidate.breakdown.numeric,
            semantic=candidate.breakdown.semantic,
            structural=candidate.breakdown.structural,
        )

    def to_dict(self) -> dict:
        return {
            "candidate_id": self.candidate_id,
            "paper_title": self.paper_title,
            "question_number": self.question_number,
            "score": round(self.score, 4),
            "text": round(self.text, 4),
            "numeric": round(self.numeric, 4),
            "semantic": self.semantic,
            "structural": self.structural,
        }


@dataclass(frozen=True)
class HintMetadata:
    """
    How hints shaped one detection.

    Attributes:
        hint_used: Paper hint as supplied ("" when none)
        question_hint: Sanitised question-number hint
        matched_papers_count: Papers the paper hint matched (0 = hint ignored)
        pool_size: Papers actually searched
        deep_search_active: Whole corpus searched
        rescue_mode: Hint narrowed the pool to very few papers
        threshold_relaxed: Accepted below the strict threshold
        matched_paper_title: Title of the accepted paper, if any
        audit_trail: Top candidates with score breakdowns
    """
    hint_used: str = ""
    question_hint: Optional[str] = None
    matched_papers_count: int = 0
    pool_size: int = 0
    deep_search_active: bool = True
    rescue_mode: bool = False
    threshold_relaxed: bool = False
    matched_paper_title: str = ""
    audit_trail: Tuple[AuditEntry, ...] = ()

    @property
    def searched(self) -> bool:
        """False for early exits (empty query, empty corpus) that never built a pool."""
        return self.pool_size > 0


@dataclass(frozen=True)
class ExamPaperMatch:
    """
    Accepted corpus match, denormalised for downstream consumers (immutable).

    Attributes:
        board / qualification / paper_code / exam_series / tier / subject:
            Paper identity
        paper_title: Display title used for consensus voting
        question_number: Matched top-level question number
        sub_question_number: Matched sub-question label path, if any
        marks: Marks of the matched (sub-)question
        parent_question_marks: Marks of the whole question
        confidence: Final candidate score
        database_question_text: Corpus text of the matched (sub-)question
        sub_question_max_scores: "5a" -> marks for every nested sub-question
        sub_question_texts: "5a" -> text for every nested sub-question
        marking_scheme: Resolved scheme, if any
        is_weak_match: Accepted with confidence below the weak-match line
        threshold_relaxed: Accepted below the strict threshold
        is_generic: Synthesised fallback, not a corpus paper
    """
    board: str
    qualification: str
    paper_code: str
    exam_series: str
    tier: str = ""
    subject: str = ""
    paper_title: str = ""
    question_number: str = ""
    sub_question_number: str = ""
    marks: int = 0
    parent_question_marks: int = 0
    confidence: float = 0.0
    database_question_text: str = ""
    sub_question_max_scores: Mapping[str, int] = field(default_factory=dict)
    sub_question_texts: Mapping[str, str] = field(default_factory=dict)
    marking_scheme: Optional[ResolvedScheme] = None
    is_weak_match: bool = False
    threshold_relaxed: bool = False
    is_generic: bool = False

    @property
    def paper_key(self) -> Tuple[str, str, str, str]:
        return (self.board, self.paper_code, self.exam_series, self.tier)

    def with_scheme(self, scheme: Optional[ResolvedScheme]) -> ExamPaperMatch:
        return replace(self, marking_scheme=scheme)

    def __repr__(self) -> str:
        return (
            f"ExamPaperMatch({self.paper_code!r} Q{self.question_number}{self.sub_question_number}, "
            f"confidence={self.confidence:.3f})"
        )


@dataclass(frozen=True)
class DetectionResult:
    """
    Outcome of detecting one query (immutable).

    A miss is a normal outcome: ``found`` is False, ``match`` is None and
    ``hint_metadata`` explains what was searched.
    """
    found: bool
    match: Optional[ExamPaperMatch] = None
    message: str = ""
    hint_metadata: HintMetadata = field(default_factory=HintMetadata)

    @classmethod
    def not_found(cls, message: str, hint_metadata: Optional[HintMetadata] = None) -> DetectionResult:
        return cls(found=False, match=None, message=message, hint_metadata=hint_metadata or HintMetadata())

    @property
    def has_scheme(self) -> bool:
        return self.match is not None and self.match.marking_scheme is not None
