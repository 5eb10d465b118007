"""
Module: schemes

Purpose:
    Immutable models for official marking schemes: individual mark points,
    per-question schemes (with alternative-method and composite variants)
    and the scheme entry that ties them to one exam paper.

Key Classes:
    - MarkPoint: One creditable point (M1, A1, B1, ...)
    - QuestionScheme: Resolved scheme for one flat question key
    - ExamDetails: Paper identity of a scheme entry
    - MarkingSchemeEntry: All question schemes of one paper
    - ResolvedScheme: A scheme matched to a detected question

Dependencies:
    - dataclasses (std)
    - re (std)

Used By:
    - loading.parser: Scheme ingestion
    - detection.schemes: Scheme resolution
    - orchestration: Rubric synthesis, normalization and merging
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Dict, Mapping, Optional, Tuple

_CODE_VALUE = re.compile(r"^[A-Za-z]+(\d+)$")


def mark_value_from_code(code: str) -> int:
    """
    Infer a mark point's value from its code.

    Published schemes encode the value in the code ("B2" is worth two
    marks); codes without digits are worth one.

    Example:
        >>> mark_value_from_code("M1"), mark_value_from_code("B2"), mark_value_from_code("A0")
        (1, 2, 0)
    """
    code = (code or "").strip()
    if code.isdigit():
        return int(code)
    match = _CODE_VALUE.match(code)
    if match:
        return int(match.group(1))
    return 1


@dataclass(frozen=True)
class MarkPoint:
    """
    One creditable point of a marking scheme (immutable).

    Attributes:
        code: Mark code such as "M1", "A1", "B2", "M0" or a bare number
        value: Marks awarded for this point
        answer: Expected answer text, if any
        guidance: Examiner guidance/comments
        part: Sub-question label the point belongs to ("" for the whole question)
    """
    code: str
    value: int = 1
    answer: str = ""
    guidance: str = ""
    part: str = ""

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError(f"Mark value cannot be negative: {self.value}")

    def labelled(self, part: str) -> MarkPoint:
        """Copy of this point tagged with a sub-question label."""
        return replace(self, part=part)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "value": self.value,
            "answer": self.answer,
            "guidance": self.guidance,
            "part": self.part,
        }


@dataclass(frozen=True)
class QuestionScheme:
    """
    Marking scheme for one flat question key (immutable).

    Attributes:
        marks: Ordered mark points
        answer: Final answer text ("(a) 12\\n(b) 7" for composites)
        guidance: Question-level guidance text
        alt: Alternative-method scheme, if published
        is_composite: True when assembled from sibling sub-question keys
        parts: Sibling sub-question schemes keyed by part label ("a" -> scheme)
        sub_question_marks: Full question number -> mark points
            (set for composite and generic schemes)
    """
    marks: Tuple[MarkPoint, ...] = ()
    answer: str = ""
    guidance: str = ""
    alt: Optional[QuestionScheme] = None
    is_composite: bool = False
    parts: Mapping[str, QuestionScheme] = field(default_factory=dict)
    sub_question_marks: Mapping[str, Tuple[MarkPoint, ...]] = field(default_factory=dict)

    @property
    def total_value(self) -> int:
        return sum(point.value for point in self.marks)

    @property
    def has_alternative(self) -> bool:
        return self.alt is not None

    def to_dict(self) -> dict:
        return {
            "marks": [point.to_dict() for point in self.marks],
            "answer": self.answer,
            "guidance": self.guidance,
            "alt": self.alt.to_dict() if self.alt else None,
            "is_composite": self.is_composite,
            "parts": {label: scheme.to_dict() for label, scheme in self.parts.items()},
            "sub_question_marks": {
                number: [point.to_dict() for point in points]
                for number, points in self.sub_question_marks.items()
            },
        }


@dataclass(frozen=True)
class ExamDetails:
    """Paper identity of a marking scheme entry."""
    board: str = ""
    qualification: str = ""
    paper_code: str = ""
    exam_series: str = ""
    tier: str = ""
    subject: str = ""


@dataclass(frozen=True)
class MarkingSchemeEntry:
    """
    All question schemes published for one exam paper (immutable).

    Attributes:
        scheme_id: Unique document id
        exam_details: Paper identity
        questions: Flat key -> scheme ("2", "2a", "2aalt")
        general_guidance: Free-text general marking guidance
        total_questions: Number of questions covered
        total_marks: Total marks of the paper
    """
    scheme_id: str
    exam_details: ExamDetails = field(default_factory=ExamDetails)
    questions: Mapping[str, QuestionScheme] = field(default_factory=dict)
    general_guidance: str = ""
    total_questions: int = 0
    total_marks: int = 0

    def __repr__(self) -> str:
        return (
            f"MarkingSchemeEntry({self.scheme_id!r}, {self.exam_details.paper_code!r}, "
            f"{len(self.questions)} keys)"
        )


@dataclass(frozen=True)
class ResolvedScheme:
    """
    A marking scheme resolved for one detected question (immutable).

    Attributes:
        scheme_id: Source entry id ("generic" for synthesized rubrics)
        exam_details: Paper identity of the source entry
        question_scheme: Scheme for the matched question key
        confidence: Exam details similarity (1.0 for composites)
        general_guidance: General guidance of the source entry
        total_questions: Questions covered by the source entry
        total_marks: Total marks of the source entry
    """
    scheme_id: str
    exam_details: ExamDetails
    question_scheme: QuestionScheme
    confidence: float = 0.0
    general_guidance: str = ""
    total_questions: int = 0
    total_marks: int = 0
