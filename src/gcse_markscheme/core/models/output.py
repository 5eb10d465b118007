"""
Module: output

Purpose:
    NormalizedSchemeMapEntry - the per-group marking scheme handed to the
    grading prompt builder.

Key Classes:
    - NormalizedSchemeMapEntry: Merged marks, totals and source detection

Used By:
    - orchestration.merge: Builds entries
    - orchestration.service: Returns them in the scheme map
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from .detection import DetectionResult
from .schemes import MarkPoint


@dataclass(frozen=True)
class NormalizedSchemeMapEntry:
    """
    Final marking scheme for one question group (immutable).

    Attributes:
        key: "{base}_{board}_{paper_code}", unique per submission
        question_number: Base question number of the group
        marks: Flat ordered mark points
        sub_question_marks: Full question number -> mark points
        total_marks: Marks of the matched question (0 lets grading decide)
        parent_question_marks: Marks of the whole parent question
        detection: Detection result the entry came from
        database_question_text: Corpus text of the matched question
        question_text: Student-side text (single questions only)
        sub_question_numbers: Question numbers covered by the entry
        sub_question_answers: "(a) 12" style answer lines
        sub_question_max_scores: "5a" -> marks
        sub_question_texts: "5a" -> corpus text
        is_generic: Synthesised rubric, no corpus scheme
        is_composite: Assembled from sibling sub-question schemes
        general_guidance: General marking guidance text
        alternative_marks: Alternative-method mark points, if published
        source_page_index: Page of the group's first fragment
    """
    key: str
    question_number: str
    marks: Tuple[MarkPoint, ...] = ()
    sub_question_marks: Mapping[str, Tuple[MarkPoint, ...]] = field(default_factory=dict)
    total_marks: int = 0
    parent_question_marks: int = 0
    detection: Optional[DetectionResult] = None
    database_question_text: str = ""
    question_text: str = ""
    sub_question_numbers: Tuple[str, ...] = ()
    sub_question_answers: Tuple[str, ...] = ()
    sub_question_max_scores: Mapping[str, int] = field(default_factory=dict)
    sub_question_texts: Mapping[str, str] = field(default_factory=dict)
    is_generic: bool = False
    is_composite: bool = False
    general_guidance: str = ""
    alternative_marks: Tuple[MarkPoint, ...] = ()
    source_page_index: int = 0

    @property
    def paper_code(self) -> str:
        match = self.detection.match if self.detection else None
        return match.paper_code if match else ""

    def to_dict(self) -> dict:
        """Serialize for the prompt builder / JSON output."""
        match = self.detection.match if self.detection else None
        return {
            "key": self.key,
            "question_number": self.question_number,
            "marks": [point.to_dict() for point in self.marks],
            "sub_question_marks": {
                number: [point.to_dict() for point in points]
                for number, points in self.sub_question_marks.items()
            },
            "total_marks": self.total_marks,
            "parent_question_marks": self.parent_question_marks,
            "paper_title": match.paper_title if match else "",
            "confidence": match.confidence if match else 0.0,
            "found": self.detection.found if self.detection else False,
            "database_question_text": self.database_question_text,
            "question_text": self.question_text,
            "sub_question_numbers": list(self.sub_question_numbers),
            "sub_question_answers": list(self.sub_question_answers),
            "sub_question_max_scores": dict(self.sub_question_max_scores),
            "sub_question_texts": dict(self.sub_question_texts),
            "is_generic": self.is_generic,
            "is_composite": self.is_composite,
            "general_guidance": self.general_guidance,
            "alternative_marks": [point.to_dict() for point in self.alternative_marks],
            "source_page_index": self.source_page_index,
        }
