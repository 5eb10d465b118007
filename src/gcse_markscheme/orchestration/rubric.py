"""
Module: orchestration.rubric

Purpose:
    Generic rubric synthesis for questions without a past-paper scheme:
    estimate the maximum mark from the question text and build a
    sequential M/A/B rubric around it.

Key Functions:
    - estimate_max_marks(): Max mark printed in the question text
    - generate_sequential_rubric(): M1..Mn, A1..An, B1..Bn + M0/A0/B0
    - build_generic_match(): Virtual match for an unmatched group
    - attach_generic_scheme(): Generic rubric for a match without scheme

Used By:
    - orchestration.service: Generic fallback
    - orchestration.merge: Generic detection
"""

from __future__ import annotations

import re
from typing import List, Tuple

from gcse_markscheme.common.thresholds import ORCHESTRATION_THRESHOLDS, OrchestrationThresholds
from gcse_markscheme.core.models import (
    ExamDetails,
    ExamPaperMatch,
    MarkPoint,
    QuestionScheme,
    ResolvedScheme,
)

GENERIC_SCHEME_ID = "generic"
GENERIC_BOARD = "Unknown"
GENERIC_PAPER_CODE = "Generic Question"
GENERIC_PAPER_TITLE = "General Question (No Past Paper Match)"

GENERIC_EXAMINER_INSTRUCTION = """
NO OFFICIAL MARKING SCHEME AVAILABLE (GENERIC MODE).
1. You are the CHIEF EXAMINER. Determine the marking criteria based on the question text.
2. GRADING STRATEGY:
   - Use M1, M2, M3... for sequential Method steps (correct approach).
   - Use A1, A2, A3... for sequential Accuracy steps (correct values).
   - Use B1, B2, B3... for Independent statements/reasons.
   - Use M0/A0/B0 ONLY to explicitly flag incorrect steps.
3. SCORING LIMITS:
   - If a specific max mark is detected (e.g. [3]), try to align with it.
   - HOWEVER, if the student shows valid work exceeding that limit, AWARD THE MARKS.
   - Do not cap the score artificially. Prioritize correct mathematics.
""".strip()

# Most specific first
_MAX_MARK_PATTERNS = [
    re.compile(r"\(\s*Total\s*for\s*Question\s*\d+\s*is\s*(\d+)\s*marks?\s*\)", re.IGNORECASE),
    re.compile(r"\(\s*Total\s*(\d+)\s*marks?\s*\)", re.IGNORECASE),
    re.compile(r"\[\s*(\d+)\s*marks?\s*\]", re.IGNORECASE),
    re.compile(r"Total\s*:?\s*(\d+)\s*marks?", re.IGNORECASE),
    re.compile(r"\(\s*(\d+)\s*marks?\s*\)", re.IGNORECASE),
]

_RUBRIC_LETTERS = [
    ("M", "Method: Correct approach, substitution, or rearrangement."),
    ("A", "Accuracy: Correct final answer or intermediate precision."),
    ("B", "Independent: Correct statement, definition, or property."),
]

_ZERO_MARKS = [
    ("M0", "Method: Incorrect approach."),
    ("A0", "Accuracy: Incorrect value."),
    ("B0", "Independent: Invalid statement."),
]


def estimate_max_marks(text: str, thresholds: OrchestrationThresholds = ORCHESTRATION_THRESHOLDS) -> int:
    """
    Find the maximum mark printed in question text.

    Patterns are tried in order; the first match with 0 < k <= 50 wins.

    Example:
        >>> estimate_max_marks("Solve 3x = 12. (Total for Question 4 is 3 marks)")
        3
        >>> estimate_max_marks("Solve 3x = 12.")
        0
    """
    if not text:
        return 0
    for pattern in _MAX_MARK_PATTERNS:
        match = pattern.search(text)
        if match:
            marks = int(match.group(1))
            if 0 < marks <= thresholds.max_estimable_marks:
                return marks
    return 0


def generate_sequential_rubric(
    detected_max: int,
    thresholds: OrchestrationThresholds = ORCHESTRATION_THRESHOLDS,
) -> Tuple[MarkPoint, ...]:
    """
    Build a sequential generic rubric.

    ``detected_max + 3`` points (10 when no max was detected) for each of
    M, A and B, each worth one mark, followed by M0, A0 and B0 worth zero.

    Example:
        >>> len(generate_sequential_rubric(6))
        30
    """
    count = detected_max + thresholds.rubric_padding if detected_max > 0 else thresholds.default_rubric_count
    rubric: List[MarkPoint] = []
    for letter, guidance in _RUBRIC_LETTERS:
        rubric.extend(MarkPoint(code=f"{letter}{i}", value=1, guidance=guidance) for i in range(1, count + 1))
    rubric.extend(MarkPoint(code=code, value=0, guidance=guidance) for code, guidance in _ZERO_MARKS)
    return tuple(rubric)


def _generic_scheme(
    question_number: str,
    text: str,
    exam_details: ExamDetails,
    thresholds: OrchestrationThresholds,
) -> Tuple[int, ResolvedScheme]:
    detected = estimate_max_marks(text, thresholds)
    rubric = generate_sequential_rubric(detected, thresholds)
    scheme = ResolvedScheme(
        scheme_id=GENERIC_SCHEME_ID,
        exam_details=exam_details,
        question_scheme=QuestionScheme(marks=rubric, sub_question_marks={question_number: rubric}),
        confidence=0.0,
        general_guidance=GENERIC_EXAMINER_INSTRUCTION,
    )
    return detected, scheme


def build_generic_match(
    question_number: str,
    text: str,
    thresholds: OrchestrationThresholds = ORCHESTRATION_THRESHOLDS,
) -> ExamPaperMatch:
    """
    Virtual match carrying a generic rubric for an unmatched group.

    Args:
        question_number: Question number of the group ("1" when unknown)
        text: Question text used to estimate the maximum mark
        thresholds: Orchestration thresholds

    Returns:
        ExamPaperMatch with ``is_generic`` set and confidence 0
    """
    details = ExamDetails(
        board=GENERIC_BOARD,
        qualification="General",
        paper_code=GENERIC_PAPER_CODE,
        exam_series="N/A",
        tier="N/A",
        subject="General",
    )
    detected, scheme = _generic_scheme(question_number, text, details, thresholds)
    return ExamPaperMatch(
        board=details.board,
        qualification=details.qualification,
        paper_code=details.paper_code,
        exam_series=details.exam_series,
        tier=details.tier,
        subject=details.subject,
        paper_title=GENERIC_PAPER_TITLE,
        question_number=question_number,
        marks=detected,
        parent_question_marks=detected,
        confidence=0.0,
        marking_scheme=scheme,
        is_generic=True,
    )


def attach_generic_scheme(
    match: ExamPaperMatch,
    text: str,
    thresholds: OrchestrationThresholds = ORCHESTRATION_THRESHOLDS,
) -> ExamPaperMatch:
    """
    Give a corpus match without a published scheme a generic rubric.

    The match keeps its paper identity; the rubric is sized from the
    corpus marks when known, else from the question text.
    """
    details = ExamDetails(
        board=match.board,
        qualification=match.qualification,
        paper_code=match.paper_code,
        exam_series=match.exam_series,
        tier=match.tier,
        subject=match.subject,
    )
    number = f"{match.question_number}{match.sub_question_number}"
    sizing_text = text if not match.marks else f"[{match.marks} marks]"
    _, scheme = _generic_scheme(number, sizing_text, details, thresholds)
    return match.with_scheme(scheme)


def is_generic_scheme(scheme: ResolvedScheme) -> bool:
    return scheme.scheme_id == GENERIC_SCHEME_ID
