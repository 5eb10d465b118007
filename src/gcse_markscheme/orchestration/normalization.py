"""
Module: orchestration.normalization

Purpose:
    Clean up published schemes before they are handed to grading:
    numeric-only mark codes ("2") become proper M/A/B points, and "cao"
    (correct answer only) answers are replaced by the actual answer.

Key Functions:
    - normalize_mark_point(): One point -> one or more points
    - normalize_question_scheme(): Whole scheme, recursively (pure)
"""

from __future__ import annotations

import re
from dataclasses import replace
from typing import Dict, List, Mapping, Optional, Tuple

from gcse_markscheme.core.models import MarkPoint, QuestionScheme

_LISTED_CODE = re.compile(r"\b([MAB])(\d+)\b\s*(?:for\b)?\s*")
_CAO = "cao"


def _listed_points(point: MarkPoint) -> List[MarkPoint]:
    """Split guidance like "M1 for 3x = 12, A1 for x = 4" into points."""
    matches = list(_LISTED_CODE.finditer(point.guidance))
    points = []
    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(point.guidance)
        segment = point.guidance[match.end():end].strip(" ,;.")
        points.append(replace(
            point,
            code=f"{match.group(1)}{match.group(2)}",
            value=int(match.group(2)),
            guidance=segment,
        ))
    return points


def normalize_mark_point(point: MarkPoint) -> List[MarkPoint]:
    """
    Expand a numeric-only mark code.

    - "2" with guidance listing codes -> one point per listed code, plus a
      balancing point when the listed codes fall short of the declared value
    - "2" without listed codes -> "A2"
    - Anything else is returned unchanged

    Example:
        >>> [p.code for p in normalize_mark_point(MarkPoint("3", 3, guidance="M1 for 2x = 8"))]
        ['M1', 'M2']
    """
    code = point.code.strip()
    if not code.isdigit():
        return [point]

    listed = _listed_points(point)
    if not listed:
        return [replace(point, code=f"A{code}")]

    remainder = point.value - sum(p.value for p in listed)
    if remainder > 0:
        last = listed[-1]
        letter = last.code[0]
        next_index = int(last.code[1:]) + 1
        listed.append(replace(point, code=f"{letter}{next_index}", value=remainder, guidance=last.guidance))
    return listed


def _resolve_cao(point: MarkPoint, question_answer: str, sub_answers: Mapping[str, str]) -> MarkPoint:
    if point.answer.strip().lower() != _CAO:
        return point
    answer = sub_answers.get(point.part) or question_answer
    return replace(point, answer=answer) if answer else point


def _normalize_points(
    points: Tuple[MarkPoint, ...],
    question_answer: str,
    sub_answers: Mapping[str, str],
) -> Tuple[MarkPoint, ...]:
    expanded: List[MarkPoint] = []
    for point in points:
        expanded.extend(normalize_mark_point(point))
    return tuple(_resolve_cao(p, question_answer, sub_answers) for p in expanded)


def normalize_question_scheme(
    scheme: QuestionScheme,
    question_answer: Optional[str] = None,
    sub_answers: Optional[Mapping[str, str]] = None,
) -> QuestionScheme:
    """
    Normalize a scheme and everything it carries (alt, parts, sub marks).

    Returns a new scheme; ``scheme`` is not modified.

    Args:
        scheme: Scheme to normalize
        question_answer: Answer substituted for "cao" (defaults to scheme.answer)
        sub_answers: Part label -> answer (defaults to the answers of ``parts``)

    Returns:
        Normalized QuestionScheme
    """
    answer = question_answer if question_answer is not None else scheme.answer
    if answer.strip().lower() == _CAO:
        answer = ""
    answers: Dict[str, str] = (
        dict(sub_answers) if sub_answers is not None
        else {
            label: part.answer for label, part in scheme.parts.items()
            if part.answer and part.answer.strip().lower() != _CAO
        }
    )

    parts = {
        label: normalize_question_scheme(part, answers.get(label) or None)
        for label, part in scheme.parts.items()
    }
    sub_marks = {
        number: _normalize_points(points, answer, answers)
        for number, points in scheme.sub_question_marks.items()
    }
    return replace(
        scheme,
        marks=_normalize_points(scheme.marks, answer, answers),
        alt=normalize_question_scheme(scheme.alt, answer, answers) if scheme.alt else None,
        parts=parts,
        sub_question_marks=sub_marks,
    )
