"""
Module: orchestration.merge

Purpose:
    Merge each group's detection into one NormalizedSchemeMapEntry.

    Three shapes are produced:
    - A: composite or generic schemes (already carry per-number marks)
    - B: sub-question fragments against a parent scheme, merged part by
         part with "[Part x]" guidance prefixes
    - C: a single question passed through

Key Functions:
    - merge_group(): One group -> one entry
    - build_scheme_map(): All groups -> ordered map keyed
      "{base}_{board}_{paper_code}"

Used By:
    - orchestration.service
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple

from gcse_markscheme.common.text import is_sub_question, split_question_number
from gcse_markscheme.core.models import (
    ExamPaperMatch,
    MarkPoint,
    NormalizedSchemeMapEntry,
    QuestionScheme,
)

from .grouping import GroupDetection
from .rubric import GENERIC_PAPER_CODE, is_generic_scheme

logger = logging.getLogger(__name__)


def scheme_map_key(base: str, match: ExamPaperMatch) -> str:
    return f"{base}_{match.board or 'Unknown'}_{match.paper_code or 'Unknown'}"


def _is_generic(match: ExamPaperMatch) -> bool:
    scheme = match.marking_scheme
    return (
        match.is_generic
        or match.paper_code == GENERIC_PAPER_CODE
        or (scheme is not None and is_generic_scheme(scheme))
    )


def _find_part(scheme: QuestionScheme, label: str, full_number: str) -> Optional[QuestionScheme]:
    if not label:
        return None
    for key, part in scheme.parts.items():
        if key == full_number or key == label or key.lower().endswith(label):
            return part
    return None


def _merge_composite(
    detection: GroupDetection,
    match: ExamPaperMatch,
    scheme: QuestionScheme,
    key: str,
) -> NormalizedSchemeMapEntry:
    group = detection.group
    numbers = [f.question_number or match.question_number for f in group.fragments]
    numbers = list(dict.fromkeys(n for n in numbers if n))
    generic = _is_generic(match)

    sub_marks: Dict[str, Tuple[MarkPoint, ...]] = dict(scheme.sub_question_marks)
    if not sub_marks or generic:
        for number in numbers:
            sub_marks.setdefault(number, scheme.marks)

    answers = tuple(line for line in scheme.answer.split("\n") if line.strip())
    resolved = match.marking_scheme
    return NormalizedSchemeMapEntry(
        key=key,
        question_number=group.base,
        marks=scheme.marks,
        sub_question_marks=sub_marks,
        total_marks=match.marks,
        parent_question_marks=match.parent_question_marks,
        detection=detection.result,
        database_question_text=match.database_question_text,
        sub_question_numbers=tuple(numbers),
        sub_question_answers=answers,
        sub_question_max_scores=match.sub_question_max_scores,
        sub_question_texts=match.sub_question_texts,
        is_generic=generic,
        is_composite=scheme.is_composite,
        general_guidance=resolved.general_guidance if resolved else "",
        alternative_marks=scheme.alt.marks if scheme.alt else (),
        source_page_index=group.source_page_index,
    )


def _merge_sub_questions(
    detection: GroupDetection,
    match: ExamPaperMatch,
    scheme: QuestionScheme,
    key: str,
) -> Optional[NormalizedSchemeMapEntry]:
    group = detection.group
    numbers: List[str] = []
    sub_marks: Dict[str, Tuple[MarkPoint, ...]] = {}
    answers: List[str] = []
    merged: List[MarkPoint] = []

    for fragment in group.fragments:
        _, label = split_question_number(fragment.question_number)
        full_number = f"{group.base}{label}"
        if full_number in sub_marks:
            continue
        target = _find_part(scheme, label, full_number)
        if target is None and scheme.marks:
            target = scheme
        if target is None:
            continue

        numbers.append(full_number)
        sub_marks[full_number] = target.marks
        if target.answer:
            answers.append(f"({label}) {target.answer}")
        merged.extend(
            replace(point, part=label, guidance=f"[Part {label}] {point.guidance}")
            for point in target.marks
        )

    if not numbers:
        return None

    resolved = match.marking_scheme
    return NormalizedSchemeMapEntry(
        key=key,
        question_number=group.base,
        marks=tuple(merged),
        sub_question_marks=sub_marks,
        total_marks=match.marks,
        parent_question_marks=match.parent_question_marks,
        detection=detection.result,
        database_question_text=match.database_question_text,
        sub_question_numbers=tuple(numbers),
        sub_question_answers=tuple(answers),
        sub_question_max_scores=match.sub_question_max_scores,
        sub_question_texts=match.sub_question_texts,
        general_guidance=resolved.general_guidance if resolved else "",
        alternative_marks=scheme.alt.marks if scheme.alt else (),
        source_page_index=group.source_page_index,
    )


def merge_group(detection: GroupDetection) -> Optional[NormalizedSchemeMapEntry]:
    """
    Merge one group's detection into a scheme map entry.

    Args:
        detection: Group detection whose match carries a scheme (real or
            generic)

    Returns:
        Entry, or None when the group has no match at all
    """
    match = detection.result.match
    if match is None:
        logger.warning(f"Group Q{detection.group.base} has no match; skipping merge")
        return None

    key = scheme_map_key(detection.group.base, match)
    resolved = match.marking_scheme
    scheme = resolved.question_scheme if resolved else QuestionScheme()

    if resolved is not None and (scheme.is_composite or scheme.sub_question_marks):
        return _merge_composite(detection, match, scheme, key)

    has_sub_questions = any(is_sub_question(f.question_number) for f in detection.group.fragments)
    if has_sub_questions and resolved is not None:
        entry = _merge_sub_questions(detection, match, scheme, key)
        if entry is not None:
            return entry

    group = detection.group
    return NormalizedSchemeMapEntry(
        key=key,
        question_number=match.question_number or group.base,
        marks=scheme.marks,
        total_marks=match.marks,
        parent_question_marks=match.marks,
        detection=detection.result,
        database_question_text=match.database_question_text,
        question_text=group.fragments[0].text if group.fragments else "",
        sub_question_max_scores=match.sub_question_max_scores,
        sub_question_texts=match.sub_question_texts,
        is_generic=_is_generic(match),
        general_guidance=resolved.general_guidance if resolved else "",
        alternative_marks=scheme.alt.marks if scheme.alt else (),
        source_page_index=group.source_page_index,
    )


def build_scheme_map(detections: Sequence[GroupDetection]) -> "OrderedDict[str, NormalizedSchemeMapEntry]":
    """
    Merge every group into the output map, in group order.

    Keys are "{base}_{board}_{paper_code}" with the group's base number
    ("General" for unnumbered fragments), so each group has its own key.
    """
    scheme_map: "OrderedDict[str, NormalizedSchemeMapEntry]" = OrderedDict()
    for detection in detections:
        entry = merge_group(detection)
        if entry is None:
            continue
        if entry.key in scheme_map:
            logger.warning(f"Duplicate scheme map key {entry.key}; keeping the first entry")
            continue
        scheme_map[entry.key] = entry
    return scheme_map
