"""
Module: detection.schemes

Purpose:
    Resolve the official marking scheme for an accepted match, including
    alternative-method schemes and composite schemes synthesised from
    sibling sub-question keys.

Key Functions:
    - find_scheme(): Best scheme entry for a match, or None
    - resolve_question_scheme(): Flat-key lookup within one entry
    - exam_details_confidence(): Board/subject/series agreement

Used By:
    - detection.service: Step 5 of detect_question
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple

from gcse_markscheme.common.text import extract_subject, normalize_exam_series, strip_leading_zeros
from gcse_markscheme.common.thresholds import (
    SCHEME_THRESHOLDS,
    SIMILARITY_THRESHOLDS,
    SchemeThresholds,
    SimilarityThresholds,
)
from gcse_markscheme.core.models import (
    ExamPaperMatch,
    MarkingSchemeEntry,
    MarkPoint,
    QuestionScheme,
    ResolvedScheme,
)

from .similarity import normalized_similarity

logger = logging.getLogger(__name__)

ALT_SUFFIX = "alt"
_SUB_KEY = re.compile(r"^(\d+)([a-z]+)$")


def _field_similarity(a: str, b: str, thresholds: SimilarityThresholds) -> float:
    if not a or not b:
        return 0.0
    return normalized_similarity(a, b, thresholds=thresholds)


def exam_details_confidence(
    match: ExamPaperMatch,
    entry: MarkingSchemeEntry,
    thresholds: SimilarityThresholds = SIMILARITY_THRESHOLDS,
) -> float:
    """
    Agreement between a match and a scheme entry with the same paper code.

    (board + subject + 1.0 + series) / 4, where the 1.0 is the paper code
    that already matched exactly. Level and tier words are ignored when
    comparing subjects; May/Summer series count as June.
    """
    details = entry.exam_details
    board = _field_similarity(match.board, details.board, thresholds)
    subject = _field_similarity(
        extract_subject(match.qualification), extract_subject(details.qualification), thresholds
    )
    series = _field_similarity(
        normalize_exam_series(match.exam_series), normalize_exam_series(details.exam_series), thresholds
    )
    return (board + subject + 1.0 + series) / 4


def _sibling_keys(questions: Dict[str, QuestionScheme], number: str) -> List[Tuple[str, str]]:
    """(key, part) for flat sub-question keys of ``number``, sorted; alt keys excluded."""
    siblings = []
    for key in questions:
        if key.endswith(ALT_SUFFIX):
            continue
        match = _SUB_KEY.match(key)
        if match and strip_leading_zeros(match.group(1)) == number:
            siblings.append((key, match.group(2)))
    return sorted(siblings)


def build_composite_scheme(
    questions: Dict[str, QuestionScheme],
    number: str,
    siblings: Sequence[Tuple[str, str]],
) -> QuestionScheme:
    """
    Concatenate sibling sub-question schemes into one composite scheme.

    Mark points are tagged with their part, answers become "(a) ..." lines
    and guidance is concatenated in part order.
    """
    marks: List[MarkPoint] = []
    answers: List[str] = []
    guidance: List[str] = []
    sub_marks: Dict[str, Tuple[MarkPoint, ...]] = {}
    for key, part in siblings:
        scheme = questions[key]
        labelled = tuple(point.labelled(part) for point in scheme.marks)
        marks.extend(labelled)
        sub_marks[f"{number}{part}"] = labelled
        if scheme.answer:
            answers.append(f"({part}) {scheme.answer}")
        if scheme.guidance:
            guidance.append(scheme.guidance)
    return QuestionScheme(
        marks=tuple(marks),
        answer="\n".join(answers),
        guidance="\n".join(guidance),
        is_composite=True,
        parts={part: questions[key] for key, part in siblings},
        sub_question_marks=sub_marks,
    )


def resolve_question_scheme(
    entry: MarkingSchemeEntry,
    question_number: str,
    sub_question_number: str = "",
) -> Optional[QuestionScheme]:
    """
    Look up the scheme for a (sub-)question in one entry.

    - Flat key "{number}{sub}" with leading zeros stripped ("05" -> "5")
    - Main and "...alt" keys both present -> main carrying ``alt``
    - Only the alt key present -> alt used as the scheme
    - Main question without its own key but with sibling keys ("5a", "5b")
      -> composite scheme
    - Main question with its own key also carries sibling schemes as ``parts``

    Returns:
        QuestionScheme, or None when nothing applies
    """
    questions = dict(entry.questions)
    number = strip_leading_zeros(str(question_number).strip())
    sub = sub_question_number.strip().lower()
    key = f"{number}{sub}"

    main = questions.get(key)
    alt = questions.get(f"{key}{ALT_SUFFIX}")
    if main is not None:
        siblings = [] if sub else _sibling_keys(questions, number)
        parts = {part: questions[k] for k, part in siblings}
        return replace(main, alt=alt, parts=parts or main.parts)
    if alt is not None:
        return alt

    if not sub:
        siblings = _sibling_keys(questions, number)
        if siblings:
            logger.debug(
                f"No scheme for Q{number} in {entry.scheme_id}; composing from "
                f"{', '.join(k for k, _ in siblings)}"
            )
            return build_composite_scheme(questions, number, siblings)
    return None


def find_scheme(
    match: ExamPaperMatch,
    entries: Sequence[MarkingSchemeEntry],
    thresholds: SchemeThresholds = SCHEME_THRESHOLDS,
    similarity: SimilarityThresholds = SIMILARITY_THRESHOLDS,
) -> Optional[ResolvedScheme]:
    """
    Find the marking scheme for an accepted match.

    Entries with a different paper code are rejected outright, however
    similar everything else is. Remaining entries need exam-details
    confidence above 0.7; among those, entries for the exact same paper
    (series and tier too) get +0.1 when ranking.

    Args:
        match: Accepted exam paper match
        entries: All scheme entries of the corpus
        thresholds: Scheme thresholds
        similarity: Similarity thresholds

    Returns:
        ResolvedScheme, or None when no entry qualifies

    Example:
        >>> scheme = find_scheme(match, snapshot.schemes)
        >>> scheme.question_scheme.marks[0].code
        'M1'
    """
    if not match.question_number:
        return None

    best: Optional[ResolvedScheme] = None
    best_rank = 0.0
    for entry in entries:
        details = entry.exam_details
        if details.paper_code != match.paper_code:
            continue
        confidence = exam_details_confidence(match, entry, similarity)
        if confidence <= thresholds.min_confidence:
            logger.debug(f"Scheme {entry.scheme_id} rejected: confidence {confidence:.3f}")
            continue

        question_scheme = resolve_question_scheme(entry, match.question_number, match.sub_question_number)
        if question_scheme is None:
            continue
        if question_scheme.is_composite:
            confidence = thresholds.composite_confidence

        exact_paper = (
            normalize_exam_series(details.exam_series) == normalize_exam_series(match.exam_series)
            and details.tier == match.tier
        )
        rank = confidence + (thresholds.exact_paper_boost if exact_paper else 0.0)
        if rank > best_rank:
            best_rank = rank
            best = ResolvedScheme(
                scheme_id=entry.scheme_id,
                exam_details=details,
                question_scheme=question_scheme,
                confidence=confidence,
                general_guidance=entry.general_guidance,
                total_questions=entry.total_questions or len(entry.questions),
                total_marks=entry.total_marks,
            )

    if best is None:
        logger.debug(f"No marking scheme for {match.paper_code} Q{match.question_number}{match.sub_question_number}")
    return best
