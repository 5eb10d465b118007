"""
Module: orchestration.consensus

Purpose:
    Cross-group corrections: discard a paper hint the detections do not
    adhere to, and pull outlier groups onto the paper most groups agree on.

Key Functions:
    - hint_adherence_failure(): Reason to retry without the hint, or None
    - find_dominant_paper(): Paper with a clear majority of votes
    - forced_paper_hint(): Paper hint pinning detection to one paper
    - apply_consensus(): Re-detect outlier groups against the dominant paper

Key Classes:
    - QuestionDetector: Anything with detect_question()

Used By:
    - orchestration.service
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import replace
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from gcse_markscheme.common.text import normalize_exam_series
from gcse_markscheme.common.thresholds import ORCHESTRATION_THRESHOLDS, OrchestrationThresholds
from gcse_markscheme.core.models import DetectionResult, ExamPaperMatch

from .grouping import GroupDetection, search_hint_metadata

logger = logging.getLogger(__name__)

FRANKENSTEIN_REASON = "Frankenstein result detected"
LOW_ADHERENCE_REASON = "Low adherence to unique hint"
POOR_DENSITY_REASON = "Poor match density"


class QuestionDetector(Protocol):
    """Detection backend used by orchestration."""

    def detect_question(
        self,
        query_text: Optional[str],
        question_number_hint: Optional[str] = None,
        paper_hint: Optional[str] = None,
    ) -> DetectionResult:
        ...


def _fragment_count(detection: GroupDetection) -> int:
    return len(detection.group.fragments)


def hint_adherence_failure(
    detections: Sequence[GroupDetection],
    thresholds: OrchestrationThresholds = ORCHESTRATION_THRESHOLDS,
) -> Optional[str]:
    """
    Decide whether hinted detections should be redone without the hint.

    Counts are per fragment. Hint diagnostics come from the first group
    that searched the corpus; a blank leading group does not mask them.

    - Any detections spread over more than one paper
    - Hint matched exactly one paper and the detection rate is below 0.8
    - Hint matched several papers and the detection rate is below 0.5

    Returns:
        Reason string, or None when the hint should be kept
    """
    if not detections:
        return None
    total = sum(_fragment_count(d) for d in detections)
    detected = sum(_fragment_count(d) for d in detections if d.result.found)
    rate = detected / total if total else 0.0
    titles = {d.paper_title for d in detections if d.paper_title}
    matched_papers = search_hint_metadata(detections).matched_papers_count

    if detected > 0 and len(titles) > 1:
        return FRANKENSTEIN_REASON
    if matched_papers == 1 and rate < thresholds.unique_hint_adherence:
        return LOW_ADHERENCE_REASON
    if matched_papers > 1 and rate < thresholds.multi_hint_adherence:
        return POOR_DENSITY_REASON
    return None


def find_dominant_paper(
    detections: Sequence[GroupDetection],
    thresholds: OrchestrationThresholds = ORCHESTRATION_THRESHOLDS,
) -> Optional[ExamPaperMatch]:
    """
    Find the paper most fragments agree on.

    A paper dominates when it holds at least 80% of the votes and either
    has more than one vote or is the only paper voted for.

    Returns:
        First match seen for the dominant paper, or None
    """
    votes: Counter = Counter()
    first_match: Dict[str, ExamPaperMatch] = {}
    for detection in detections:
        title = detection.paper_title
        if not title:
            continue
        votes[title] += _fragment_count(detection)
        first_match.setdefault(title, detection.result.match)

    total = sum(votes.values())
    for title, count in votes.items():
        if count / total >= thresholds.consensus_ratio and (count > 1 or len(votes) == 1):
            return first_match[title]
    return None


def forced_paper_hint(match: ExamPaperMatch) -> str:
    """Paper hint that narrows the pool to the paper of ``match``."""
    parts = [match.board, match.paper_code, normalize_exam_series(match.exam_series), match.tier]
    return " ".join(p for p in parts if p)


def apply_consensus(
    detections: Sequence[GroupDetection],
    detector: QuestionDetector,
    thresholds: OrchestrationThresholds = ORCHESTRATION_THRESHOLDS,
) -> Tuple[List[GroupDetection], List[str]]:
    """
    Re-detect outlier groups against the dominant paper.

    Runs only when a paper dominates and at least one group disagrees or
    is unmatched. A re-detection is kept only when it resolves to the
    dominant paper; otherwise the group keeps its original result.

    Args:
        detections: Group detections in group order
        detector: Detection backend
        thresholds: Orchestration thresholds

    Returns:
        (updated detections, base numbers of rescued groups)
    """
    dominant = find_dominant_paper(detections, thresholds)
    if dominant is None:
        return list(detections), []

    titles = {d.paper_title for d in detections if d.paper_title}
    unmatched = any(not d.result.found for d in detections)
    if len(titles) <= 1 and not unmatched:
        return list(detections), []

    hint = forced_paper_hint(dominant)
    logger.info(f"Consensus reached on '{dominant.paper_title}'; re-detecting outliers with hint '{hint}'")

    updated: List[GroupDetection] = []
    rescued: List[str] = []
    for detection in detections:
        if detection.paper_title == dominant.paper_title:
            updated.append(detection)
            continue
        group = detection.group
        result = detector.detect_question(group.anchor, group.question_hint, hint)
        if result.found and result.match and result.match.paper_title == dominant.paper_title:
            logger.info(f"  Rescued group Q{group.base} -> {dominant.paper_title}")
            updated.append(replace(detection, result=result, rescued=True))
            rescued.append(group.base)
        else:
            updated.append(detection)
    return updated, rescued
