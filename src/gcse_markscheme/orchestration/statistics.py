"""
Module: orchestration.statistics

Purpose:
    Per-submission detection statistics: totals, a similarity histogram,
    per-fragment details and hint diagnostics, plus their log output.

Key Functions:
    - compute_statistics(): GroupDetections -> DetectionStatistics
    - log_detection_statistics(): Summary + per-group audit trail

Key Classes:
    - QuestionDetail / HintInfo / DetectionStatistics

Dependencies:
    - numpy: Similarity bucketing

Used By:
    - orchestration.service
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Tuple

import numpy as np

from gcse_markscheme.common.thresholds import ORCHESTRATION_THRESHOLDS, OrchestrationThresholds
from gcse_markscheme.core.models import HintMetadata

from .grouping import GroupDetection, search_hint_metadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuestionDetail:
    """Detection outcome of one fragment."""
    question_number: Optional[str]
    detected: bool
    similarity: float = 0.0
    has_marking_scheme: bool = False
    matched_paper_title: str = ""

    def to_dict(self) -> dict:
        return {
            "question_number": self.question_number,
            "detected": self.detected,
            "similarity": round(self.similarity, 4),
            "has_marking_scheme": self.has_marking_scheme,
            "matched_paper_title": self.matched_paper_title,
        }


@dataclass(frozen=True)
class HintInfo:
    """
    How the paper hint was applied, as seen by the first searching group
    of the final detection pass (before consensus re-detection).

    Attributes:
        hint_used: Paper hint of the final pass ("" when discarded or absent)
        matched_papers_count: Papers the hint matched
        matched_paper_title: Paper the first group matched
        threshold_relaxed: First group accepted below the strict threshold
        deep_search_active: Whole corpus searched
        pool_size: Papers searched
        rescued_questions: Base numbers rescued by consensus
    """
    hint_used: str = ""
    matched_papers_count: int = 0
    matched_paper_title: str = ""
    threshold_relaxed: bool = False
    deep_search_active: bool = True
    pool_size: int = 0
    rescued_questions: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "hint_used": self.hint_used,
            "matched_papers_count": self.matched_papers_count,
            "matched_paper_title": self.matched_paper_title,
            "threshold_relaxed": self.threshold_relaxed,
            "deep_search_active": self.deep_search_active,
            "pool_size": self.pool_size,
            "rescued_questions": list(self.rescued_questions),
        }


@dataclass(frozen=True)
class DetectionStatistics:
    """
    Detection statistics of one submission, counted per fragment.

    Attributes:
        total_questions: Fragments submitted
        detected / not_detected: Fragments whose group matched / did not
        with_marking_scheme / without_marking_scheme: Split of detected
        by_similarity_range: "high" (>= 0.9), "medium" (>= 0.7), "low" (>= 0.4)
        question_details: One entry per fragment
        hint_info: Hint diagnostics, when any group was detected
    """
    total_questions: int = 0
    detected: int = 0
    not_detected: int = 0
    with_marking_scheme: int = 0
    without_marking_scheme: int = 0
    by_similarity_range: Dict[str, int] = field(
        default_factory=lambda: {"high": 0, "medium": 0, "low": 0}
    )
    question_details: Tuple[QuestionDetail, ...] = ()
    hint_info: Optional[HintInfo] = None

    @property
    def detection_rate(self) -> float:
        return self.detected / self.total_questions if self.total_questions else 0.0

    def to_dict(self) -> dict:
        return {
            "total_questions": self.total_questions,
            "detected": self.detected,
            "not_detected": self.not_detected,
            "with_marking_scheme": self.with_marking_scheme,
            "without_marking_scheme": self.without_marking_scheme,
            "by_similarity_range": dict(self.by_similarity_range),
            "question_details": [d.to_dict() for d in self.question_details],
            "hint_info": self.hint_info.to_dict() if self.hint_info else None,
        }


def similarity_histogram(
    similarities: Sequence[float],
    thresholds: OrchestrationThresholds = ORCHESTRATION_THRESHOLDS,
) -> Dict[str, int]:
    """
    Bucket similarities into high / medium / low; values below low are dropped.

    Example:
        >>> similarity_histogram([0.95, 0.8, 0.5, 0.1])
        {'high': 1, 'medium': 1, 'low': 1}
    """
    edges = [thresholds.similarity_low, thresholds.similarity_medium, thresholds.similarity_high]
    values = np.asarray(similarities, dtype=float)
    # 0: below low, 1: low, 2: medium, 3: high
    counts = np.bincount(np.digitize(values, edges), minlength=4)
    return {"high": int(counts[3]), "medium": int(counts[2]), "low": int(counts[1])}


def compute_statistics(
    detections: Sequence[GroupDetection],
    rescued_questions: Sequence[str] = (),
    thresholds: OrchestrationThresholds = ORCHESTRATION_THRESHOLDS,
    hint_metadata: Optional[HintMetadata] = None,
) -> DetectionStatistics:
    """
    Count detection outcomes per fragment.

    Args:
        detections: Group detections (before the generic fallback)
        rescued_questions: Base numbers rescued by consensus
        thresholds: Orchestration thresholds
        hint_metadata: Hint diagnostics captured before consensus; taken
            from the first searching group of ``detections`` when omitted

    Returns:
        DetectionStatistics
    """
    details = []
    similarities = []
    with_scheme = 0
    for detection in detections:
        result = detection.result
        match = result.match if result.found else None
        similarity = match.confidence if match else 0.0
        has_scheme = result.found and result.has_scheme
        for fragment in detection.group.fragments:
            details.append(QuestionDetail(
                question_number=fragment.question_number,
                detected=result.found,
                similarity=similarity,
                has_marking_scheme=has_scheme,
                matched_paper_title=match.paper_title if match else "",
            ))
            if result.found:
                similarities.append(similarity)
                with_scheme += int(has_scheme)

    detected = len(similarities)
    hint_info = None
    first = hint_metadata or search_hint_metadata(detections)
    if first is not None:
        hint_info = HintInfo(
            hint_used=first.hint_used,
            matched_papers_count=first.matched_papers_count,
            matched_paper_title=first.matched_paper_title,
            threshold_relaxed=first.threshold_relaxed,
            deep_search_active=first.deep_search_active,
            pool_size=first.pool_size,
            rescued_questions=tuple(rescued_questions),
        )

    return DetectionStatistics(
        total_questions=len(details),
        detected=detected,
        not_detected=len(details) - detected,
        with_marking_scheme=with_scheme,
        without_marking_scheme=detected - with_scheme,
        by_similarity_range=similarity_histogram(similarities, thresholds),
        question_details=tuple(details),
        hint_info=hint_info,
    )


def log_detection_statistics(
    stats: DetectionStatistics,
    detections: Optional[Sequence[GroupDetection]] = None,
) -> None:
    """Log the statistics summary and, when given, each group's audit trail."""
    if detections:
        for detection in detections:
            result = detection.result
            status = "MATCH" if result.found else "MISS"
            title = result.match.paper_title if result.found and result.match else "-"
            logger.info(f"[AUDIT] Q{detection.group.base}: {status} {title}")
            for entry in result.hint_metadata.audit_trail:
                logger.info(
                    f"[AUDIT]   {entry.candidate_id}: {entry.score:.3f} "
                    f"(text={entry.text:.2f}, num={entry.numeric:.2f}, "
                    f"sem={entry.semantic}, struct={entry.structural})"
                )

    logger.info("[QUESTION DETECTION STATISTICS]")
    logger.info(f"   Total questions: {stats.total_questions}")
    logger.info(f"   Detected: {stats.detected}/{stats.total_questions}")
    logger.info(f"   Not detected: {stats.not_detected}")
    logger.info(
        f"   With marking scheme: {stats.with_marking_scheme}, "
        f"without: {stats.without_marking_scheme}"
    )
    ranges = stats.by_similarity_range
    logger.info(f"   Similarity: high={ranges['high']} medium={ranges['medium']} low={ranges['low']}")
    if stats.hint_info:
        info = stats.hint_info
        logger.info(f"   [HINT] Hint Used: \"{info.hint_used}\"")
        logger.info(f"   [HINT] Matched Papers: {info.matched_papers_count}")
        if info.rescued_questions:
            logger.info(f"   [HINT] Rescued: {', '.join(info.rescued_questions)}")
