"""
Module: orchestration.service

Purpose:
    MarkingSchemeOrchestrationService - turn the fragments of one
    submission into a marking scheme per question group.

    Pipeline:
    1. Group fragments, inject parent context, build anchors
    2. Detect each group (with the paper hint, then once without it when
       detections do not adhere to the hint)
    3. Consensus rescue of outlier groups
    4. Statistics
    5. Generic rubric for groups without a scheme; normalization of
       published schemes
    6. Merge into the output map

Key Classes:
    - MarkingSchemeOrchestrationService: orchestrate()
    - OrchestrationResult: Scheme map + statistics + per-fragment results
    - FragmentDetection: A fragment paired with its group's result

Used By:
    - scripts/run_detection.py
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence, Tuple

from gcse_markscheme.core.models import (
    DetectionResult,
    NormalizedSchemeMapEntry,
    QueryFragment,
    ResolvedScheme,
)

from .config import OrchestrationConfig
from .consensus import QuestionDetector, apply_consensus, hint_adherence_failure
from .grouping import GENERAL_GROUP, GroupDetection, QuestionGroup, group_fragments, search_hint_metadata
from .merge import build_scheme_map
from .normalization import normalize_question_scheme
from .rubric import attach_generic_scheme, build_generic_match, is_generic_scheme
from .statistics import DetectionStatistics, compute_statistics, log_detection_statistics

logger = logging.getLogger(__name__)

GENERIC_MESSAGE = "No past paper match; generic rubric applied"


@dataclass(frozen=True)
class FragmentDetection:
    """A submitted fragment (with effective text) and its group's final result."""
    fragment: QueryFragment
    result: DetectionResult


@dataclass(frozen=True)
class OrchestrationResult:
    """
    Result of orchestrating one submission.

    Attributes:
        marking_schemes_map: Key -> entry, in group order
        statistics: Detection statistics (before generic fallback)
        detection_results: One record per fragment
        hint_discarded: Why the paper hint was dropped, if it was
    """
    marking_schemes_map: "OrderedDict[str, NormalizedSchemeMapEntry]" = field(default_factory=OrderedDict)
    statistics: DetectionStatistics = field(default_factory=DetectionStatistics)
    detection_results: Tuple[FragmentDetection, ...] = ()
    hint_discarded: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "marking_schemes": {key: entry.to_dict() for key, entry in self.marking_schemes_map.items()},
            "statistics": self.statistics.to_dict(),
            "hint_discarded": self.hint_discarded,
        }


class MarkingSchemeOrchestrationService:
    """
    Resolve marking schemes for every question group of a submission.

    Request-scoped and single-threaded; the detector may be shared.

    Example:
        >>> service = MarkingSchemeOrchestrationService(QuestionDetectionService(cache))
        >>> result = service.orchestrate(fragments, paper_hint="Edexcel 1MA1/1H June 2023")
        >>> list(result.marking_schemes_map)
        ['4_Pearson Edexcel_1MA1/1H']
    """

    def __init__(self, detector: QuestionDetector, config: Optional[OrchestrationConfig] = None) -> None:
        self.detector = detector
        self.config = config or OrchestrationConfig()

    def orchestrate(
        self,
        fragments: Sequence[QueryFragment],
        paper_hint: Optional[str] = None,
    ) -> OrchestrationResult:
        """
        Detect, rescue, fall back and merge for one submission.

        Args:
            fragments: Fragments from classification
            paper_hint: Free-text paper description, if known

        Returns:
            OrchestrationResult
        """
        start = time.perf_counter()
        thresholds = self.config.thresholds
        groups = group_fragments(fragments, thresholds)
        if not groups:
            logger.info("No fragments to orchestrate")
            return OrchestrationResult()

        hint_discarded: Optional[str] = None
        detections: List[GroupDetection] = []
        passes = (paper_hint, None) if paper_hint else (None,)
        for hint in passes:
            detections = [self._detect_group(group, hint) for group in groups]
            if hint is None or not self.config.enable_hint_rescue:
                break
            hint_discarded = hint_adherence_failure(detections, thresholds)
            if hint_discarded is None:
                break
            logger.warning(f"Hint adherence failed ({hint_discarded}); retrying without paper hint")

        # Consensus re-detects with forced hints; report the user-facing pass
        hint_metadata = search_hint_metadata(detections)
        rescued: List[str] = []
        if self.config.enable_consensus:
            detections, rescued = apply_consensus(detections, self.detector, thresholds)

        statistics = compute_statistics(detections, rescued, thresholds, hint_metadata)
        log_detection_statistics(statistics, detections)

        finalized = [self._finalize(detection) for detection in detections]
        scheme_map = build_scheme_map(finalized)
        detection_results = tuple(
            FragmentDetection(fragment=fragment, result=detection.result)
            for detection in finalized
            for fragment in detection.group.fragments
        )

        elapsed = time.perf_counter() - start
        logger.info(
            f"Orchestrated {len(fragments)} fragments in {len(groups)} groups -> "
            f"{len(scheme_map)} schemes ({elapsed:.2f}s)"
        )
        return OrchestrationResult(
            marking_schemes_map=scheme_map,
            statistics=statistics,
            detection_results=detection_results,
            hint_discarded=hint_discarded,
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Internals
    # ─────────────────────────────────────────────────────────────────────────

    def _detect_group(self, group: QuestionGroup, paper_hint: Optional[str]) -> GroupDetection:
        result = self.detector.detect_question(group.anchor, group.question_hint, paper_hint)
        if result.found and result.match:
            result = replace(result, message=f"Matched via Group {group.base}")
        return GroupDetection(group=group, result=result)

    def _finalize(self, detection: GroupDetection) -> GroupDetection:
        """Attach a generic rubric where no scheme exists; normalize published schemes."""
        result = detection.result
        group = detection.group
        thresholds = self.config.thresholds

        if not result.found or result.match is None:
            number = group.base if group.base != GENERAL_GROUP else "1"
            match = build_generic_match(number, group.anchor, thresholds)
            logger.info(f"Group Q{group.base}: generic rubric ({match.marks or 'no'} max marks detected)")
            return replace(
                detection,
                result=DetectionResult(
                    found=False,
                    match=match,
                    message=GENERIC_MESSAGE,
                    hint_metadata=result.hint_metadata,
                ),
            )

        match = result.match
        if match.marking_scheme is None:
            logger.info(f"Group Q{group.base}: {match.paper_title} has no scheme; generic rubric applied")
            return replace(detection, result=replace(result, match=attach_generic_scheme(match, group.anchor, thresholds)))

        if self.config.normalize_schemes and not is_generic_scheme(match.marking_scheme):
            scheme: ResolvedScheme = match.marking_scheme
            normalized = replace(scheme, question_scheme=normalize_question_scheme(scheme.question_scheme))
            return replace(detection, result=replace(result, match=match.with_scheme(normalized)))
        return detection
