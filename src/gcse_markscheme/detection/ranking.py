"""
Module: detection.ranking

Purpose:
    Adaptive acceptance rule applied to ranked candidates.

Key Functions:
    - select_winner(): Accept the top candidate or reject all

Key Classes:
    - Acceptance: Accepted candidate + which rule accepted it

Used By:
    - detection.service: Step 4 of detect_question
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Optional, Sequence

from gcse_markscheme.common.thresholds import DETECTION_THRESHOLDS, DetectionThresholds
from gcse_markscheme.core.models import Candidate

logger = logging.getLogger(__name__)

AcceptanceRule = Literal["strict", "relative", "rescue"]


@dataclass(frozen=True)
class Acceptance:
    """
    An accepted candidate.

    Attributes:
        candidate: Winning candidate
        rule: Rule that accepted it
        runner_up_score: Score of the second candidate (0.0 when alone)
    """
    candidate: Candidate
    rule: AcceptanceRule
    runner_up_score: float = 0.0

    @property
    def threshold_relaxed(self) -> bool:
        return self.rule != "strict"


def select_winner(
    candidates: Sequence[Candidate],
    rescue_mode: bool,
    thresholds: DetectionThresholds = DETECTION_THRESHOLDS,
) -> Optional[Acceptance]:
    """
    Decide whether the top candidate is a match.

    The top candidate is accepted when any of these hold:
    - strict: score >= 0.80
    - relative: score >= 0.65 and leads the runner-up by more than 0.15
    - rescue: rescue mode and score >= 0.35

    and in every case its raw text similarity is at least 0.25 (0.15 in
    rescue mode), so a candidate cannot win on numbers and structure alone.

    Args:
        candidates: Candidates sorted by score descending
        rescue_mode: Relaxed acceptance
        thresholds: Detection thresholds

    Returns:
        Acceptance, or None when nothing qualifies
    """
    if not candidates:
        return None

    top = candidates[0]
    runner_up = candidates[1].score if len(candidates) > 1 else 0.0

    rule: Optional[AcceptanceRule] = None
    if top.score >= thresholds.strict_threshold:
        rule = "strict"
    elif top.score >= thresholds.relative_min and top.score - runner_up > thresholds.relative_margin:
        rule = "relative"
    elif rescue_mode and top.score >= thresholds.rescue_threshold:
        rule = "rescue"

    if rule is None:
        logger.debug(f"Top candidate {top.candidate_id} rejected: score {top.score:.3f}")
        return None

    text_floor = thresholds.rescue_text_floor if rescue_mode else thresholds.text_floor
    if top.breakdown.text < text_floor:
        logger.debug(
            f"Top candidate {top.candidate_id} rejected: text {top.breakdown.text:.3f} < {text_floor}"
        )
        return None

    return Acceptance(candidate=top, rule=rule, runner_up_score=runner_up)
