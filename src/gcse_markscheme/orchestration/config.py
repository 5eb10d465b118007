"""
Module: orchestration.config

Purpose:
    Configuration dataclass for marking-scheme orchestration.

Key Classes:
    - OrchestrationConfig: Feature switches and thresholds

Used By:
    - orchestration.service: MarkingSchemeOrchestrationService
"""

from __future__ import annotations

from dataclasses import dataclass, field

from gcse_markscheme.common.thresholds import OrchestrationThresholds


@dataclass(frozen=True)
class OrchestrationConfig:
    """
    Configuration for one orchestration service (immutable).

    Attributes:
        enable_hint_rescue: Retry without the paper hint when detections
            do not adhere to it
        enable_consensus: Re-detect outlier groups against the dominant paper
        normalize_schemes: Expand numeric-only marks and "cao" answers
        thresholds: Grouping, consensus and rubric thresholds
    """

    enable_hint_rescue: bool = True
    enable_consensus: bool = True
    normalize_schemes: bool = True
    thresholds: OrchestrationThresholds = field(default_factory=OrchestrationThresholds)

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        t = self.thresholds
        if not 0.0 < t.consensus_ratio <= 1.0:
            raise ValueError(f"consensus_ratio must be in (0, 1]: {t.consensus_ratio}")
        if t.default_rubric_count < 1:
            raise ValueError(f"default_rubric_count must be at least 1: {t.default_rubric_count}")
        if t.rubric_padding < 0:
            raise ValueError(f"rubric_padding cannot be negative: {t.rubric_padding}")
        if not t.similarity_low <= t.similarity_medium <= t.similarity_high:
            raise ValueError(
                "Similarity buckets must satisfy low <= medium <= high "
                f"(got {t.similarity_low}, {t.similarity_medium}, {t.similarity_high})"
            )
