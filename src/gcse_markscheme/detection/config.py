"""
Module: detection.config

Purpose:
    Configuration dataclass for question detection. Immutable
    configuration with validation on construction.

Key Classes:
    - DetectionConfig: Scoring parallelism and threshold sets

Dependencies:
    - dataclasses (std)
    - gcse_markscheme.common.thresholds

Used By:
    - detection.service: QuestionDetectionService
    - detection.scoring: Candidate generation
"""

from __future__ import annotations

from dataclasses import dataclass, field

from gcse_markscheme.common.thresholds import (
    DetectionThresholds,
    SchemeThresholds,
    SimilarityThresholds,
)


@dataclass(frozen=True)
class DetectionConfig:
    """
    Configuration for question detection (immutable).

    Attributes:
        max_workers: Threads used to score papers in parallel (1 = sequential)
        parallel_min_papers: Pools smaller than this are always scored sequentially
        detection: Scoring and acceptance thresholds
        similarity: Similarity primitive weights
        schemes: Marking-scheme resolution thresholds

    Example:
        >>> config = DetectionConfig(max_workers=4)
        >>> config.detection.strict_threshold
        0.8
    """

    max_workers: int = 1
    parallel_min_papers: int = 8
    detection: DetectionThresholds = field(default_factory=DetectionThresholds)
    similarity: SimilarityThresholds = field(default_factory=SimilarityThresholds)
    schemes: SchemeThresholds = field(default_factory=SchemeThresholds)

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1: {self.max_workers}")
        if self.parallel_min_papers < 1:
            raise ValueError(f"parallel_min_papers must be at least 1: {self.parallel_min_papers}")
        thresholds = self.detection
        if not 0.0 <= thresholds.candidate_floor <= thresholds.rescue_threshold <= thresholds.strict_threshold <= 1.0:
            raise ValueError(
                "Thresholds must satisfy 0 <= candidate_floor <= rescue_threshold "
                f"<= strict_threshold <= 1 (got {thresholds.candidate_floor}, "
                f"{thresholds.rescue_threshold}, {thresholds.strict_threshold})"
            )
        if thresholds.audit_trail_size < 0:
            raise ValueError(f"audit_trail_size cannot be negative: {thresholds.audit_trail_size}")
