"""Centralized threshold and magic number configuration.

This module contains the scoring weights, acceptance thresholds and
heuristic limits used by detection and orchestration. Having these in one
place makes tuning against a labelled corpus easier.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class SimilarityThresholds:
    """Weights and limits for the similarity primitives."""

    min_normalized_length: int = 2  # Shorter normalized strings never match
    containment_min_length: int = 10  # Both strings must exceed this for containment boost
    containment_floor: float = 0.85  # Score floor when one string contains the other
    min_keyword_length: int = 4  # Keywords of length <= 3 are discarded
    min_semantic_keywords: int = 2  # Fewer keywords than this = too little signal

    # Zone mode (lenient)
    zone_text_weight: float = 0.6
    zone_numeric_weight: float = 0.4
    zone_boosted_text_weight: float = 0.7  # When semantic passes and text is decent
    zone_boosted_numeric_weight: float = 0.3
    zone_boost_text_min: float = 0.4

    # Question mode (strict identity)
    question_text_weight: float = 0.7
    question_numeric_weight: float = 0.3
    question_neutral_numeric: float = 0.5  # Neither side has numbers
    semantic_penalty_multiplier: float = 0.2  # Number-hijack suppression
    semantic_penalty_text_max: float = 0.8  # Penalty only applies below this text score


@dataclass
class DetectionThresholds:
    """Thresholds for candidate scoring and acceptance."""

    # Candidate scoring
    hybrid_weight: float = 0.7
    structural_weight: float = 0.3
    structural_neutral: float = 0.5  # No question-number hint supplied
    and_gate_structural_min: float = 0.8  # Structural above this triggers the AND-gate
    and_gate_text_max: float = 0.4  # Text below this with matching number is suspicious
    and_gate_multiplier: float = 0.4
    hint_mismatch_multiplier: float = 0.0  # Number hint disagrees, normal mode
    rescue_hint_mismatch_multiplier: float = 0.1  # Number hint disagrees, rescue mode
    candidate_floor: float = 0.15  # Candidates at or below this are dropped

    # Acceptance
    strict_threshold: float = 0.80
    relative_min: float = 0.65  # Relative winner must reach this...
    relative_margin: float = 0.15  # ...and lead the runner-up by more than this
    rescue_threshold: float = 0.35
    text_floor: float = 0.25  # Minimum raw text similarity
    rescue_text_floor: float = 0.15
    weak_match: float = 0.7  # Accepted below this = weak match

    # Pool narrowing
    rescue_pool_max: int = 2  # Hint narrowing to this many papers or fewer = rescue mode
    audit_trail_size: int = 5


@dataclass
class SchemeThresholds:
    """Thresholds for marking-scheme resolution."""

    min_confidence: float = 0.7  # Exam details similarity must exceed this
    exact_paper_boost: float = 0.1  # Added when ranking entries of the exact paper
    composite_confidence: float = 1.0


@dataclass
class OrchestrationThresholds:
    """Thresholds for grouping, consensus and generic fallback."""

    # Grouping and anchors
    context_prefix_chars: int = 30  # Parent context prefix checked for containment
    anchor_tail_chars: int = 40  # Fragment tail checked against accumulated anchor
    anchor_min_fragment: int = 5  # Shorter fragments are never appended

    # Hint adherence
    unique_hint_adherence: float = 0.8  # Required detection rate when hint matched one paper
    multi_hint_adherence: float = 0.5  # Required detection rate when hint matched several

    # Consensus
    consensus_ratio: float = 0.8

    # Generic rubric
    default_rubric_count: int = 10  # Points per letter when no max mark is found
    rubric_padding: int = 3  # Extra points beyond the detected max mark
    max_estimable_marks: int = 50

    # Statistics histogram bucket lower bounds
    similarity_low: float = 0.4
    similarity_medium: float = 0.7
    similarity_high: float = 0.9


# Global instances for easy access
SIMILARITY_THRESHOLDS = SimilarityThresholds()
DETECTION_THRESHOLDS = DetectionThresholds()
SCHEME_THRESHOLDS = SchemeThresholds()
ORCHESTRATION_THRESHOLDS = OrchestrationThresholds()
