"""
Module: detection

Purpose:
    Question detection: similarity primitives, pool narrowing, candidate
    scoring and ranking, and marking-scheme resolution.

Key Classes:
    - QuestionDetectionService: detect_question() entry point
    - DetectionConfig: Parallelism and thresholds

Key Functions:
    - normalized_similarity() / hybrid_score(): Similarity primitives
    - find_scheme(): Marking-scheme resolution for a match

Used By:
    - orchestration.service
"""

from .config import DetectionConfig
from .pool import PoolSelection, select_pool
from .ranking import Acceptance, select_winner
from .schemes import (
    build_composite_scheme,
    exam_details_confidence,
    find_scheme,
    resolve_question_scheme,
)
from .scoring import generate_candidates, score_question
from .service import QuestionDetectionService
from .similarity import (
    HybridScore,
    ScoreMode,
    hybrid_score,
    keywords,
    normalized_similarity,
    numeric_tokens,
    question_hybrid_score,
    semantic_check,
    zone_hybrid_score,
)

__all__ = [
    "Acceptance",
    "DetectionConfig",
    "HybridScore",
    "PoolSelection",
    "QuestionDetectionService",
    "ScoreMode",
    "build_composite_scheme",
    "exam_details_confidence",
    "find_scheme",
    "generate_candidates",
    "hybrid_score",
    "keywords",
    "normalized_similarity",
    "numeric_tokens",
    "question_hybrid_score",
    "resolve_question_scheme",
    "score_question",
    "select_pool",
    "select_winner",
    "semantic_check",
    "zone_hybrid_score",
]
