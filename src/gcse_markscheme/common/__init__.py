"""Common utilities shared across the engine."""

from __future__ import annotations

from .text import (
    base_question_number,
    extract_subject,
    is_sub_question,
    normalize_exam_series,
    normalize_metadata_text,
    normalize_sub_part,
    normalize_text_for_comparison,
    sanitize_question_hint,
    short_subject_name,
    split_question_number,
    strip_leading_zeros,
    tier_display,
)
from .thresholds import (
    DETECTION_THRESHOLDS,
    ORCHESTRATION_THRESHOLDS,
    SCHEME_THRESHOLDS,
    SIMILARITY_THRESHOLDS,
    DetectionThresholds,
    OrchestrationThresholds,
    SchemeThresholds,
    SimilarityThresholds,
)

__all__ = [
    # text
    "base_question_number",
    "extract_subject",
    "is_sub_question",
    "normalize_exam_series",
    "normalize_metadata_text",
    "normalize_sub_part",
    "normalize_text_for_comparison",
    "sanitize_question_hint",
    "short_subject_name",
    "split_question_number",
    "strip_leading_zeros",
    "tier_display",
    # thresholds
    "DETECTION_THRESHOLDS",
    "ORCHESTRATION_THRESHOLDS",
    "SCHEME_THRESHOLDS",
    "SIMILARITY_THRESHOLDS",
    "DetectionThresholds",
    "OrchestrationThresholds",
    "SchemeThresholds",
    "SimilarityThresholds",
]
