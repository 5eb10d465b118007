"""
Module: orchestration

Purpose:
    Submission-level orchestration: grouping, per-group detection,
    hint-adherence retry, consensus rescue, generic fallback, scheme
    normalization, merging and statistics.

Key Classes:
    - MarkingSchemeOrchestrationService: orchestrate() entry point
    - OrchestrationConfig: Feature switches and thresholds
"""

from .config import OrchestrationConfig
from .consensus import (
    QuestionDetector,
    apply_consensus,
    find_dominant_paper,
    forced_paper_hint,
    hint_adherence_failure,
)
from .grouping import (
    GENERAL_GROUP,
    GroupDetection,
    QuestionGroup,
    build_anchor,
    effective_text,
    group_fragments,
    inject_parent_context,
    search_hint_metadata,
)
from .merge import build_scheme_map, merge_group, scheme_map_key
from .normalization import normalize_mark_point, normalize_question_scheme
from .rubric import (
    GENERIC_EXAMINER_INSTRUCTION,
    GENERIC_PAPER_CODE,
    attach_generic_scheme,
    build_generic_match,
    estimate_max_marks,
    generate_sequential_rubric,
)
from .service import FragmentDetection, MarkingSchemeOrchestrationService, OrchestrationResult
from .statistics import (
    DetectionStatistics,
    HintInfo,
    QuestionDetail,
    compute_statistics,
    log_detection_statistics,
    similarity_histogram,
)

__all__ = [
    "DetectionStatistics",
    "FragmentDetection",
    "GENERAL_GROUP",
    "GENERIC_EXAMINER_INSTRUCTION",
    "GENERIC_PAPER_CODE",
    "GroupDetection",
    "HintInfo",
    "MarkingSchemeOrchestrationService",
    "OrchestrationConfig",
    "OrchestrationResult",
    "QuestionDetail",
    "QuestionDetector",
    "QuestionGroup",
    "apply_consensus",
    "attach_generic_scheme",
    "build_anchor",
    "build_generic_match",
    "build_scheme_map",
    "compute_statistics",
    "effective_text",
    "estimate_max_marks",
    "find_dominant_paper",
    "forced_paper_hint",
    "generate_sequential_rubric",
    "group_fragments",
    "hint_adherence_failure",
    "inject_parent_context",
    "log_detection_statistics",
    "merge_group",
    "normalize_mark_point",
    "normalize_question_scheme",
    "scheme_map_key",
    "search_hint_metadata",
    "similarity_histogram",
]
