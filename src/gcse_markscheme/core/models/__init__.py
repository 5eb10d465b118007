"""
Core Models Package

Immutable, validated data models shared by loading, detection and
orchestration. All models are frozen dataclasses: changes produce new
instances, so a scheme or match can be reused across group merges without
aliasing surprises.
"""

from .schemes import (
    ExamDetails,
    MarkingSchemeEntry,
    MarkPoint,
    QuestionScheme,
    ResolvedScheme,
    mark_value_from_code,
)
from .corpus import CorpusPaper, CorpusQuestion, CorpusSnapshot, CorpusSubQuestion
from .fragments import QueryFragment
from .detection import (
    AuditEntry,
    Candidate,
    DetectionResult,
    ExamPaperMatch,
    HintMetadata,
    ScoreBreakdown,
)
from .output import NormalizedSchemeMapEntry

__all__ = [
    "AuditEntry",
    "Candidate",
    "CorpusPaper",
    "CorpusQuestion",
    "CorpusSnapshot",
    "CorpusSubQuestion",
    "DetectionResult",
    "ExamDetails",
    "ExamPaperMatch",
    "HintMetadata",
    "MarkPoint",
    "MarkingSchemeEntry",
    "NormalizedSchemeMapEntry",
    "QueryFragment",
    "QuestionScheme",
    "ResolvedScheme",
    "ScoreBreakdown",
    "mark_value_from_code",
]
