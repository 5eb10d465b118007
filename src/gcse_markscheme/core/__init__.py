"""
Core Package

Shared data models and errors for the question-detection engine.

1. **Immutable Data Models**
   Frozen dataclasses; any change creates a new instance.

2. **One Canonical Corpus Shape**
   Raw corpus documents are normalised once at load time
   (see `gcse_markscheme.loading.parser`); everything downstream assumes
   `CorpusQuestion` / `CorpusSubQuestion` only.

3. **Misses Are Data, Corruption Is An Error**
   A failed detection is a `DetectionResult(found=False)`; missing
   reference metadata raises `DataIntegrityError`.
"""

from .errors import DataIntegrityError
from .models import (
    CorpusPaper,
    CorpusQuestion,
    CorpusSnapshot,
    CorpusSubQuestion,
    DetectionResult,
    ExamPaperMatch,
    MarkingSchemeEntry,
    MarkPoint,
    NormalizedSchemeMapEntry,
    QueryFragment,
    QuestionScheme,
)

__all__ = [
    "CorpusPaper",
    "CorpusQuestion",
    "CorpusSnapshot",
    "CorpusSubQuestion",
    "DataIntegrityError",
    "DetectionResult",
    "ExamPaperMatch",
    "MarkingSchemeEntry",
    "MarkPoint",
    "NormalizedSchemeMapEntry",
    "QueryFragment",
    "QuestionScheme",
]
