"""
Module: orchestration.grouping

Purpose:
    Group query fragments by base question number, inject parent context
    into sub-question fragments and build one dense anchor text per group.

Key Functions:
    - group_fragments(): Fragments -> ordered QuestionGroups
    - inject_parent_context(): Prepend parent text when it is missing
    - build_anchor(): Longest-first, overlap-aware concatenation
    - search_hint_metadata(): Hint diagnostics of the first searching group

Key Classes:
    - QuestionGroup: Fragments sharing a base number + anchor
    - GroupDetection: Detection result for one group

Used By:
    - orchestration.service
    - orchestration.consensus / merge / statistics
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from gcse_markscheme.common.text import base_question_number, is_sub_question
from gcse_markscheme.common.thresholds import ORCHESTRATION_THRESHOLDS, OrchestrationThresholds
from gcse_markscheme.core.models import DetectionResult, HintMetadata, QueryFragment

logger = logging.getLogger(__name__)

GENERAL_GROUP = "General"


@dataclass(frozen=True)
class QuestionGroup:
    """
    Fragments of one question, detected together.

    Attributes:
        base: Base question number, or "General" for unnumbered fragments
        fragments: Fragments with effective (context-injected) text
        anchor: Combined query text used for detection
    """
    base: str
    fragments: Tuple[QueryFragment, ...]
    anchor: str

    @property
    def question_hint(self) -> Optional[str]:
        return None if self.base == GENERAL_GROUP else self.base

    @property
    def source_page_index(self) -> int:
        return self.fragments[0].source_page_index if self.fragments else 0

    def __repr__(self) -> str:
        return f"QuestionGroup({self.base!r}, {len(self.fragments)} fragments)"


@dataclass(frozen=True)
class GroupDetection:
    """
    Detection result shared by every fragment of a group.

    Attributes:
        group: The detected group
        result: Detection result (after consensus/fallback, the final one)
        rescued: Result came from a consensus re-detection
    """
    group: QuestionGroup
    result: DetectionResult
    rescued: bool = False

    @property
    def paper_title(self) -> str:
        match = self.result.match
        return match.paper_title if self.result.found and match else ""


def search_hint_metadata(detections: Sequence[GroupDetection]) -> Optional[HintMetadata]:
    """
    Hint diagnostics of the first group whose detection searched the corpus.

    Groups that exited early (blank anchor, empty corpus) carry no pool
    information and are skipped. Falls back to the first group when none
    searched; None when there are no groups.
    """
    for detection in detections:
        if detection.result.hint_metadata.searched:
            return detection.result.hint_metadata
    return detections[0].result.hint_metadata if detections else None


def effective_text(fragment: QueryFragment) -> str:
    """Fragment text followed by the student's work, if any."""
    text = fragment.text or ""
    if fragment.student_work:
        text = f"{text}\n\n{fragment.student_work}"
    return text


def inject_parent_context(
    text: str,
    parent_context: Optional[str],
    thresholds: OrchestrationThresholds = ORCHESTRATION_THRESHOLDS,
) -> str:
    """
    Prepend the parent question text to a sub-question fragment.

    Skipped when the parent text is the fragment itself or its opening
    characters already appear in the fragment.

    Example:
        >>> inject_parent_context("Work out the area.", "Here is a triangle ABC.")
        'Here is a triangle ABC.\\n\\nWork out the area.'
    """
    if not parent_context or parent_context.strip() == text.strip():
        return text
    opening = parent_context.lower()[:thresholds.context_prefix_chars]
    if opening in text.lower():
        return text
    return f"{parent_context}\n\n{text}"


def build_anchor(
    texts: Sequence[str],
    thresholds: OrchestrationThresholds = ORCHESTRATION_THRESHOLDS,
) -> str:
    """
    Combine group texts into one dense query.

    Texts are deduplicated and sorted longest first. Each further text
    (of at least 5 characters) is appended only when its last 40
    characters are not already in the anchor, so a shared stem appears
    once while each part's distinct ending is kept.
    """
    unique: Dict[str, None] = {}
    for text in texts:
        stripped = (text or "").strip()
        if stripped:
            unique[stripped] = None
    ordered = sorted(unique, key=len, reverse=True)
    if not ordered:
        return ""

    anchor = ordered[0]
    for fragment in ordered[1:]:
        if len(fragment) < thresholds.anchor_min_fragment:
            continue
        tail = fragment[-thresholds.anchor_tail_chars:].strip().lower()
        if tail not in anchor.lower():
            anchor = f"{anchor}\n\n{fragment}"
    return anchor


def _parent_context(fragments: Sequence[QueryFragment]) -> Optional[str]:
    """Best-known parent text: parent fragment > supplied parent_text > first fragment."""
    for fragment in fragments:
        if fragment.question_number and not is_sub_question(fragment.question_number) and fragment.text:
            return fragment.text
    for fragment in fragments:
        if fragment.parent_text:
            return fragment.parent_text
    return fragments[0].text if fragments and fragments[0].text else None


def group_fragments(
    fragments: Sequence[QueryFragment],
    thresholds: OrchestrationThresholds = ORCHESTRATION_THRESHOLDS,
) -> List[QuestionGroup]:
    """
    Group fragments by base question number, in order of first appearance.

    Args:
        fragments: Fragments from classification
        thresholds: Orchestration thresholds

    Returns:
        Ordered groups with context-injected fragments and anchors

    Example:
        >>> groups = group_fragments([QueryFragment("...", "3a"), QueryFragment("...", "3b")])
        >>> [g.base for g in groups]
        ['3']
    """
    by_base: Dict[str, List[QueryFragment]] = {}
    for fragment in fragments:
        base = base_question_number(fragment.question_number) or GENERAL_GROUP
        by_base.setdefault(base, []).append(fragment)

    groups = []
    for base, members in by_base.items():
        parent = _parent_context(members) if base != GENERAL_GROUP else None
        prepared = []
        for fragment in members:
            text = effective_text(fragment)
            if is_sub_question(fragment.question_number):
                text = inject_parent_context(text, parent, thresholds)
            prepared.append(fragment.with_text(text))
        anchor = build_anchor([f.text for f in prepared], thresholds)
        groups.append(QuestionGroup(base=base, fragments=tuple(prepared), anchor=anchor))
        logger.debug(f"Group {base}: {len(prepared)} fragments, anchor {len(anchor)} chars")
    return groups
