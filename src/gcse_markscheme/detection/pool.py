"""
Module: detection.pool

Purpose:
    Narrow the corpus to the papers a free-text paper hint describes
    ("Edexcel 1MA1/1H May 2023") before scoring.

Key Functions:
    - select_pool(): Apply a paper hint to the corpus

Key Classes:
    - PoolSelection: Papers to search + how the hint was applied

Used By:
    - detection.service: Step 2 of detect_question
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from gcse_markscheme.common.text import normalize_metadata_text
from gcse_markscheme.common.thresholds import DETECTION_THRESHOLDS, DetectionThresholds
from gcse_markscheme.core.models import CorpusPaper

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PoolSelection:
    """
    Papers selected for scoring.

    Attributes:
        papers: Papers to score
        hint: Paper hint as supplied ("" when none)
        matched_papers_count: Papers the hint matched (0 when ignored)
        deep_search: Whole corpus is searched
        rescue_mode: Hint narrowed the pool to very few papers
    """
    papers: Tuple[CorpusPaper, ...]
    hint: str = ""
    matched_papers_count: int = 0
    deep_search: bool = True
    rescue_mode: bool = False


def hint_keywords(paper_hint: Optional[str]) -> Tuple[str, ...]:
    """
    Keywords of a paper hint, normalized like paper metadata.

    Example:
        >>> hint_keywords("Edexcel 1MA1/1H, May 2023")
        ('edexcel', '1ma1', '1h', 'june', '2023')
    """
    return tuple(normalize_metadata_text(paper_hint).split())


def select_pool(
    papers: Sequence[CorpusPaper],
    paper_hint: Optional[str],
    thresholds: DetectionThresholds = DETECTION_THRESHOLDS,
) -> PoolSelection:
    """
    Filter papers to those whose metadata contains every hint keyword.

    No hint, or a hint matching nothing, searches the whole corpus. A hint
    matching at most ``rescue_pool_max`` papers switches on rescue mode.

    Args:
        papers: Full corpus
        paper_hint: Free-text paper description
        thresholds: Detection thresholds

    Returns:
        PoolSelection
    """
    all_papers = tuple(papers)
    hint = (paper_hint or "").strip()
    keywords = hint_keywords(hint)
    if not keywords:
        return PoolSelection(papers=all_papers, hint=hint)

    matched = tuple(
        paper for paper in all_papers
        if all(keyword in paper.search_text for keyword in keywords)
    )
    if not matched:
        logger.info(f"Paper hint '{hint}' matched no papers; deep search over {len(all_papers)} papers")
        return PoolSelection(papers=all_papers, hint=hint)

    rescue = len(matched) <= thresholds.rescue_pool_max
    logger.debug(
        f"Paper hint '{hint}' matched {len(matched)} papers"
        + (" (rescue mode)" if rescue else "")
    )
    return PoolSelection(
        papers=matched,
        hint=hint,
        matched_papers_count=len(matched),
        deep_search=False,
        rescue_mode=rescue,
    )
