"""
Module: detection.scoring

Purpose:
    Candidate generation: score every top-level question of every pooled
    paper against a query, combining the hybrid text score with a
    structural (question-number) term and the gates that stop a matching
    number from carrying an unrelated question.

Key Functions:
    - score_question(): Score one corpus question
    - generate_candidates(): Score a pool, optionally in parallel

Dependencies:
    - concurrent.futures (std): Per-paper parallel scoring
    - detection.similarity: Hybrid score

Used By:
    - detection.service: Step 3 of detect_question
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import List, Optional, Sequence

from gcse_markscheme.common.text import split_question_number
from gcse_markscheme.core.models import Candidate, CorpusPaper, CorpusQuestion, ScoreBreakdown

from .config import DetectionConfig
from .similarity import question_hybrid_score

logger = logging.getLogger(__name__)


def score_question(
    query: str,
    paper: CorpusPaper,
    question: CorpusQuestion,
    hint_base: str,
    hint_sub: str,
    rescue_mode: bool,
    config: DetectionConfig,
) -> Optional[Candidate]:
    """
    Score one corpus question against a query.

    Steps:
    1. Hard gate: with a number hint, only the same base number is scored
       (skipped in rescue mode)
    2. Hybrid score of the query against the question's aggregate text
    3. Structural term: 1.0 / 0.0 against the hint, 0.5 without one
    4. final = 0.7 * hybrid + 0.3 * structural
    5. AND-gate: matching number with text < 0.4 -> x0.4
    6. Number mismatch -> x0.0 (x0.1 in rescue mode)

    Args:
        query: Query text
        paper: Paper the question belongs to
        question: Question to score
        hint_base: Base number of the question hint ("" when none)
        hint_sub: Sub-part of the question hint ("" when none)
        rescue_mode: Relaxed scoring
        config: Detection configuration

    Returns:
        Candidate, or None when gated out or at/below the candidate floor
    """
    thresholds = config.detection
    if hint_base and not rescue_mode and question.base_number != hint_base:
        return None

    text = question.aggregate_text
    if not text.strip():
        return None

    hybrid = question_hybrid_score(query, text, rescue_mode, config.similarity)
    if hint_base:
        structural = 1.0 if question.base_number == hint_base else 0.0
    else:
        structural = thresholds.structural_neutral

    final = thresholds.hybrid_weight * hybrid.total + thresholds.structural_weight * structural
    if structural > thresholds.and_gate_structural_min and hybrid.text < thresholds.and_gate_text_max:
        final *= thresholds.and_gate_multiplier
    if hint_base and structural < thresholds.and_gate_structural_min:
        final *= (
            thresholds.rescue_hint_mismatch_multiplier if rescue_mode
            else thresholds.hint_mismatch_multiplier
        )

    if final <= thresholds.candidate_floor:
        return None

    sub_label = ""
    if hint_sub and question.base_number == hint_base and question.find_sub_question(hint_sub):
        sub_label = hint_sub

    return Candidate(
        paper=paper,
        question=question,
        breakdown=ScoreBreakdown(
            text=hybrid.text,
            numeric=hybrid.numeric,
            semantic=hybrid.semantic,
            structural=structural,
            hybrid=hybrid.total,
        ),
        score=final,
        sub_label=sub_label,
    )


def _score_paper(
    query: str,
    paper: CorpusPaper,
    hint_base: str,
    hint_sub: str,
    rescue_mode: bool,
    config: DetectionConfig,
) -> List[Candidate]:
    candidates = []
    for question in paper.questions:
        candidate = score_question(query, paper, question, hint_base, hint_sub, rescue_mode, config)
        if candidate is not None:
            candidates.append(candidate)
    return candidates


def generate_candidates(
    query: str,
    papers: Sequence[CorpusPaper],
    question_hint: Optional[str],
    rescue_mode: bool,
    config: DetectionConfig,
) -> List[Candidate]:
    """
    Score every question in the pool and rank the survivors.

    Scoring is side-effect free, so large pools are scored per paper on a
    thread pool. Results are flattened in corpus order before a stable
    sort, so the ranking is identical to sequential scoring.

    Args:
        query: Query text
        papers: Pooled papers
        question_hint: Sanitised question-number hint
        rescue_mode: Relaxed scoring
        config: Detection configuration

    Returns:
        Candidates sorted by score descending, ties in corpus order
    """
    hint_base, hint_sub = split_question_number(question_hint)

    if config.max_workers > 1 and len(papers) >= config.parallel_min_papers:
        workers = min(config.max_workers, len(papers))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            per_paper = list(executor.map(
                lambda paper: _score_paper(query, paper, hint_base, hint_sub, rescue_mode, config),
                papers,
            ))
    else:
        per_paper = [
            _score_paper(query, paper, hint_base, hint_sub, rescue_mode, config)
            for paper in papers
        ]

    candidates = [
        replace(candidate, order=order)
        for order, candidate in enumerate(c for paper_candidates in per_paper for c in paper_candidates)
    ]
    candidates.sort(key=lambda c: -c.score)

    logger.debug(
        f"Scored {len(papers)} papers -> {len(candidates)} candidates "
        f"(hint={question_hint!r}, rescue={rescue_mode})"
    )
    for candidate in candidates[:config.detection.audit_trail_size]:
        b = candidate.breakdown
        logger.debug(
            f"  {candidate.candidate_id}: {candidate.score:.3f} "
            f"(text={b.text:.2f}, num={b.numeric:.2f}, sem={b.semantic}, struct={b.structural})"
        )
    return candidates
