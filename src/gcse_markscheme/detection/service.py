"""
Module: detection.service

Purpose:
    QuestionDetectionService - match one piece of query text to a corpus
    question and resolve its marking scheme.

Key Classes:
    - QuestionDetectionService: detect_question() over a cached corpus

Dependencies:
    - loading.cache.CorpusCache: Corpus snapshot (read-through, TTL)
    - detection.pool / scoring / ranking / schemes: Pipeline stages

Used By:
    - orchestration.service: One call per question group
    - scripts/run_detection.py
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from gcse_markscheme.common.text import sanitize_question_hint
from gcse_markscheme.core.errors import DataIntegrityError
from gcse_markscheme.core.models import (
    AuditEntry,
    Candidate,
    CorpusSnapshot,
    DetectionResult,
    ExamPaperMatch,
    HintMetadata,
)
from gcse_markscheme.loading.cache import CorpusCache

from .config import DetectionConfig
from .pool import PoolSelection, select_pool
from .ranking import Acceptance, select_winner
from .schemes import find_scheme
from .scoring import generate_candidates

logger = logging.getLogger(__name__)

NO_TEXT_MESSAGE = "No question text provided"
EMPTY_CORPUS_MESSAGE = "No exam papers found in corpus"
NO_MATCH_MESSAGE = "No matching exam paper question found"


class QuestionDetectionService:
    """
    Detect which past-paper question a piece of text comes from.

    Stateless apart from the injected corpus cache; safe to call from
    several threads at once.

    Example:
        >>> service = QuestionDetectionService(CorpusCache(JsonlCorpusSource(Path("corpus"))))
        >>> result = service.detect_question("Find the value of x when 2x+3=7", "4")
        >>> result.match.paper_code
        '1MA1/1H'
    """

    def __init__(self, cache: CorpusCache, config: Optional[DetectionConfig] = None) -> None:
        self.cache = cache
        self.config = config or DetectionConfig()

    def detect_question(
        self,
        query_text: Optional[str],
        question_number_hint: Optional[str] = None,
        paper_hint: Optional[str] = None,
    ) -> DetectionResult:
        """
        Find the corpus question best matching ``query_text``.

        A miss is returned as ``found=False`` with hint diagnostics, never
        raised.

        Args:
            query_text: Question text (usually a group anchor)
            question_number_hint: Question number read from the page ("5", "5a")
            paper_hint: Free-text paper description ("Edexcel 1MA1/1H June 2023")

        Returns:
            DetectionResult

        Raises:
            DataIntegrityError: The winning paper is missing required metadata
        """
        query = (query_text or "").strip()
        question_hint = sanitize_question_hint(question_number_hint)
        if not query:
            return DetectionResult.not_found(
                NO_TEXT_MESSAGE, HintMetadata(hint_used=paper_hint or "", question_hint=question_hint)
            )

        snapshot = self.cache.get()
        if snapshot.is_empty:
            logger.warning("Detection requested against an empty corpus")
            return DetectionResult.not_found(
                EMPTY_CORPUS_MESSAGE, HintMetadata(hint_used=paper_hint or "", question_hint=question_hint)
            )

        start = time.perf_counter()
        pool = select_pool(snapshot.papers, paper_hint, self.config.detection)
        candidates = generate_candidates(
            query, pool.papers, question_hint, pool.rescue_mode, self.config
        )
        acceptance = select_winner(candidates, pool.rescue_mode, self.config.detection)
        audit = tuple(
            AuditEntry.from_candidate(c) for c in candidates[:self.config.detection.audit_trail_size]
        )
        elapsed = time.perf_counter() - start

        if acceptance is None:
            logger.info(
                f"No match for Q{question_hint or '?'} among {len(pool.papers)} papers "
                f"({len(candidates)} candidates, {elapsed:.2f}s)"
            )
            return DetectionResult.not_found(
                NO_MATCH_MESSAGE, self._hint_metadata(pool, question_hint, audit)
            )

        match = self._materialize(acceptance, snapshot)
        logger.info(
            f"Matched Q{question_hint or '?'} -> {match.paper_title} Q{match.question_number}"
            f"{match.sub_question_number} (score {match.confidence:.3f}, {acceptance.rule}, "
            f"scheme {'yes' if match.marking_scheme else 'no'}, {elapsed:.2f}s)"
        )
        return DetectionResult(
            found=True,
            match=match,
            message=f"Matched {match.paper_title} question {match.question_number}{match.sub_question_number}",
            hint_metadata=self._hint_metadata(
                pool,
                question_hint,
                audit,
                threshold_relaxed=acceptance.threshold_relaxed,
                matched_paper_title=match.paper_title,
            ),
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Internals
    # ─────────────────────────────────────────────────────────────────────────

    def _materialize(self, acceptance: Acceptance, snapshot: CorpusSnapshot) -> ExamPaperMatch:
        candidate: Candidate = acceptance.candidate
        paper = candidate.paper
        question = candidate.question

        missing = paper.missing_metadata()
        if missing:
            raise DataIntegrityError(
                f"Matched paper {paper.paper_id} is missing metadata: {', '.join(missing)}"
            )

        sub = question.find_sub_question(candidate.sub_label) if candidate.sub_label else None
        if sub is not None:
            marks = sub.marks
            text = sub.text
        else:
            marks = question.marks
            text = question.aggregate_text

        thresholds = self.config.detection
        match = ExamPaperMatch(
            board=paper.board,
            qualification=paper.qualification,
            paper_code=paper.paper_code,
            exam_series=paper.exam_series,
            tier=paper.tier,
            subject=paper.subject,
            paper_title=paper.title,
            question_number=question.number,
            sub_question_number=candidate.sub_label if sub is not None else "",
            marks=marks,
            parent_question_marks=question.marks,
            confidence=candidate.score,
            database_question_text=text,
            sub_question_max_scores=question.sub_question_max_scores,
            sub_question_texts=question.sub_question_texts,
            is_weak_match=candidate.score < thresholds.weak_match,
            threshold_relaxed=acceptance.threshold_relaxed,
        )
        return match.with_scheme(find_scheme(match, snapshot.schemes, self.config.schemes, self.config.similarity))

    @staticmethod
    def _hint_metadata(
        pool: PoolSelection,
        question_hint: Optional[str],
        audit,
        threshold_relaxed: bool = False,
        matched_paper_title: str = "",
    ) -> HintMetadata:
        return HintMetadata(
            hint_used=pool.hint,
            question_hint=question_hint,
            matched_papers_count=pool.matched_papers_count,
            pool_size=len(pool.papers),
            deep_search_active=pool.deep_search,
            rescue_mode=pool.rescue_mode,
            threshold_relaxed=threshold_relaxed,
            matched_paper_title=matched_paper_title,
            audit_trail=audit,
        )
