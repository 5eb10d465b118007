"""
Unit Tests for Candidate Scoring

Tests for score_question() gates and generate_candidates() ordering.
"""

import pytest

from gcse_markscheme.core.models import CorpusPaper, CorpusQuestion
from gcse_markscheme.detection.config import DetectionConfig
from gcse_markscheme.detection.scoring import generate_candidates, score_question

QUERY = "Find the value of x when 2x+3=7"


def _paper(*questions: CorpusQuestion) -> CorpusPaper:
    return CorpusPaper("p", "AQA", "GCSE Mathematics", "8300/1H", "June 2022", "H", questions=questions)


class TestScoreQuestion:
    """Tests for score_question()."""

    def test_score_when_exact_text_and_number_then_one(self):
        """Same text and same number scores 1.0."""
        question = CorpusQuestion("4", QUERY, 2)
        candidate = score_question(QUERY, _paper(question), question, "4", "", False, DetectionConfig())
        assert candidate.score == pytest.approx(1.0)
        assert candidate.breakdown.structural == 1.0

    def test_score_when_number_differs_then_gated_out(self):
        """Outside rescue mode a different base number is never scored."""
        question = CorpusQuestion("7", QUERY, 2)
        assert score_question(QUERY, _paper(question), question, "4", "", False, DetectionConfig()) is None

    def test_score_when_number_differs_in_rescue_then_heavily_penalised(self):
        """In rescue mode a different number keeps a tenth of the score."""
        question = CorpusQuestion("7", QUERY, 2)
        candidate = score_question(QUERY, _paper(question), question, "4", "", True, DetectionConfig())
        # 0.7 * 1.0 * 0.1 = 0.07, below the candidate floor
        assert candidate is None

    def test_score_when_number_matches_but_text_unrelated_then_below_acceptance(self):
        """A matching number cannot carry unrelated text past any acceptance rule."""
        question = CorpusQuestion("4", "Expand and simplify (x + 3)(x - 7) fully", 2)
        candidate = score_question(QUERY, _paper(question), question, "4", "", False, DetectionConfig())
        assert candidate is None or candidate.score < 0.35

    def test_score_when_no_hint_then_neutral_structure(self):
        """Without a hint the structural term is 0.5."""
        question = CorpusQuestion("4", QUERY, 2)
        candidate = score_question(QUERY, _paper(question), question, "", "", False, DetectionConfig())
        assert candidate.breakdown.structural == 0.5
        assert candidate.score == pytest.approx(0.7 + 0.15)

    def test_score_when_question_has_no_text_then_skipped(self):
        """Questions without any text are not candidates."""
        question = CorpusQuestion("4")
        assert score_question(QUERY, _paper(question), question, "4", "", False, DetectionConfig()) is None

    def test_score_when_hint_has_existing_sub_part_then_label_recorded(self, snapshot):
        """A hint like "5a" records the matched sub-question."""
        paper = snapshot.papers[0]
        question = paper.questions[2]
        candidate = score_question(question.aggregate_text, paper, question, "5", "a", False, DetectionConfig())
        assert candidate.sub_label == "a"
        missing = score_question(question.aggregate_text, paper, question, "5", "z", False, DetectionConfig())
        assert missing.sub_label == ""


class TestGenerateCandidates:
    """Tests for generate_candidates()."""

    def test_generate_when_hint_then_only_that_number(self, snapshot):
        """The hard gate keeps only questions with the hinted number."""
        candidates = generate_candidates(QUERY, snapshot.papers, "4", False, DetectionConfig())
        assert candidates
        assert all(c.question.base_number == "4" for c in candidates)
        assert candidates[0].paper.paper_code == "1MA1/1H"
        assert candidates[0].score == pytest.approx(1.0)

    def test_generate_when_called_then_sorted_descending(self, snapshot):
        """Candidates are ranked by score."""
        candidates = generate_candidates(QUERY, snapshot.papers, None, False, DetectionConfig())
        scores = [c.score for c in candidates]
        assert scores == sorted(scores, reverse=True)

    def test_generate_when_parallel_then_same_ranking_as_sequential(self, snapshot):
        """Parallel scoring gives exactly the sequential ranking."""
        sequential = generate_candidates(QUERY, snapshot.papers, None, False, DetectionConfig())
        parallel = generate_candidates(
            QUERY, snapshot.papers, None, False, DetectionConfig(max_workers=4, parallel_min_papers=1)
        )
        assert [(c.candidate_id, c.score) for c in parallel] == [(c.candidate_id, c.score) for c in sequential]

    def test_generate_when_ties_then_corpus_order(self):
        """Equal scores keep corpus order."""
        first = CorpusPaper("a", "AQA", "GCSE Mathematics", "X1", "June 2022", questions=(CorpusQuestion("4", QUERY),))
        second = CorpusPaper("b", "AQA", "GCSE Mathematics", "X2", "June 2022", questions=(CorpusQuestion("4", QUERY),))
        candidates = generate_candidates(QUERY, [first, second], "4", False, DetectionConfig())
        assert [c.paper.paper_id for c in candidates] == ["a", "b"]


class TestDetectionConfig:
    """Tests for DetectionConfig validation."""

    def test_init_when_no_workers_then_raises_error(self):
        """max_workers must be at least 1."""
        with pytest.raises(ValueError, match="max_workers"):
            DetectionConfig(max_workers=0)
