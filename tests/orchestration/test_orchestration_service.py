"""
Unit Tests for MarkingSchemeOrchestrationService

Tests for the orchestrate() pipeline against a scripted detector: hint
retry, consensus rescue, generic fallback, normalization and output.
"""

import json
from dataclasses import replace

import pytest

from conftest import StubDetector, found, make_match, not_found, simple_scheme
from gcse_markscheme.common.thresholds import OrchestrationThresholds
from gcse_markscheme.core.models import DetectionResult, HintMetadata, MarkPoint, QueryFragment, QuestionScheme
from gcse_markscheme.detection import QuestionDetectionService
from gcse_markscheme.loading import CorpusCache, InMemoryCorpusSource
from gcse_markscheme.orchestration import (
    MarkingSchemeOrchestrationService,
    OrchestrationConfig,
)
from gcse_markscheme.orchestration.consensus import LOW_ADHERENCE_REASON
from gcse_markscheme.orchestration.service import GENERIC_MESSAGE

FORCED_X = "Pearson Edexcel 1MA1/1H June 2023 H"


def _x(number: str, **kwargs):
    return found(make_match(question_number=number, scheme=simple_scheme("M1", "A1"), **kwargs))


def _y(number: str):
    return found(make_match(paper_code="8300/1F", board="AQA", question_number=number,
                            scheme=simple_scheme("B1")))


def _fragments(*numbers):
    return [QueryFragment(f"Question {n} text", n) for n in numbers]


def _searched(result: DetectionResult, pool_size: int = 3) -> DetectionResult:
    """Result of a detection that searched the whole corpus without a paper hint."""
    return replace(result, hint_metadata=replace(result.hint_metadata, pool_size=pool_size))


class TestOrchestrate:
    """Tests for MarkingSchemeOrchestrationService.orchestrate()."""

    def test_orchestrate_when_no_fragments_then_empty_result(self):
        """Nothing submitted, nothing detected."""
        detector = StubDetector()
        result = MarkingSchemeOrchestrationService(detector).orchestrate([])
        assert len(result.marking_schemes_map) == 0
        assert detector.calls == []

    def test_orchestrate_when_single_match_then_one_entry(self):
        """A matched group yields one entry with a group message."""
        detector = StubDetector({("4", None): _x("4", marks=2)})
        result = MarkingSchemeOrchestrationService(detector).orchestrate(_fragments("4"))

        assert list(result.marking_schemes_map) == ["4_Pearson Edexcel_1MA1/1H"]
        entry = result.marking_schemes_map["4_Pearson Edexcel_1MA1/1H"]
        assert [p.code for p in entry.marks] == ["M1", "A1"]
        assert entry.total_marks == 2
        assert result.detection_results[0].result.message == "Matched via Group 4"
        assert result.statistics.detected == 1
        assert detector.calls == [("Question 4 text", "4", None)]

    def test_orchestrate_when_outlier_paper_then_pulled_onto_consensus(self):
        """Four groups on X and one on Y: Y is re-detected onto X."""
        responses = {(n, None): _x(n) for n in ("1", "2", "3", "4")}
        responses[("5", None)] = _y("5")
        responses[("5", FORCED_X)] = _x("5")
        detector = StubDetector(responses)

        result = MarkingSchemeOrchestrationService(detector).orchestrate(_fragments("1", "2", "3", "4", "5"))

        assert len(result.marking_schemes_map) == 5
        assert all(key.endswith("_Pearson Edexcel_1MA1/1H") for key in result.marking_schemes_map)
        assert result.statistics.hint_info.rescued_questions == ("5",)
        assert result.statistics.detected == 5

    def test_orchestrate_when_consensus_disabled_then_outlier_kept(self):
        """With consensus off the outlier keeps its own paper."""
        responses = {(n, None): _x(n) for n in ("1", "2", "3", "4")}
        responses[("5", None)] = _y("5")
        service = MarkingSchemeOrchestrationService(
            StubDetector(responses), OrchestrationConfig(enable_consensus=False)
        )
        result = service.orchestrate(_fragments("1", "2", "3", "4", "5"))
        assert "5_AQA_8300/1F" in result.marking_schemes_map

    def test_orchestrate_when_hint_not_adhered_then_retried_without_hint(self):
        """A unique hint that detects too little is discarded."""
        detector = StubDetector({
            ("1", "Edexcel 2H"): found(make_match(question_number="1", scheme=simple_scheme("B1")), 1),
            ("2", "Edexcel 2H"): not_found(1),
            ("1", None): _x("1"),
            ("2", None): _x("2"),
        })
        result = MarkingSchemeOrchestrationService(detector).orchestrate(
            _fragments("1", "2"), paper_hint="Edexcel 2H"
        )

        assert result.hint_discarded == LOW_ADHERENCE_REASON
        assert [call[2] for call in detector.calls] == ["Edexcel 2H", "Edexcel 2H", None, None]
        assert result.statistics.detected == 2

    def test_orchestrate_when_hint_rescue_disabled_then_single_pass(self):
        """Without hint rescue the hinted pass is final."""
        detector = StubDetector({
            ("1", "Edexcel 2H"): found(make_match(question_number="1", scheme=simple_scheme("B1")), 1),
            ("2", "Edexcel 2H"): not_found(1),
        })
        service = MarkingSchemeOrchestrationService(
            detector, OrchestrationConfig(enable_hint_rescue=False, enable_consensus=False)
        )
        result = service.orchestrate(_fragments("1", "2"), paper_hint="Edexcel 2H")

        assert result.hint_discarded is None
        assert len(detector.calls) == 2

    def test_orchestrate_when_hint_adhered_then_kept(self):
        """A hint every group follows is not retried."""
        detector = StubDetector({
            ("1", "Edexcel 1H"): found(make_match(question_number="1", scheme=simple_scheme("B1")), 1),
        })
        result = MarkingSchemeOrchestrationService(detector).orchestrate(
            _fragments("1"), paper_hint="Edexcel 1H"
        )
        assert result.hint_discarded is None
        assert len(detector.calls) == 1

    def test_orchestrate_when_both_passes_miss_then_retried_once(self):
        """
        The no-hint retry runs at most once, even when it also detects nothing.

        Checks:
        1. Exactly two detection passes over both groups
        2. No consensus calls without a dominant paper
        3. Every group falls back to a generic rubric
        """
        detector = StubDetector({
            ("1", "Edexcel 2H"): not_found(1),
            ("2", "Edexcel 2H"): not_found(1),
        })
        result = MarkingSchemeOrchestrationService(detector).orchestrate(
            _fragments("1", "2"), paper_hint="Edexcel 2H"
        )

        assert result.hint_discarded == LOW_ADHERENCE_REASON
        assert [call[1:] for call in detector.calls] == [
            ("1", "Edexcel 2H"), ("2", "Edexcel 2H"), ("1", None), ("2", None),
        ]
        assert result.statistics.detected == 0
        assert all(entry.is_generic for entry in result.marking_schemes_map.values())

    def test_orchestrate_when_first_group_rescued_then_hint_info_from_main_pass(self):
        """Statistics report the user's pass, not the forced consensus hint."""
        responses = {(n, None): _searched(_x(n)) for n in ("2", "3", "4", "5")}
        responses[("1", None)] = _searched(_y("1"))
        responses[("1", FORCED_X)] = DetectionResult(
            found=True,
            match=make_match(question_number="1", scheme=simple_scheme("M1", "A1")),
            hint_metadata=HintMetadata(hint_used=FORCED_X, matched_papers_count=1, pool_size=1,
                                       deep_search_active=False, rescue_mode=True),
        )
        result = MarkingSchemeOrchestrationService(StubDetector(responses)).orchestrate(
            _fragments("1", "2", "3", "4", "5")
        )

        info = result.statistics.hint_info
        assert info.rescued_questions == ("1",)
        assert info.hint_used == ""
        assert info.deep_search_active
        assert info.pool_size == 3
        assert info.matched_papers_count == 0
        assert "1_Pearson Edexcel_1MA1/1H" in result.marking_schemes_map

    def test_orchestrate_when_unmatched_then_generic_entry(self):
        """Unmatched groups get a generic rubric but stay not found."""
        detector = StubDetector()
        fragments = [QueryFragment("Explain why the sequence is not arithmetic. (3 marks)")]
        result = MarkingSchemeOrchestrationService(detector).orchestrate(fragments)

        entry = result.marking_schemes_map["General_Unknown_Generic Question"]
        assert entry.is_generic
        assert entry.total_marks == 3
        assert set(entry.sub_question_marks) == {"1"}
        assert len(entry.marks) == 6 * 3 + 3
        assert not entry.detection.found
        assert entry.detection.message == GENERIC_MESSAGE
        assert result.statistics.not_detected == 1

    def test_orchestrate_when_match_has_no_scheme_then_generic_rubric_on_paper(self):
        """A match without a published scheme keeps its paper and gets a rubric."""
        detector = StubDetector({("7", None): found(make_match(question_number="7", marks=4))})
        result = MarkingSchemeOrchestrationService(detector).orchestrate(_fragments("7"))

        entry = result.marking_schemes_map["7_Pearson Edexcel_1MA1/1H"]
        assert entry.is_generic
        assert entry.detection.found
        assert len(entry.marks) == 7 * 3 + 3
        assert result.statistics.without_marking_scheme == 1

    @pytest.mark.parametrize("normalize, expected", [(True, "2"), (False, "cao")])
    def test_orchestrate_when_cao_answer_then_normalized_if_enabled(self, normalize, expected):
        """"cao" answers are resolved unless normalization is switched off."""
        scheme = QuestionScheme(marks=(MarkPoint("M1"), MarkPoint("A1", answer="cao")), answer="2")
        detector = StubDetector({("4", None): found(make_match(question_number="4", scheme=scheme))})
        service = MarkingSchemeOrchestrationService(detector, OrchestrationConfig(normalize_schemes=normalize))

        entry = service.orchestrate(_fragments("4")).marking_schemes_map["4_Pearson Edexcel_1MA1/1H"]
        assert entry.marks[1].answer == expected

    def test_orchestrate_when_sub_questions_then_one_result_per_fragment(self):
        """Each fragment gets its group's result."""
        detector = StubDetector({("5", None): _x("5")})
        result = MarkingSchemeOrchestrationService(detector).orchestrate(_fragments("5a", "5b"))

        assert len(detector.calls) == 1
        assert [d.fragment.question_number for d in result.detection_results] == ["5a", "5b"]
        assert result.statistics.total_questions == 2

    def test_to_dict_when_called_then_json_serializable(self):
        """The result serializes to JSON."""
        detector = StubDetector({("4", None): _x("4")})
        result = MarkingSchemeOrchestrationService(detector).orchestrate(_fragments("4", "9"))
        payload = json.loads(json.dumps(result.to_dict()))
        assert set(payload["marking_schemes"]) == {
            "4_Pearson Edexcel_1MA1/1H",
            "9_Unknown_Generic Question",
        }


class TestOrchestrateWithEmptyCorpus:
    """Orchestration over a real detector with no papers loaded."""

    def test_orchestrate_when_corpus_empty_then_generic_fallback(self):
        """An empty corpus degrades to generic rubrics."""
        cache = CorpusCache(InMemoryCorpusSource())
        try:
            service = MarkingSchemeOrchestrationService(QuestionDetectionService(cache))
            result = service.orchestrate([QueryFragment("Solve 2x = 8 (2 marks)", "3")])
        finally:
            cache.close()

        entry = result.marking_schemes_map["3_Unknown_Generic Question"]
        assert entry.is_generic
        assert not entry.detection.found
        assert entry.total_marks == 2
        assert result.statistics.detected == 0


class TestOrchestrateWithCorpus:
    """Orchestration over a real detector and the shared corpus."""

    @pytest.fixture
    def service(self, corpus_cache):
        return MarkingSchemeOrchestrationService(QuestionDetectionService(corpus_cache))

    @pytest.fixture
    def fragments(self):
        return [
            QueryFragment("Find the value of x when 2x+3=7", "4"),
            QueryFragment("Work out 3/4 + 2/5 giving your answer as a fraction.", "1"),
        ]

    def test_orchestrate_when_wrong_unique_hint_then_discarded(self, service, fragments):
        """A hint pointing at the wrong paper is retried without it."""
        result = service.orchestrate(fragments, paper_hint="1MA1/2H")

        assert result.hint_discarded == LOW_ADHERENCE_REASON
        assert result.statistics.detected == 2

    def test_orchestrate_when_blank_fragment_first_then_hint_still_checked(self, service, fragments):
        """A blank OCR fragment at the front does not switch off the hint retry."""
        result = service.orchestrate([QueryFragment("", "9")] + fragments, paper_hint="1MA1/2H")

        assert result.hint_discarded == LOW_ADHERENCE_REASON
        assert result.statistics.detected == 2
        assert result.statistics.hint_info.pool_size > 0
        assert "4_Pearson Edexcel_1MA1/1H" in result.marking_schemes_map


class TestOrchestrationConfig:
    """Tests for OrchestrationConfig validation."""

    def test_init_when_bad_ratio_then_raises_error(self):
        """consensus_ratio must be in (0, 1]."""
        with pytest.raises(ValueError, match="consensus_ratio"):
            OrchestrationConfig(thresholds=OrchestrationThresholds(consensus_ratio=0.0))
