"""
Unit Tests for Scheme Normalization

Tests for numeric mark-code expansion and "cao" answer substitution.
"""

from gcse_markscheme.core.models import MarkPoint, QuestionScheme
from gcse_markscheme.orchestration.normalization import (
    normalize_mark_point,
    normalize_question_scheme,
)


class TestNormalizeMarkPoint:
    """Tests for normalize_mark_point()."""

    def test_normalize_when_codes_listed_then_split(self):
        """Guidance listing codes becomes one point per code."""
        point = MarkPoint("2", 2, guidance="M1 for 4 terms with 3 correct, A1 for x^2 - 2x - 15")
        points = normalize_mark_point(point)
        assert [(p.code, p.value) for p in points] == [("M1", 1), ("A1", 1)]
        assert points[0].guidance == "4 terms with 3 correct"
        assert points[1].guidance == "x^2 - 2x - 15"

    def test_normalize_when_listed_short_of_value_then_balancing_point(self):
        """Missing value is added as the next code of the last letter."""
        points = normalize_mark_point(MarkPoint("3", 3, guidance="M1 for 2x = 8"))
        assert [(p.code, p.value) for p in points] == [("M1", 1), ("M2", 2)]

    def test_normalize_when_nothing_listed_then_accuracy_code(self):
        """A bare number becomes an A code of that value."""
        points = normalize_mark_point(MarkPoint("2", 2, guidance="correct answer"))
        assert [(p.code, p.value) for p in points] == [("A2", 2)]

    def test_normalize_when_letter_code_then_unchanged(self):
        """Ordinary codes pass through untouched."""
        point = MarkPoint("B1", 1, guidance="M1 for something")
        assert normalize_mark_point(point) == [point]

    def test_normalize_when_part_set_then_kept(self):
        """Expanded points keep their sub-question label."""
        points = normalize_mark_point(MarkPoint("2", 2, guidance="B2 for both", part="b"))
        assert [(p.code, p.part) for p in points] == [("B2", "b")]


class TestNormalizeQuestionScheme:
    """Tests for normalize_question_scheme()."""

    def test_normalize_when_cao_then_question_answer_substituted(self):
        """"cao" answers become the question's answer."""
        scheme = QuestionScheme(marks=(MarkPoint("M1"), MarkPoint("A1", answer="cao")), answer="2")
        normalized = normalize_question_scheme(scheme)
        assert normalized.marks[1].answer == "2"
        assert scheme.marks[1].answer == "cao"

    def test_normalize_when_part_cao_then_part_answer_used(self):
        """Points of a part use that part's answer."""
        part_b = QuestionScheme(marks=(MarkPoint("A1", answer="cao"),), answer="24")
        scheme = QuestionScheme(
            marks=(MarkPoint("A1", answer="cao", part="a"), MarkPoint("A1", answer="cao", part="b")),
            answer="(a) 10\n(b) 24",
            parts={"a": QuestionScheme(answer="10"), "b": part_b},
        )
        normalized = normalize_question_scheme(scheme)
        assert [p.answer for p in normalized.marks] == ["10", "24"]
        assert normalized.parts["b"].marks[0].answer == "24"

    def test_normalize_when_no_answer_known_then_cao_kept(self):
        """Without any answer, "cao" stays."""
        scheme = QuestionScheme(marks=(MarkPoint("A1", answer="cao"),), answer="cao")
        assert normalize_question_scheme(scheme).marks[0].answer == "cao"

    def test_normalize_when_explicit_answers_then_override(self):
        """Explicit answers take precedence over the scheme's own."""
        scheme = QuestionScheme(marks=(MarkPoint("A1", answer="cao", part="a"),), answer="9")
        normalized = normalize_question_scheme(scheme, question_answer="7", sub_answers={"a": "3"})
        assert normalized.marks[0].answer == "3"

    def test_normalize_when_alt_and_sub_marks_then_recursed(self):
        """Alternative schemes and sub-question marks are normalized too."""
        scheme = QuestionScheme(
            marks=(MarkPoint("3", 3, guidance="B3 for all three"),),
            answer="12",
            alt=QuestionScheme(marks=(MarkPoint("2", 2),)),
            sub_question_marks={"4a": (MarkPoint("A1", answer="cao"),)},
        )
        normalized = normalize_question_scheme(scheme)
        assert [p.code for p in normalized.marks] == ["B3"]
        assert [p.code for p in normalized.alt.marks] == ["A2"]
        assert normalized.alt.marks[0].answer == ""
        assert normalized.sub_question_marks["4a"][0].answer == "12"
