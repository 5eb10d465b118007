"""
Unit Tests for Generic Rubric Synthesis
"""

import pytest

from conftest import make_match, simple_scheme
from gcse_markscheme.orchestration.rubric import (
    GENERIC_EXAMINER_INSTRUCTION,
    GENERIC_PAPER_CODE,
    attach_generic_scheme,
    build_generic_match,
    estimate_max_marks,
    generate_sequential_rubric,
    is_generic_scheme,
)


class TestEstimateMaxMarks:
    """Tests for estimate_max_marks()."""

    @pytest.mark.parametrize("text, expected", [
        ("Solve 3x = 12. (Total for Question 4 is 3 marks)", 3),
        ("Factorise fully. (Total 5 marks)", 5),
        ("Prove the identity. [2 marks]", 2),
        ("Total: 7 marks", 7),
        ("Simplify. (4 marks)", 4),
        ("Simplify. (1 mark)", 1),
        ("Solve 3x = 12.", 0),
        ("", 0),
    ])
    def test_estimate_when_pattern_present_then_mark(self, text, expected):
        """Each printed max-mark format is recognised."""
        assert estimate_max_marks(text) == expected

    def test_estimate_when_several_patterns_then_most_specific(self):
        """The question total beats a part mark."""
        text = "(a) Solve. (2 marks) (Total for Question 6 is 5 marks)"
        assert estimate_max_marks(text) == 5

    def test_estimate_when_out_of_range_then_zero(self):
        """Marks above 50 are not question marks."""
        assert estimate_max_marks("Paper total [80 marks]") == 0


class TestGenerateSequentialRubric:
    """Tests for generate_sequential_rubric()."""

    def test_generate_when_no_max_then_ten_per_letter(self):
        """Without a detected max, 10 points per letter plus the zero marks."""
        rubric = generate_sequential_rubric(0)
        codes = [p.code for p in rubric]
        assert len(rubric) == 33
        assert codes[:2] == ["M1", "M2"]
        assert codes[9] == "M10"
        assert codes[10] == "A1"
        assert codes[-3:] == ["M0", "A0", "B0"]
        assert [p.value for p in rubric[-3:]] == [0, 0, 0]

    def test_generate_when_max_detected_then_padded(self):
        """A detected max of 6 gives 9 points per letter."""
        rubric = generate_sequential_rubric(6)
        assert len(rubric) == 30
        assert [p.code for p in rubric if p.code.startswith("B")][-2:] == ["B9", "B0"]
        assert all(p.value == 1 for p in rubric[:-3])


class TestGenericMatches:
    """Tests for build_generic_match() and attach_generic_scheme()."""

    def test_build_when_called_then_virtual_match(self):
        """Generic matches carry a rubric keyed by question number."""
        match = build_generic_match("3", "Explain why. [4 marks]")
        assert match.is_generic
        assert match.confidence == 0.0
        assert match.paper_code == GENERIC_PAPER_CODE
        assert match.marks == 4
        scheme = match.marking_scheme
        assert is_generic_scheme(scheme)
        assert scheme.general_guidance == GENERIC_EXAMINER_INSTRUCTION
        assert len(scheme.question_scheme.marks) == 7 * 3 + 3
        assert list(scheme.question_scheme.sub_question_marks) == ["3"]

    def test_attach_when_match_has_marks_then_sized_from_marks(self):
        """Corpus marks size the rubric and the paper identity is kept."""
        match = make_match(question_number="5", sub_question_number="a", marks=2)
        updated = attach_generic_scheme(match, "Question text (Total 9 marks)")
        assert updated.paper_code == "1MA1/1H"
        assert not updated.is_generic
        assert updated.marking_scheme.exam_details.paper_code == "1MA1/1H"
        assert len(updated.marking_scheme.question_scheme.marks) == 5 * 3 + 3
        assert list(updated.marking_scheme.question_scheme.sub_question_marks) == ["5a"]

    def test_attach_when_no_marks_then_sized_from_text(self):
        """Without corpus marks the question text is used."""
        updated = attach_generic_scheme(make_match(), "Question text (Total 9 marks)")
        assert len(updated.marking_scheme.question_scheme.marks) == 12 * 3 + 3

    def test_is_generic_when_corpus_scheme_then_false(self):
        """Published schemes are not generic."""
        assert not is_generic_scheme(make_match(scheme=simple_scheme("M1")).marking_scheme)
