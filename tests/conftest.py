import pytest
import sys
from pathlib import Path

# Add src to sys.path so we can import gcse_markscheme
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if SRC_PATH.as_posix() not in sys.path:
    sys.path.insert(0, SRC_PATH.as_posix())

from gcse_markscheme.core.models import (
    DetectionResult,
    ExamDetails,
    ExamPaperMatch,
    HintMetadata,
    MarkPoint,
    QuestionScheme,
    ResolvedScheme,
)
from gcse_markscheme.loading import CorpusCache, InMemoryCorpusSource


# ─────────────────────────────────────────────────────────────────────────────
# Raw corpus documents
# ─────────────────────────────────────────────────────────────────────────────

PAPER_1H = {
    "id": "edexcel-1ma1-1h-jun2023",
    "metadata": {
        "exam_board": "Pearson Edexcel",
        "qualification": "GCSE Mathematics",
        "exam_code": "1MA1/1H",
        "exam_series": "June 2023",
        "tier": "H",
    },
    "questions": [
        {"question_number": "1", "question_text": "Work out 3/4 + 2/5 giving your answer as a fraction.", "marks": 2},
        {"question_number": "4", "question_text": "Find the value of x when 2x+3=7", "marks": 2},
        {
            "question_number": "5",
            "question_text": "Here is a right-angled triangle ABC with sides 6 cm and 8 cm.",
            "marks": 4,
            "sub_questions": [
                {"question_part": "a", "question_text": "Work out the length of the hypotenuse AC.", "marks": 2},
                {"question_part": "b", "question_text": "Work out the area of the triangle ABC.", "marks": 2},
            ],
        },
    ],
}

PAPER_2H = {
    "id": "edexcel-1ma1-2h-jun2023",
    "metadata": {
        "exam_board": "Pearson Edexcel",
        "qualification": "GCSE Mathematics",
        "exam_code": "1MA1/2H",
        "exam_series": "June 2023",
        "tier": "H",
    },
    "questions": [
        {"question_number": "4", "question_text": "Expand and simplify (x + 3)(x - 5)", "marks": 2},
        {
            "question_number": "7",
            "question_text": "A bag contains 5 red counters and 3 blue counters. "
                             "Work out the probability of taking a red counter.",
            "marks": 2,
        },
    ],
}

PAPER_AQA = {
    "id": "aqa-8300-1f-nov2022",
    "metadata": {
        "exam_board": "AQA",
        "qualification": "GCSE Mathematics",
        "exam_code": "8300/1F",
        "exam_series": "November 2022",
        "tier": "F",
    },
    "questions": {
        "3": {"text": "Write 0.35 as a percentage.", "marks": 1},
    },
}

SCHEME_1H = {
    "id": "ms-1ma1-1h-jun2023",
    "examDetails": {
        "board": "Pearson Edexcel",
        "qualification": "GCSE Mathematics",
        "paperCode": "1MA1/1H",
        "exam_series": "June 2023",
        "tier": "H",
    },
    "questions": {
        "1": {"marks": [{"mark": "M1", "comments": "common denominator"}, {"mark": "A1", "answer": "23/20"}],
              "answer": "23/20"},
        "4": {"marks": [{"mark": "M1", "comments": "for 2x = 4"}, {"mark": "A1", "answer": "cao"}],
              "answer": "2"},
        "4alt": {"marks": [{"mark": "M1", "comments": "trial and improvement"}, {"mark": "A1"}]},
        "5a": {"marks": [{"mark": "M1", "comments": "6^2 + 8^2"}, {"mark": "A1", "answer": "10"}],
               "answer": "10"},
        "5b": {"marks": [{"mark": "M1", "comments": "1/2 x 6 x 8"}, {"mark": "A1", "answer": "24"}],
               "answer": "24"},
    },
    "generalMarkingGuidance": "Award marks for correct working.",
    "totalMarks": 80,
}

SCHEME_2H = {
    "id": "ms-1ma1-2h-jun2023",
    "examDetails": {
        "board": "Pearson Edexcel",
        "qualification": "GCSE Mathematics",
        "paperCode": "1MA1/2H",
        "exam_series": "June 2023",
        "tier": "H",
    },
    "questions": {
        "4": {"marks": [{"mark": "2", "comments": "M1 for 4 terms with 3 correct, A1 for x^2 - 2x - 15"}],
              "answer": "x^2 - 2x - 15"},
    },
}


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ─────────────────────────────────────────────────────────────────────────────
# Factories
# ─────────────────────────────────────────────────────────────────────────────

def make_match(
    paper_code: str = "1MA1/1H",
    question_number: str = "4",
    board: str = "Pearson Edexcel",
    exam_series: str = "June 2023",
    tier: str = "H",
    confidence: float = 0.95,
    scheme: QuestionScheme = None,
    **kwargs,
) -> ExamPaperMatch:
    """Build an ExamPaperMatch, with a resolved scheme when ``scheme`` is given."""
    title = f"{board} GCSE Mathematics {paper_code} ({exam_series})"
    resolved = None
    if scheme is not None:
        resolved = ResolvedScheme(
            scheme_id=f"ms-{paper_code}",
            exam_details=ExamDetails(board=board, qualification="GCSE Mathematics",
                                     paper_code=paper_code, exam_series=exam_series, tier=tier),
            question_scheme=scheme,
            confidence=1.0,
        )
    return ExamPaperMatch(
        board=board,
        qualification="GCSE Mathematics",
        paper_code=paper_code,
        exam_series=exam_series,
        tier=tier,
        paper_title=kwargs.pop("paper_title", title),
        question_number=question_number,
        confidence=confidence,
        marking_scheme=resolved,
        **kwargs,
    )


def simple_scheme(*codes: str, answer: str = "") -> QuestionScheme:
    return QuestionScheme(marks=tuple(MarkPoint(code=c, guidance=f"{c} step") for c in codes), answer=answer)


def found(match: ExamPaperMatch, matched_papers_count: int = 0) -> DetectionResult:
    return DetectionResult(
        found=True,
        match=match,
        message="matched",
        hint_metadata=HintMetadata(matched_papers_count=matched_papers_count,
                                   matched_paper_title=match.paper_title),
    )


def not_found(matched_papers_count: int = 0) -> DetectionResult:
    return DetectionResult.not_found("no match", HintMetadata(matched_papers_count=matched_papers_count))


class StubDetector:
    """
    Detector returning scripted results.

    ``responses`` maps (question_hint, paper_hint) -> DetectionResult;
    a key with paper_hint None matches any paper hint not listed
    explicitly. Unknown keys return not found.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def detect_question(self, query_text, question_number_hint=None, paper_hint=None):
        self.calls.append((query_text, question_number_hint, paper_hint))
        key = (question_number_hint, paper_hint)
        if key in self.responses:
            return self.responses[key]
        return self.responses.get((question_number_hint, None), not_found())


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def paper_docs():
    return [PAPER_1H, PAPER_2H, PAPER_AQA]


@pytest.fixture
def scheme_docs():
    return [SCHEME_1H, SCHEME_2H]


@pytest.fixture
def corpus_source(paper_docs, scheme_docs):
    return InMemoryCorpusSource(paper_docs, scheme_docs)


@pytest.fixture
def corpus_cache(corpus_source):
    cache = CorpusCache(corpus_source, ttl_seconds=3600)
    yield cache
    cache.close()


@pytest.fixture
def snapshot(corpus_source):
    return corpus_source.load()


@pytest.fixture
def fake_clock():
    return FakeClock()
