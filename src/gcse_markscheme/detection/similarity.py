"""
Module: detection.similarity

Purpose:
    Pure scoring primitives for question detection: normalized bigram
    (Dice) similarity with containment boosting, keyword extraction, and
    the two hybrid formulas combining text, numeric and semantic signals.

Key Functions:
    - normalized_similarity(): Dice coefficient over normalized texts
    - keywords(): Semantic keyword set of a text
    - numeric_tokens(): Decimal numbers appearing in a text
    - zone_hybrid_score(): Lenient score for locating zones on a page
    - question_hybrid_score(): Strict score for question identity
    - hybrid_score(): Dispatch by ScoreMode

Key Classes:
    - ScoreMode: ZONE or QUESTION
    - HybridScore: total + individual signals

Dependencies:
    - gcse_markscheme.common.text: Comparison normalization
    - gcse_markscheme.common.thresholds: Weights

Used By:
    - detection.scoring: Candidate scoring
    - detection.schemes: Exam details similarity

No I/O, no shared state: safe to call from scoring worker threads.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import FrozenSet, Optional

from gcse_markscheme.common.text import normalize_text_for_comparison
from gcse_markscheme.common.thresholds import SIMILARITY_THRESHOLDS, SimilarityThresholds

_NUMBER = re.compile(r"\d+(?:\.\d+)?")
_BRACKET_BLOCK = re.compile(r"\[.*?\]", re.DOTALL)
_LATEX_COMMAND = re.compile(r"\\([a-zA-Z]+)")
_NON_WORD = re.compile(r"[^\w\s]")

# LaTeX commands that carry meaning -> the word a question would use
LATEX_KEYWORDS = {
    "frac": "fraction",
    "dfrac": "fraction",
    "sqrt": "root",
    "times": "multiply",
    "div": "divide",
    "pi": "pi",
    "angle": "angle",
    "theta": "angle",
    "triangle": "triangle",
    "overrightarrow": "vector",
    "vec": "vector",
    "leq": "inequality",
    "geq": "inequality",
    "le": "inequality",
    "ge": "inequality",
    "neq": "inequality",
    "sin": "trigonometry",
    "cos": "trigonometry",
    "tan": "trigonometry",
    "circ": "degrees",
    "int": "integral",
    "sum": "summation",
    "parallel": "parallel",
    "perp": "perpendicular",
}

STOP_WORDS = frozenset({
    "about", "above", "after", "also", "answer", "answers", "below", "both",
    "calculate", "could", "does", "each", "find", "from", "give", "given",
    "have", "here", "into", "mark", "marks", "more", "must", "only", "other",
    "question", "shown", "show", "some", "such", "than", "that", "their",
    "them", "then", "there", "these", "they", "this", "total", "value",
    "what", "when", "where", "which", "will", "with", "work", "write",
    "your",
})


class ScoreMode(Enum):
    """Which hybrid formula to apply."""
    ZONE = "zone"
    QUESTION = "question"


@dataclass(frozen=True, slots=True)
class HybridScore:
    """
    Combined score and its signals.

    Attributes:
        total: Weighted (and possibly penalised) score
        text: Normalized text similarity
        numeric: Numeric fingerprint overlap
        semantic: Keyword sets intersect, or too sparse to judge
    """
    total: float
    text: float
    numeric: float
    semantic: bool


# ─────────────────────────────────────────────────────────────────────────────
# Text similarity
# ─────────────────────────────────────────────────────────────────────────────

@lru_cache(maxsize=8192)
def _normalized(text: str, strip_numbers: bool) -> str:
    return normalize_text_for_comparison(text, strip_numbers=strip_numbers)


def _bigrams(text: str) -> FrozenSet[str]:
    return frozenset(text[i:i + 2] for i in range(len(text) - 1))


def normalized_similarity(
    a: Optional[str],
    b: Optional[str],
    *,
    strict: bool = False,
    strip_numbers: bool = False,
    thresholds: SimilarityThresholds = SIMILARITY_THRESHOLDS,
) -> float:
    """
    Bigram Dice similarity of two texts after normalization.

    Args:
        a, b: Texts to compare
        strict: Disable the containment boost
        strip_numbers: Drop digits before comparing
        thresholds: Similarity thresholds

    Returns:
        Score in [0, 1]: 1.0 for identical normalized texts, 0.0 when
        either normalized text is shorter than 2 characters.

    Example:
        >>> normalized_similarity("Solve 2x + 3 = 7", "solve 2x+3=7")
        1.0
        >>> normalized_similarity("x" * 15, "x" * 15 + " extra context words here") >= 0.85
        True
    """
    text_a = _normalized(a or "", strip_numbers)
    text_b = _normalized(b or "", strip_numbers)

    if text_a == text_b:
        return 1.0
    if len(text_a) < thresholds.min_normalized_length or len(text_b) < thresholds.min_normalized_length:
        return 0.0

    bigrams_a = _bigrams(text_a)
    bigrams_b = _bigrams(text_b)
    dice = 2.0 * len(bigrams_a & bigrams_b) / (len(bigrams_a) + len(bigrams_b))

    if (
        not strict
        and len(text_a) > thresholds.containment_min_length
        and len(text_b) > thresholds.containment_min_length
        and (text_a in text_b or text_b in text_a)
    ):
        return max(dice, thresholds.containment_floor)
    return dice


# ─────────────────────────────────────────────────────────────────────────────
# Signals
# ─────────────────────────────────────────────────────────────────────────────

def _latex_to_word(match: re.Match) -> str:
    word = LATEX_KEYWORDS.get(match.group(1).lower())
    return f" {word} " if word else " "


def keywords(text: Optional[str], thresholds: SimilarityThresholds = SIMILARITY_THRESHOLDS) -> FrozenSet[str]:
    """
    Semantic keyword set of a text.

    LaTeX commands are mapped to words (``\\frac`` -> "fraction"), other
    commands and punctuation are dropped, and short tokens and stop
    words are discarded.

    Example:
        >>> sorted(keywords("Simplify \\\\frac{3}{4} of the triangle"))
        ['fraction', 'simplify', 'triangle']
    """
    if not text:
        return frozenset()
    lowered = _LATEX_COMMAND.sub(_latex_to_word, text).lower()
    lowered = _NON_WORD.sub(" ", lowered.replace("\\", " "))
    return frozenset(
        token
        for token in lowered.split()
        if len(token) >= thresholds.min_keyword_length and token not in STOP_WORDS
    )


def numeric_tokens(text: Optional[str], ignore_brackets: bool = False) -> FrozenSet[str]:
    """Decimal numbers in a text; ``[...]`` blocks are skipped when requested."""
    if not text:
        return frozenset()
    if ignore_brackets:
        text = _BRACKET_BLOCK.sub("", text)
    return frozenset(_NUMBER.findall(text))


def semantic_check(
    query: str,
    candidate: str,
    thresholds: SimilarityThresholds = SIMILARITY_THRESHOLDS,
) -> bool:
    """True when keyword sets intersect, or either is too sparse to judge."""
    query_words = keywords(query, thresholds)
    candidate_words = keywords(candidate, thresholds)
    if len(query_words) < thresholds.min_semantic_keywords or len(candidate_words) < thresholds.min_semantic_keywords:
        return True
    return not query_words.isdisjoint(candidate_words)


# ─────────────────────────────────────────────────────────────────────────────
# Hybrid scores
# ─────────────────────────────────────────────────────────────────────────────

def zone_hybrid_score(
    query: str,
    candidate: str,
    thresholds: SimilarityThresholds = SIMILARITY_THRESHOLDS,
) -> HybridScore:
    """
    Lenient score used to locate question zones on a page.

    Numeric overlap is symmetric (|Q ∩ C| / max(|Q|, |C|)) and the absence
    of numbers on both sides counts as full agreement.
    """
    text = normalized_similarity(query, candidate, thresholds=thresholds)
    semantic = semantic_check(query, candidate, thresholds)

    query_nums = numeric_tokens(query)
    candidate_nums = numeric_tokens(candidate)
    if query_nums and candidate_nums:
        numeric = len(query_nums & candidate_nums) / max(len(query_nums), len(candidate_nums))
    elif not query_nums and not candidate_nums:
        numeric = 1.0
    else:
        numeric = 0.0

    if semantic and text > thresholds.zone_boost_text_min:
        total = text * thresholds.zone_boosted_text_weight + numeric * thresholds.zone_boosted_numeric_weight
    else:
        total = text * thresholds.zone_text_weight + numeric * thresholds.zone_numeric_weight
    return HybridScore(total=total, text=text, numeric=numeric, semantic=semantic)


def question_hybrid_score(
    query: str,
    candidate: str,
    rescue_mode: bool = False,
    thresholds: SimilarityThresholds = SIMILARITY_THRESHOLDS,
) -> HybridScore:
    """
    Strict score used to decide question identity.

    Numeric overlap is measured against the candidate's numbers (diagram
    descriptions in ``[...]`` ignored); no numbers on either side is only
    neutral evidence. Outside rescue mode, a candidate that fails the
    semantic check with text below 0.8 keeps only a fifth of its score,
    so a question sharing numbers with an unrelated one cannot win on
    numbers alone.

    Example:
        >>> s = question_hybrid_score("Find x when 2x+3=7", "Find x when 2x+3=7")
        >>> round(s.total, 2)
        1.0
    """
    text = normalized_similarity(query, candidate, thresholds=thresholds)
    semantic = semantic_check(query, candidate, thresholds)

    query_nums = numeric_tokens(query)
    candidate_nums = numeric_tokens(candidate, ignore_brackets=True)
    if query_nums and candidate_nums:
        numeric = len(query_nums & candidate_nums) / len(candidate_nums)
    elif not query_nums and not candidate_nums:
        numeric = thresholds.question_neutral_numeric
    else:
        numeric = 0.0

    total = text * thresholds.question_text_weight + numeric * thresholds.question_numeric_weight
    if not rescue_mode and not semantic and text < thresholds.semantic_penalty_text_max:
        total *= thresholds.semantic_penalty_multiplier
    return HybridScore(total=total, text=text, numeric=numeric, semantic=semantic)


def hybrid_score(
    query: str,
    candidate: str,
    mode: ScoreMode = ScoreMode.QUESTION,
    rescue_mode: bool = False,
    thresholds: SimilarityThresholds = SIMILARITY_THRESHOLDS,
) -> HybridScore:
    """Score ``query`` against ``candidate`` with the formula for ``mode``."""
    if mode is ScoreMode.ZONE:
        return zone_hybrid_score(query, candidate, thresholds)
    return question_hybrid_score(query, candidate, rescue_mode, thresholds)
