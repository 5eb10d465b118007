"""
Module: common.text

Purpose:
    Text normalization helpers shared by detection and orchestration.
    Everything here is pure string manipulation: OCR/LaTeX clean-up for
    similarity comparison, question-number parsing and exam metadata
    formatting.

Key Functions:
    - normalize_text_for_comparison(): Canonical comparison form of a text
    - base_question_number(): Leading digit run of a question number
    - normalize_sub_part(): "(ii)" -> "ii"
    - split_question_number(): "12(a)" -> ("12", "a")
    - is_sub_question(): True for "3b", "12(ii)"
    - sanitize_question_hint(): Clean up OCR'd question-number hints
    - normalize_exam_series(): "JUN2023" -> "June 2023", May/Summer -> June
    - short_subject_name(): "MATHEMATICS" -> "MATHS"

Dependencies:
    - re (std)

Used By:
    - detection.similarity: Text similarity
    - detection.pool: Paper-hint matching
    - orchestration.grouping: Fragment grouping
"""

from __future__ import annotations

import re
from typing import Optional, Tuple

# ─────────────────────────────────────────────────────────────────────────────
# Comparison normalization
# ─────────────────────────────────────────────────────────────────────────────

_NEWLINE_FRACTION = re.compile(r"(^|\s)(\d+)\n(\d+)(?=\s|$|[!?.,])")
_BARE_NEWLINE_FRACTION = re.compile(r"\n(\d+)\n(\d+)")
_BRACKET_BLOCK = re.compile(r"\[.*?\]", re.DOTALL)
_MIXED_FRACTION = re.compile(r"(\d+)\\frac\{([^}]+)\}\{([^}]+)\}")
_FRACTION = re.compile(r"\\frac\{([^}]+)\}\{([^}]+)\}")
_TEXT_WRAPPERS = re.compile(r"\\(?:mathrm|mathbf|mathit|text)\{([^}]+)\}")

_QUESTION_PREFIXES = (
    re.compile(r"^q\d+[a-z]?\s+", re.IGNORECASE),
    re.compile(r"^question\s+\d+[a-z]?\s+", re.IGNORECASE),
    re.compile(r"^\d+[a-z]?\s*\([a-z]+\)\s*", re.IGNORECASE),
)
_LEADING_NUMBER = re.compile(r"^\d+[a-z]?\s+(?=[a-z])", re.IGNORECASE)
_QUESTION_WORDS = re.compile(
    r"^(work|find|calculate|simplify|solve|show|prove|write|draw|explain|"
    r"state|give|describe|complete|fill|here|the|this|a\s|an\s|is|are|was|were)",
    re.IGNORECASE,
)
_PUNCTUATION = re.compile(r"[^\w\s/:]")
_WHITESPACE = re.compile(r"\s+")
_DIGITS = re.compile(r"\d+")


def _strip_question_prefix(text: str) -> str:
    for pattern in _QUESTION_PREFIXES:
        text = pattern.sub("", text, count=1)
    leading = _LEADING_NUMBER.match(text)
    if leading and _QUESTION_WORDS.match(text[leading.end():]):
        text = text[leading.end():]
    return text


def normalize_text_for_comparison(text: Optional[str], strip_numbers: bool = False) -> str:
    """
    Reduce a text to its canonical comparison form.

    Handles the OCR and LaTeX artifacts that differ between a student's
    scanned text and the corpus text of the same question:
    newline-separated fractions, ``[diagram]`` descriptions, LaTeX
    delimiters and commands, leading question-number prefixes,
    punctuation and spacing. ``/`` and ``:`` are preserved for fractions
    and ratios. All whitespace is removed, since OCR spacing is unreliable.

    Args:
        text: Raw text (may be None)
        strip_numbers: Also drop every digit

    Returns:
        Normalized text, empty string for empty input

    Example:
        >>> normalize_text_for_comparison("$$y = x^2 - 4$$")
        'yx24'
        >>> normalize_text_for_comparison("Q3 Work out \\\\frac{1}{5} of 20")
        'workout1/5of20'
    """
    if not text:
        return ""

    normalized = _NEWLINE_FRACTION.sub(r"\1\2/\3", text)
    normalized = _BARE_NEWLINE_FRACTION.sub(r" \1/\2 ", normalized)
    normalized = _BRACKET_BLOCK.sub("", normalized)
    normalized = normalized.replace("\\(", "").replace("\\)", "")
    normalized = normalized.replace("\\[", "").replace("\\]", "")
    normalized = _MIXED_FRACTION.sub(r"\1 \2/\3", normalized)
    normalized = _FRACTION.sub(r"\1/\2", normalized)
    normalized = normalized.replace("\\times", "x").replace("\\cdot", "*")
    normalized = _TEXT_WRAPPERS.sub(r"\1", normalized)
    normalized = normalized.replace("\\", "")
    normalized = normalized.replace("{", "").replace("}", "").replace("$", "")

    normalized = _strip_question_prefix(normalized.strip())

    normalized = normalized.lower()
    normalized = _PUNCTUATION.sub("", normalized)
    normalized = _WHITESPACE.sub("", normalized)
    if "frac" in normalized:
        normalized = normalized.replace("-frac", "frac")
    if strip_numbers:
        normalized = _DIGITS.sub("", normalized)
    return normalized


# ─────────────────────────────────────────────────────────────────────────────
# Question numbers
# ─────────────────────────────────────────────────────────────────────────────

_BASE_NUMBER = re.compile(r"\d+")
_QUESTION_NUMBER = re.compile(r"^(\d+)\s*([a-z()\s]*)$", re.IGNORECASE)
_HINT_PREFIX = re.compile(r"^(?:question|qu|q)\.?\s*", re.IGNORECASE)
_HINT_TYPOS = {"l": "1", "i": "1", "|": "1"}


def base_question_number(question_number: Optional[str]) -> str:
    """
    Extract the leading digit run of a question number.

    A leading "Q"/"Question" prefix is tolerated.

    Example:
        >>> base_question_number("12ii")
        '12'
        >>> base_question_number("Q12ii")
        '12'
        >>> base_question_number(None)
        ''
    """
    if not question_number:
        return ""
    cleaned = _HINT_PREFIX.sub("", str(question_number).strip())
    match = _BASE_NUMBER.match(cleaned)
    return match.group(0) if match else ""


def normalize_sub_part(part: Optional[str]) -> str:
    """Normalize a sub-question label: strip parentheses/spaces, lowercase."""
    if not part:
        return ""
    return re.sub(r"[()\s]", "", str(part)).lower()


def split_question_number(question_number: Optional[str]) -> Tuple[str, str]:
    """
    Split a question number into its base number and sub-part.

    Example:
        >>> split_question_number("12(a)(ii)")
        ('12', 'aii')
        >>> split_question_number("5")
        ('5', '')
    """
    if not question_number:
        return "", ""
    cleaned = _HINT_PREFIX.sub("", str(question_number).strip())
    match = _QUESTION_NUMBER.match(cleaned)
    if not match:
        return base_question_number(cleaned), ""
    return match.group(1), normalize_sub_part(match.group(2))


def is_sub_question(question_number: Optional[str]) -> bool:
    """True when the question number carries a sub-part label."""
    return bool(split_question_number(question_number)[1])


def strip_leading_zeros(number: str) -> str:
    """'04' -> '4', '0' -> '0'."""
    stripped = number.lstrip("0")
    return stripped or ("0" if number else "")


def sanitize_question_hint(hint: Optional[str]) -> Optional[str]:
    """
    Clean up a question-number hint read by OCR.

    Strips whitespace and "Q"/"Question" prefixes, and maps
    common single-character misreads ("l", "I", "|") to the digit they
    stand for. Returns None when nothing usable remains.

    Example:
        >>> sanitize_question_hint(" Q 3b ")
        '3b'
        >>> sanitize_question_hint("l")
        '1'
        >>> sanitize_question_hint("  ") is None
        True
    """
    if hint is None:
        return None
    cleaned = str(hint).strip()
    if not cleaned:
        return None
    if cleaned.lower() in _HINT_TYPOS:
        return _HINT_TYPOS[cleaned.lower()]
    cleaned = _HINT_PREFIX.sub("", cleaned)
    cleaned = cleaned.strip(" .:")
    if cleaned and cleaned[0] in "l|" and cleaned[1:2].isdigit():
        cleaned = "1" + cleaned[1:]
    return cleaned or None


# ─────────────────────────────────────────────────────────────────────────────
# Exam metadata
# ─────────────────────────────────────────────────────────────────────────────

_MONTHS = {
    "JAN": "January", "FEB": "February", "MAR": "March", "APR": "April",
    "MAY": "May", "JUN": "June", "JUL": "July", "AUG": "August",
    "SEP": "September", "OCT": "October", "NOV": "November", "DEC": "December",
}
_COMPACT_SERIES = re.compile(r"^([A-Za-z]{3})[A-Za-z]*\s*(\d{4})$")
_SUMMER_WORDS = re.compile(r"\b(?:may|summer)\b", re.IGNORECASE)
_SEPARATORS = re.compile(r"[-,/]")

_SUBJECT_SHORT_NAMES = {
    "MATHEMATICS": "MATHS",
    "PHYSICS": "PHYSICS",
    "CHEMISTRY": "CHEMISTRY",
    "BIOLOGY": "BIOLOGY",
    "ENGLISH": "ENGLISH",
    "ENGLISH LITERATURE": "ENG LIT",
    "HISTORY": "HISTORY",
    "GEOGRAPHY": "GEOGRAPHY",
    "COMPUTER SCIENCE": "COMP SCI",
    "ECONOMICS": "ECONOMICS",
    "BUSINESS STUDIES": "BUSINESS",
    "DESIGN AND TECHNOLOGY": "D&T",
    "PHYSICAL EDUCATION": "PE",
    "CHEM": "CHEMISTRY",
    "PHYS": "PHYSICS",
}

_TIER_NAMES = {"H": "Higher Tier", "F": "Foundation Tier"}

_QUALIFICATION_WORDS = re.compile(
    r"\b(?:gcse|igcse|a-level|a level|as-level|as level|higher|foundation|tier)\b",
    re.IGNORECASE,
)


def normalize_exam_series(series: Optional[str]) -> str:
    """
    Expand compact series codes and unify summer naming.

    Summer sittings are labelled inconsistently ("May 2023", "Summer 2023",
    "June 2023") across boards; they are all treated as June.

    Example:
        >>> normalize_exam_series("JUN2023")
        'June 2023'
        >>> normalize_exam_series("May 2024")
        'June 2024'
    """
    if not series:
        return ""
    text = str(series).strip()
    compact = _COMPACT_SERIES.match(text)
    if compact and compact.group(1).upper() in _MONTHS:
        text = f"{_MONTHS[compact.group(1).upper()]} {compact.group(2)}"
    return _SUMMER_WORDS.sub("June", text)


def normalize_metadata_text(text: Optional[str]) -> str:
    """Lowercase metadata text with separators as spaces and May/Summer -> June."""
    if not text:
        return ""
    spaced = _SEPARATORS.sub(" ", str(text))
    spaced = _SUMMER_WORDS.sub("June", spaced)
    return _WHITESPACE.sub(" ", spaced).strip().lower()


def tier_display(tier: Optional[str]) -> str:
    """'H' -> 'Higher Tier', 'F' -> 'Foundation Tier', others unchanged."""
    if not tier:
        return ""
    return _TIER_NAMES.get(tier.strip().upper(), tier.strip())


def short_subject_name(qualification: Optional[str]) -> str:
    """Short display name for a subject ("MATHEMATICS" -> "MATHS")."""
    if not qualification:
        return ""
    return _SUBJECT_SHORT_NAMES.get(qualification.strip().upper(), qualification.strip())


def extract_subject(qualification: Optional[str]) -> str:
    """
    Strip level and tier words from a qualification string.

    Example:
        >>> extract_subject("GCSE Mathematics Higher")
        'mathematics'
    """
    if not qualification:
        return ""
    stripped = _QUALIFICATION_WORDS.sub(" ", str(qualification))
    return _WHITESPACE.sub(" ", stripped).strip().lower()
