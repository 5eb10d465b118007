"""
Module: loading.parser

Purpose:
    Single ingestion step from raw corpus documents to the canonical
    models. Raw papers and schemes come in several shapes (questions as
    arrays or keyed maps, camelCase or snake_case, several names for the
    same field); this module absorbs all of that so detection only ever
    sees CorpusQuestion / CorpusSubQuestion / QuestionScheme.

Key Functions:
    - parse_paper(): Raw paper document -> CorpusPaper
    - parse_scheme(): Raw scheme document -> MarkingSchemeEntry
    - parse_question_scheme(): Raw per-question scheme -> QuestionScheme
    - parse_mark_point(): Raw mark dict -> MarkPoint

Key Classes:
    - ParseError: Document is not usable at all

Dependencies:
    - gcse_markscheme.core.models: Canonical models
    - gcse_markscheme.core.errors: DataIntegrityError

Used By:
    - loading.loader: JSONL and in-memory corpus sources
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from gcse_markscheme.common.text import normalize_sub_part, split_question_number
from gcse_markscheme.core.errors import DataIntegrityError
from gcse_markscheme.core.models import (
    CorpusPaper,
    CorpusQuestion,
    CorpusSubQuestion,
    ExamDetails,
    MarkingSchemeEntry,
    MarkPoint,
    QuestionScheme,
    mark_value_from_code,
)

logger = logging.getLogger(__name__)


class ParseError(Exception):
    """Error parsing a corpus document."""
    pass


# Field aliases, first match wins
_QUESTION_NUMBER_KEYS = ("question_number", "questionNumber", "number")
_TEXT_KEYS = ("question_text", "text", "question", "sub_question")
_SUB_QUESTION_KEYS = ("sub_questions", "subQuestions", "parts")
_PART_LABEL_KEYS = ("question_part", "part", "label", "sub_question_number")


def _first(data: Mapping[str, Any], keys: Iterable[str], default: Any = None) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return default


def _as_int(value: Any, field_name: str) -> int:
    if value in (None, ""):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ParseError(f"Invalid integer for {field_name}: {value!r}") from e


def _as_text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def _sub_list(data: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Nested sub-questions as a list, whether stored as an array or a labelled map."""
    raw = _first(data, _SUB_QUESTION_KEYS, [])
    if isinstance(raw, Mapping):
        return [{"question_part": label, **sub} for label, sub in raw.items()]
    if not isinstance(raw, list):
        raise ParseError(f"Sub-questions must be an array or object, got {type(raw).__name__}")
    return list(raw)


def _require_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ParseError(f"{what} must be an object, got {type(data).__name__}")
    return data


# ─────────────────────────────────────────────────────────────────────────────
# Papers
# ─────────────────────────────────────────────────────────────────────────────

def _parse_sub_question(data: Any, owner: str) -> CorpusSubQuestion:
    data = _require_mapping(data, f"Sub-question of {owner}")
    label = normalize_sub_part(_as_text(_first(data, _PART_LABEL_KEYS)))
    if not label:
        raise DataIntegrityError(
            f"Sub-question of {owner} is missing question_part: {sorted(data.keys())}"
        )
    children = tuple(_parse_sub_question(child, f"{owner}{label}") for child in _sub_list(data))
    return CorpusSubQuestion(
        label=label,
        text=_as_text(_first(data, _TEXT_KEYS)),
        marks=_as_int(data.get("marks"), f"{owner}{label}.marks"),
        children=children,
    )


def _parse_question(data: Any, number: Optional[str] = None) -> CorpusQuestion:
    data = _require_mapping(data, "Question")
    number = _as_text(number or _first(data, _QUESTION_NUMBER_KEYS))
    if not number:
        raise DataIntegrityError(f"Corpus question is missing its number: {sorted(data.keys())}")
    subs = tuple(_parse_sub_question(sub, number) for sub in _sub_list(data))
    return CorpusQuestion(
        number=number,
        text=_as_text(_first(data, _TEXT_KEYS)),
        marks=_as_int(data.get("marks"), f"question {number}.marks"),
        sub_questions=subs,
    )


def _fold_flat_keys(questions: Mapping[str, Any]) -> List[Tuple[str, Dict[str, Any]]]:
    """
    Turn a keyed question map into ordered (number, data) pairs.

    Flat sub-question keys ("12i" alongside or instead of "12") are folded
    into their parent's sub-question list.
    """
    folded: Dict[str, Dict[str, Any]] = {}
    for key, value in questions.items():
        value = _require_mapping(value, f"Question {key!r}")
        base, part = split_question_number(str(key))
        if not base:
            raise DataIntegrityError(f"Question key without a number: {key!r}")
        parent = folded.setdefault(base, {"sub_questions": []})
        if part:
            parent["sub_questions"].append({"question_part": part, **value})
            continue
        flat_subs = parent["sub_questions"]
        parent.update({k: v for k, v in value.items() if k not in _SUB_QUESTION_KEYS})
        parent["sub_questions"] = _sub_list(value) + flat_subs
    return list(folded.items())


def _paper_metadata(data: Mapping[str, Any]) -> Dict[str, str]:
    meta = data.get("metadata") or data
    return {
        "board": _as_text(_first(meta, ("exam_board", "board"))),
        "qualification": _as_text(_first(meta, ("qualification", "subject"))),
        "paper_code": _as_text(_first(meta, ("exam_code", "paper_code", "paperCode", "code"))),
        "exam_series": _as_text(_first(meta, ("exam_series", "examSeries", "series", "date"))),
        "tier": _as_text(meta.get("tier")),
        "subject": _as_text(_first(meta, ("subject", "qualification"))),
    }


def parse_paper(data: Mapping[str, Any]) -> CorpusPaper:
    """
    Parse a raw exam paper document.

    Metadata may live under ``metadata`` or at the top level. Questions may
    be an array of question objects or a map keyed by question number;
    sub-questions may be nested arrays, nested maps or flat keys ("5a").

    Args:
        data: Raw paper document

    Returns:
        CorpusPaper

    Raises:
        ParseError: If the document is not an object or has no usable id
        DataIntegrityError: If a question or sub-question lacks its identifier

    Example:
        >>> paper = parse_paper({
        ...     "id": "p1",
        ...     "metadata": {"exam_board": "AQA", "exam_code": "8300/1H",
        ...                  "exam_series": "June 2022", "qualification": "GCSE Mathematics"},
        ...     "questions": {"1": {"text": "Solve", "marks": 2}},
        ... })
        >>> paper.questions[0].number
        '1'
    """
    if not isinstance(data, Mapping):
        raise ParseError(f"Paper document must be an object, got {type(data).__name__}")
    meta = _paper_metadata(data)
    paper_id = _as_text(_first(data, ("id", "_id", "paper_id")))
    if not paper_id:
        paper_id = " ".join(v for v in (meta["paper_code"], meta["exam_series"], meta["tier"]) if v)
    if not paper_id:
        raise ParseError("Paper document has neither an id nor identifying metadata")

    raw_questions = data.get("questions") or []
    if isinstance(raw_questions, Mapping):
        questions = tuple(_parse_question(value, number) for number, value in _fold_flat_keys(raw_questions))
    else:
        questions = tuple(_parse_question(item) for item in raw_questions)
    if not questions:
        logger.warning(f"Paper {paper_id} has no questions")

    return CorpusPaper(paper_id=paper_id, questions=questions, **meta)


# ─────────────────────────────────────────────────────────────────────────────
# Marking schemes
# ─────────────────────────────────────────────────────────────────────────────

def parse_mark_point(data: Any) -> MarkPoint:
    """
    Parse one raw mark point.

    Accepts ``{"mark": "M1", "answer": ..., "comments": ...}`` style dicts
    (``code``/``guidance``/``value`` also accepted) or a bare code string.
    The value is taken from ``value`` when present, otherwise inferred
    from the code.
    """
    if isinstance(data, str):
        return MarkPoint(code=data.strip(), value=mark_value_from_code(data))
    if not isinstance(data, Mapping):
        raise ParseError(f"Mark point must be an object or code string, got {data!r}")
    code = _as_text(_first(data, ("mark", "code")))
    value = data.get("value")
    return MarkPoint(
        code=code,
        value=_as_int(value, f"mark {code}.value") if value not in (None, "") else mark_value_from_code(code),
        answer=_as_text(data.get("answer")),
        guidance=_as_text(_first(data, ("guidance", "comments", "notes"))),
    )


def parse_question_scheme(data: Any) -> QuestionScheme:
    """Parse one raw per-question scheme (an object or a bare list of marks)."""
    if isinstance(data, list):
        return QuestionScheme(marks=tuple(parse_mark_point(m) for m in data))
    if not isinstance(data, Mapping):
        raise ParseError(f"Question scheme must be an object or list, got {type(data).__name__}")
    raw_marks = _first(data, ("marks", "questionMarks", "mark_points"), [])
    if isinstance(raw_marks, Mapping):
        raw_marks = _first(raw_marks, ("marks",), [])
    return QuestionScheme(
        marks=tuple(parse_mark_point(m) for m in raw_marks),
        answer=_as_text(_first(data, ("answer", "questionLevelAnswer"))),
        guidance=_as_text(_first(data, ("guidance", "comments"))),
    )


def _exam_details(data: Mapping[str, Any]) -> ExamDetails:
    details = data.get("examDetails") or data.get("exam_details") or data.get("metadata") or {}
    return ExamDetails(
        board=_as_text(_first(details, ("board", "exam_board"))),
        qualification=_as_text(_first(details, ("qualification", "subject"))),
        paper_code=_as_text(_first(details, ("paperCode", "paper_code", "exam_code"))),
        exam_series=_as_text(_first(details, ("exam_series", "examSeries", "date"))),
        tier=_as_text(details.get("tier")),
        subject=_as_text(_first(details, ("subject", "qualification"))),
    )


def parse_scheme(data: Mapping[str, Any]) -> MarkingSchemeEntry:
    """
    Parse a raw marking scheme document.

    Question schemes are kept under their flat keys ("2", "2a", "2aalt");
    resolution of alternatives and composites happens at lookup time.

    Raises:
        ParseError: If the document is not an object or has no id
    """
    if not isinstance(data, Mapping):
        raise ParseError(f"Scheme document must be an object, got {type(data).__name__}")
    details = _exam_details(data)
    scheme_id = _as_text(_first(data, ("id", "_id", "scheme_id")))
    if not scheme_id:
        scheme_id = " ".join(v for v in (details.paper_code, details.exam_series, details.tier) if v)
    if not scheme_id:
        raise ParseError("Scheme document has neither an id nor exam details")

    raw_questions = data.get("questions") or {}
    if isinstance(raw_questions, list):
        keyed = {}
        for item in raw_questions:
            item = _require_mapping(item, f"Scheme {scheme_id} question")
            number = _as_text(_first(item, _QUESTION_NUMBER_KEYS))
            if not number:
                raise ParseError(f"Scheme {scheme_id} has a question without a number")
            keyed[number] = item
        raw_questions = keyed

    questions = {
        _as_text(key).lower(): parse_question_scheme(value)
        for key, value in raw_questions.items()
    }
    total_marks = _first(data, ("totalMarks", "total_marks"), 0)
    total_questions = _first(data, ("totalQuestions", "total_questions"), len(questions))
    return MarkingSchemeEntry(
        scheme_id=scheme_id,
        exam_details=details,
        questions=questions,
        general_guidance=_as_text(_first(data, ("generalMarkingGuidance", "general_guidance"))),
        total_questions=_as_int(total_questions, "total_questions"),
        total_marks=_as_int(total_marks, "total_marks"),
    )
