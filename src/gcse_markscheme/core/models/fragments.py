"""
Module: fragments

Purpose:
    QueryFragment - one piece of extracted student work handed to the
    engine by the classification step.

Key Classes:
    - QueryFragment: Question-number hint, text, student work, page index

Used By:
    - orchestration.grouping: Grouping and anchor construction
    - orchestration.service: Submission entry point
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class QueryFragment:
    """
    One extracted question fragment (immutable).

    Attributes:
        text: Question text as read from the page
        question_number: Question-number hint ("3", "3b"), if read
        student_work: The student's written working, if separated
        source_page_index: Page the fragment was read from
        parent_text: Parent question text supplied by classification, if any

    Example:
        >>> QueryFragment("Complete the diagram.", question_number="7b")
        QueryFragment(7b, 'Complete the diagram.')
    """
    text: str
    question_number: Optional[str] = None
    student_work: Optional[str] = None
    source_page_index: int = 0
    parent_text: Optional[str] = None

    def __post_init__(self) -> None:
        if self.source_page_index < 0:
            raise ValueError(f"Page index cannot be negative: {self.source_page_index}")

    def with_text(self, text: str) -> QueryFragment:
        """Copy of this fragment with different text."""
        return replace(self, text=text)

    @classmethod
    def from_dict(cls, data: dict) -> QueryFragment:
        """Build from a classification payload (camelCase or snake_case keys)."""
        return cls(
            text=data.get("text") or "",
            question_number=data.get("question_number") or data.get("questionNumber"),
            student_work=data.get("student_work") or data.get("studentWork"),
            source_page_index=int(
                data.get("source_page_index", data.get("sourceImageIndex", 0)) or 0
            ),
            parent_text=data.get("parent_text") or data.get("parentText"),
        )

    def __repr__(self) -> str:
        preview = self.text[:30] + ("..." if len(self.text) > 30 else "")
        return f"QueryFragment({self.question_number or '-'}, {preview!r})"
