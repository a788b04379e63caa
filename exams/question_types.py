# exam_platform/exams/question_types.py
"""
Typed question payloads.

Every question type has exactly one payload class. A payload carries the
stimulus (what the student sees) and the answer key (what only the grader and
the review screen see). The Question model stores the payload as JSON and
turns it back into one of these classes through ``parse_payload``.

Payload JSON shapes:

    multiple_choice  {"options": [{"id": "a", "text": "..."}], "correct_option_id": "a"}
    true_false       {"correct_value": true}
    short_answer     {"accepted_answers": ["Jakarta"], "case_sensitive": false}
    matching         {"left_items": [{"id": "l1", "text": "..."}],
                      "right_items": [{"id": "r1", "text": "..."}],
                      "correct_pairs": {"l1": "r1"}}
    essay            {"min_words": 50, "max_words": 300, "reference_answer": "..."}

Student answer shapes: an option id (str), a bool, a str, a
``{left_id: right_id}`` dict and free text respectively.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Optional, Tuple

from django.db import models


class QuestionType(models.TextChoices):
    MULTIPLE_CHOICE = "multiple_choice", "Multiple Choice"
    TRUE_FALSE = "true_false", "True / False"
    SHORT_ANSWER = "short_answer", "Short Answer"
    MATCHING = "matching", "Matching"
    ESSAY = "essay", "Essay"


MANUAL_TYPES = frozenset({QuestionType.ESSAY})


class PayloadError(ValueError):
    """A question payload or a student answer does not fit its question type."""

    def __init__(self, field_name: str, message: str):
        super().__init__(f"{field_name}: {message}")
        self.field = field_name
        self.message = message


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (dict, list)):
        return len(value) == 0
    return False


# ---------------------------------------------------------
# Helpers
# ---------------------------------------------------------

@dataclass(frozen=True)
class Item:
    """An option of a multiple-choice question or one side of a matching pair."""
    id: str
    text: str

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "text": self.text}


def _require_dict(data: Any, field_name: str = "payload") -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise PayloadError(field_name, "must be an object")
    return data


def _parse_items(raw: Any, field_name: str) -> Tuple[Item, ...]:
    if not isinstance(raw, list) or not raw:
        raise PayloadError(field_name, "must be a non-empty list")
    items = []
    seen = set()
    for idx, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise PayloadError(f"{field_name}[{idx}]", "must be an object with id and text")
        item_id = str(entry.get("id") or "").strip()
        if not item_id:
            raise PayloadError(f"{field_name}[{idx}].id", "is required")
        if item_id in seen:
            raise PayloadError(f"{field_name}[{idx}].id", f"duplicate id {item_id!r}")
        seen.add(item_id)
        items.append(Item(id=item_id, text=str(entry.get("text") or "")))
    return tuple(items)


def _optional_count(data: Dict[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise PayloadError(key, "must be a non-negative integer")
    return value


# ---------------------------------------------------------
# Payload variants
# ---------------------------------------------------------

@dataclass(frozen=True)
class MultipleChoicePayload:
    question_type: ClassVar[str] = QuestionType.MULTIPLE_CHOICE

    options: Tuple[Item, ...]
    correct_option_id: str

    @classmethod
    def from_dict(cls, data: Any) -> "MultipleChoicePayload":
        data = _require_dict(data)
        options = _parse_items(data.get("options"), "options")
        if len(options) < 2:
            raise PayloadError("options", "needs at least two options")
        correct = str(data.get("correct_option_id") or "").strip()
        if correct not in {o.id for o in options}:
            raise PayloadError("correct_option_id", "must be the id of one of the options")
        return cls(options=options, correct_option_id=correct)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "options": [o.to_dict() for o in self.options],
            "correct_option_id": self.correct_option_id,
        }

    def public_dict(self) -> Dict[str, Any]:
        return {"options": [o.to_dict() for o in self.options]}

    def clean_answer(self, value: Any) -> Optional[str]:
        if is_blank(value):
            return None
        if not isinstance(value, (str, int)) or isinstance(value, bool):
            raise PayloadError("answer", "must be an option id")
        value = str(value).strip()
        if value not in {o.id for o in self.options}:
            raise PayloadError("answer", f"unknown option {value!r}")
        return value


@dataclass(frozen=True)
class TrueFalsePayload:
    question_type: ClassVar[str] = QuestionType.TRUE_FALSE

    correct_value: bool

    @classmethod
    def from_dict(cls, data: Any) -> "TrueFalsePayload":
        data = _require_dict(data)
        value = data.get("correct_value")
        if not isinstance(value, bool):
            raise PayloadError("correct_value", "must be true or false")
        return cls(correct_value=value)

    def to_dict(self) -> Dict[str, Any]:
        return {"correct_value": self.correct_value}

    def public_dict(self) -> Dict[str, Any]:
        return {}

    def clean_answer(self, value: Any) -> Optional[bool]:
        if value is None:
            return None
        if not isinstance(value, bool):
            raise PayloadError("answer", "must be true or false")
        return value


@dataclass(frozen=True)
class ShortAnswerPayload:
    question_type: ClassVar[str] = QuestionType.SHORT_ANSWER

    accepted_answers: Tuple[str, ...]
    case_sensitive: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> "ShortAnswerPayload":
        data = _require_dict(data)
        raw = data.get("accepted_answers")
        # a single reference string is accepted as well
        if isinstance(raw, str):
            raw = [raw]
        if not isinstance(raw, list):
            raise PayloadError("accepted_answers", "must be a list of strings")
        answers = tuple(str(a).strip() for a in raw if isinstance(a, str) and a.strip())
        if not answers:
            raise PayloadError("accepted_answers", "needs at least one non-empty answer")
        case_sensitive = data.get("case_sensitive", False)
        if not isinstance(case_sensitive, bool):
            raise PayloadError("case_sensitive", "must be true or false")
        return cls(accepted_answers=answers, case_sensitive=case_sensitive)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accepted_answers": list(self.accepted_answers),
            "case_sensitive": self.case_sensitive,
        }

    def public_dict(self) -> Dict[str, Any]:
        # students are told when capitalisation matters
        return {"case_sensitive": self.case_sensitive}

    def clean_answer(self, value: Any) -> Optional[str]:
        if is_blank(value):
            return None
        if not isinstance(value, str):
            raise PayloadError("answer", "must be text")
        return value.strip()


@dataclass(frozen=True)
class MatchingPayload:
    question_type: ClassVar[str] = QuestionType.MATCHING

    left_items: Tuple[Item, ...]
    right_items: Tuple[Item, ...]
    correct_pairs: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "MatchingPayload":
        data = _require_dict(data)
        left = _parse_items(data.get("left_items"), "left_items")
        right = _parse_items(data.get("right_items"), "right_items")
        raw_pairs = data.get("correct_pairs")
        if not isinstance(raw_pairs, dict):
            raise PayloadError("correct_pairs", "must be an object mapping left ids to right ids")

        left_ids = {i.id for i in left}
        right_ids = {i.id for i in right}
        pairs = {str(k): str(v) for k, v in raw_pairs.items()}
        if set(pairs) != left_ids:
            raise PayloadError("correct_pairs", "must pair every left item exactly once")
        unknown = sorted(v for v in pairs.values() if v not in right_ids)
        if unknown:
            raise PayloadError("correct_pairs", f"unknown right items {unknown}")
        return cls(left_items=left, right_items=right, correct_pairs=pairs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "left_items": [i.to_dict() for i in self.left_items],
            "right_items": [i.to_dict() for i in self.right_items],
            "correct_pairs": dict(self.correct_pairs),
        }

    def public_dict(self) -> Dict[str, Any]:
        return {
            "left_items": [i.to_dict() for i in self.left_items],
            "right_items": [i.to_dict() for i in self.right_items],
        }

    def clean_answer(self, value: Any) -> Optional[Dict[str, str]]:
        if is_blank(value):
            return None
        if not isinstance(value, dict):
            raise PayloadError("answer", "must map left item ids to right item ids")
        left_ids = {i.id for i in self.left_items}
        right_ids = {i.id for i in self.right_items}
        cleaned = {}
        for left_id, right_id in value.items():
            left_id = str(left_id)
            if left_id not in left_ids:
                raise PayloadError("answer", f"unknown left item {left_id!r}")
            if right_id is None:
                continue
            right_id = str(right_id)
            if right_id not in right_ids:
                raise PayloadError("answer", f"unknown right item {right_id!r}")
            cleaned[left_id] = right_id
        return cleaned or None


@dataclass(frozen=True)
class EssayPayload:
    question_type: ClassVar[str] = QuestionType.ESSAY

    min_words: Optional[int] = None
    max_words: Optional[int] = None
    reference_answer: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "EssayPayload":
        data = _require_dict(data or {})
        min_words = _optional_count(data, "min_words")
        max_words = _optional_count(data, "max_words")
        if min_words is not None and max_words is not None and min_words > max_words:
            raise PayloadError("min_words", "must not exceed max_words")
        return cls(
            min_words=min_words,
            max_words=max_words,
            reference_answer=str(data.get("reference_answer") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "min_words": self.min_words,
            "max_words": self.max_words,
            "reference_answer": self.reference_answer,
        }

    def public_dict(self) -> Dict[str, Any]:
        return {"min_words": self.min_words, "max_words": self.max_words}

    def clean_answer(self, value: Any) -> Optional[str]:
        if is_blank(value):
            return None
        if not isinstance(value, str):
            raise PayloadError("answer", "must be text")
        return value


PAYLOAD_CLASSES = {
    QuestionType.MULTIPLE_CHOICE: MultipleChoicePayload,
    QuestionType.TRUE_FALSE: TrueFalsePayload,
    QuestionType.SHORT_ANSWER: ShortAnswerPayload,
    QuestionType.MATCHING: MatchingPayload,
    QuestionType.ESSAY: EssayPayload,
}


def parse_payload(question_type: str, data: Any):
    try:
        payload_cls = PAYLOAD_CLASSES[QuestionType(question_type)]
    except ValueError:
        raise PayloadError("question_type", f"unknown question type {question_type!r}")
    return payload_cls.from_dict(data)


def is_manual(question_type: str) -> bool:
    return question_type in MANUAL_TYPES
