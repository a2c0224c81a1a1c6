from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum


class MockTestError(Exception):
    """Base class for mock-test failures."""


class QuestionBankError(MockTestError):
    """The question set for a test could not be loaded."""


class QuestionRecordError(QuestionBankError, ValueError):
    """A raw bank record is missing fields or has the wrong shape."""


class EmptyQuestionBankError(QuestionBankError):
    """The bank returned no questions for the requested kind."""


class TestKind(StrEnum):
    __test__ = False  # not a pytest test class

    APTITUDE = "aptitude"
    TECHNICAL = "technical"
    GD = "gd"

    @property
    def graded(self) -> bool:
        return self is TestKind.APTITUDE

    @property
    def table(self) -> str:
        return _TABLES[self]

    @property
    def label(self) -> str:
        return _LABELS[self]


_TABLES = {
    TestKind.APTITUDE: "aptitude_questions",
    TestKind.TECHNICAL: "technical_questions",
    TestKind.GD: "gd_topics",
}

_LABELS = {
    TestKind.APTITUDE: "Aptitude",
    TestKind.TECHNICAL: "Technical",
    TestKind.GD: "Group Discussion",
}


@dataclass(frozen=True, slots=True)
class MultipleChoiceQuestion:
    id: str
    prompt: str
    options: tuple[str, ...]
    correct_index: int
    explanation: str | None = None
    category: str | None = None
    level: int = 1

    @property
    def kind(self) -> TestKind:
        return TestKind.APTITUDE


@dataclass(frozen=True, slots=True)
class OpenResponseQuestion:
    id: str
    kind: TestKind
    title: str
    description: str = ""
    difficulty: str | None = None  # technical only, e.g. "Medium"
    category: str | None = None
    level: int = 1


Question = MultipleChoiceQuestion | OpenResponseQuestion


@dataclass(frozen=True, slots=True)
class AnswerRecord:
    """One submitted answer. Immutable once appended to a session log."""

    question_id: str
    kind: TestKind
    answer: int | str  # option index (graded) or free text
    is_correct: bool | None  # None for ungraded kinds
    elapsed_s: int
    position: int


def parse_question(kind: TestKind, record: Mapping[str, object]) -> Question:
    """Build a typed question of ``kind`` from one raw bank record."""

    if not isinstance(record, Mapping):
        raise QuestionRecordError(f"{kind.table}: record must be a mapping, got {type(record).__name__}")

    qid = _required_text(kind, record, "id")
    category = _optional_text(record, "category")
    level = _level(kind, qid, record.get("level"))

    if kind is TestKind.APTITUDE:
        prompt = _required_text(kind, record, "question")
        raw_options = record.get("options")
        if not isinstance(raw_options, Sequence) or isinstance(raw_options, str):
            raise QuestionRecordError(f"{kind.table}[{qid}]: options must be a list")
        options = tuple(str(o) for o in raw_options)
        if len(options) < 2:
            raise QuestionRecordError(f"{kind.table}[{qid}]: need at least 2 options")
        correct = record.get("correct_answer")
        if isinstance(correct, bool) or not isinstance(correct, int):
            raise QuestionRecordError(f"{kind.table}[{qid}]: correct_answer must be an integer")
        if not (0 <= correct < len(options)):
            raise QuestionRecordError(f"{kind.table}[{qid}]: correct_answer {correct} out of range")
        return MultipleChoiceQuestion(
            id=qid,
            prompt=prompt,
            options=options,
            correct_index=correct,
            explanation=_optional_text(record, "explanation"),
            category=category,
            level=level,
        )

    return OpenResponseQuestion(
        id=qid,
        kind=kind,
        title=_required_text(kind, record, "title"),
        description=_optional_text(record, "description") or "",
        difficulty=_optional_text(record, "difficulty") if kind is TestKind.TECHNICAL else None,
        category=category,
        level=level,
    )


def parse_questions(kind: TestKind, records: Sequence[Mapping[str, object]]) -> list[Question]:
    """Parse a whole bank response; every record goes through the same kind."""

    questions = [parse_question(kind, r) for r in records]
    seen: set[str] = set()
    for q in questions:
        if q.id in seen:
            raise QuestionRecordError(f"{kind.table}: duplicate question id {q.id!r}")
        seen.add(q.id)
    return questions


def _required_text(kind: TestKind, record: Mapping[str, object], key: str) -> str:
    value = record.get(key)
    if value is None or str(value).strip() == "":
        raise QuestionRecordError(f"{kind.table}: missing {key!r}")
    return str(value)


def _optional_text(record: Mapping[str, object], key: str) -> str | None:
    value = record.get(key)
    if value is None:
        return None
    text = str(value)
    return text if text.strip() != "" else None


def _level(kind: TestKind, qid: str, value: object) -> int:
    if value is None:
        return 1
    try:
        level = int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        raise QuestionRecordError(f"{kind.table}[{qid}]: level must be an integer") from None
    return max(1, level)
