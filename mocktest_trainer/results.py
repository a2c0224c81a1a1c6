from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .models import AnswerRecord, TestKind


@dataclass(frozen=True, slots=True)
class ResultSummary:
    """Read-only view over a finished session's answer log.

    Always recomputable from the log, so it is never stored as primary truth.
    """

    kind: TestKind
    total: int
    answered: int
    correct: int | None  # None for ungraded kinds
    details: tuple[AnswerRecord, ...]
    mean_elapsed_s: float | None
    median_elapsed_s: float | None

    @property
    def graded(self) -> bool:
        return self.correct is not None

    @property
    def score(self) -> int:
        """Headline number: correct answers when graded, answered otherwise."""

        return self.answered if self.correct is None else self.correct

    @property
    def score_ratio(self) -> float:
        return 0.0 if self.total == 0 else self.score / self.total

    def headline(self) -> str:
        if self.graded:
            return f"Score: {self.score} / {self.total}"
        return f"Answered: {self.answered} / {self.total}"


def summarize(kind: TestKind, total_questions: int, answers: Iterable[AnswerRecord]) -> ResultSummary:
    """Aggregate a (possibly partial) answer log into a ResultSummary."""

    if total_questions < 0:
        raise ValueError("total_questions must be >= 0")

    kind = TestKind(kind)
    records = tuple(a for a in answers if a.kind is kind)

    correct: int | None = None
    if kind.graded:
        correct = sum(1 for a in records if a.is_correct is True)

    elapsed = sorted(a.elapsed_s for a in records)
    mean_s: float | None
    median_s: float | None
    if not elapsed:
        mean_s = None
        median_s = None
    else:
        mean_s = float(sum(elapsed)) / float(len(elapsed))
        mid = len(elapsed) // 2
        if len(elapsed) % 2 == 1:
            median_s = float(elapsed[mid])
        else:
            median_s = float(elapsed[mid - 1] + elapsed[mid]) / 2.0

    return ResultSummary(
        kind=kind,
        total=int(total_questions),
        answered=len(records),
        correct=correct,
        details=records,
        mean_elapsed_s=mean_s,
        median_elapsed_s=median_s,
    )
