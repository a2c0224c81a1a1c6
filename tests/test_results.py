from __future__ import annotations

import math

import pytest

from mocktest_trainer.models import AnswerRecord, TestKind
from mocktest_trainer.results import summarize


def _choice(qid: str, correct: bool, elapsed: int, pos: int) -> AnswerRecord:
    return AnswerRecord(
        question_id=qid,
        kind=TestKind.APTITUDE,
        answer=0,
        is_correct=correct,
        elapsed_s=elapsed,
        position=pos,
    )


def _text(qid: str, kind: TestKind, elapsed: int, pos: int) -> AnswerRecord:
    return AnswerRecord(question_id=qid, kind=kind, answer="notes", is_correct=None, elapsed_s=elapsed, position=pos)


def test_graded_summary_counts_correct_answers() -> None:
    log = [
        _choice("q1", True, 4, 0),
        _choice("q2", False, 6, 1),
        _choice("q3", True, 10, 2),
    ]
    s = summarize(TestKind.APTITUDE, 5, log)
    assert s.graded
    assert s.total == 5
    assert s.answered == 3
    assert s.correct == 2
    assert s.score == 2
    assert math.isclose(s.score_ratio, 0.4)
    assert s.headline() == "Score: 2 / 5"
    assert [a.question_id for a in s.details] == ["q1", "q2", "q3"]
    assert math.isclose(s.mean_elapsed_s or 0.0, 20 / 3)
    assert s.median_elapsed_s == 6.0


def test_ungraded_summary_counts_answers() -> None:
    log = [_text("t1", TestKind.TECHNICAL, 30, 0), _text("t2", TestKind.TECHNICAL, 50, 1)]
    s = summarize(TestKind.TECHNICAL, 3, log)
    assert not s.graded
    assert s.correct is None
    assert s.answered == 2
    assert s.score == 2
    assert s.median_elapsed_s == 40.0
    assert s.headline() == "Answered: 2 / 3"


def test_partial_and_empty_logs() -> None:
    s = summarize(TestKind.GD, 4, [])
    assert s.answered == 0
    assert s.score_ratio == 0.0
    assert s.mean_elapsed_s is None
    assert s.median_elapsed_s is None

    empty_bank = summarize(TestKind.APTITUDE, 0, [])
    assert empty_bank.correct == 0
    assert empty_bank.score_ratio == 0.0


def test_only_records_of_the_kind_count() -> None:
    log = [_choice("q1", True, 1, 0), _text("g1", TestKind.GD, 1, 0)]
    assert summarize(TestKind.APTITUDE, 2, log).answered == 1
    assert summarize(TestKind.GD, 2, log).answered == 1


def test_negative_total_is_rejected() -> None:
    with pytest.raises(ValueError):
        summarize(TestKind.APTITUDE, -1, [])
