from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from mocktest_trainer.bank import JsonQuestionBank
from mocktest_trainer.config import DEFAULT_DURATIONS_S, MockTestConfig, sample_bank_path
from mocktest_trainer.identity import StaticIdentity
from mocktest_trainer.models import MultipleChoiceQuestion, TestKind, parse_questions
from mocktest_trainer.persistence import fetch_progress
from mocktest_trainer.results import ResultSummary
from mocktest_trainer.seeding import derive_seed
from mocktest_trainer.session import FinishReason, SessionPhase, build_mock_test_session
from mocktest_trainer.shuffle import seeded_shuffle


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += dt


def _config(tmp_path: Path, **durations: int) -> MockTestConfig:
    merged = dict(DEFAULT_DURATIONS_S)
    for key, value in durations.items():
        merged[TestKind(key)] = value
    return MockTestConfig(
        durations_s=merged,
        bank_path=sample_bank_path(),
        db_path=tmp_path / "progress.sqlite3",
    )


def test_headless_aptitude_run_scores_and_persists(tmp_path: Path) -> None:
    clock = FakeClock()
    finished: list[ResultSummary] = []
    config = _config(tmp_path, aptitude=60)
    session = build_mock_test_session(
        clock=clock,
        config=config,
        identity=StaticIdentity("candidate-7"),
        on_finished=finished.append,
    )

    assert session.start(TestKind.APTITUDE) is True
    assert session.phase is SessionPhase.RUNNING

    # Mirror the ordering from the bank and the derived seed.
    raw = JsonQuestionBank(sample_bank_path()).list_questions(TestKind.APTITUDE)
    bank_questions = parse_questions(TestKind.APTITUDE, raw)
    expected = seeded_shuffle(bank_questions, derive_seed("candidate-7", "aptitude", 1))
    assert session.ordering == tuple(q.id for q in expected)

    # Correct, wrong, correct, skip, correct.
    plan = [True, False, True, None, True]
    for want_correct in plan:
        clock.advance(4.0)
        session.update()
        q = session.current_question
        assert isinstance(q, MultipleChoiceQuestion)
        if want_correct is not None:
            choice = q.correct_index if want_correct else (q.correct_index + 1) % len(q.options)
            assert session.submit_choice(choice) is True
        assert session.advance() is True

    assert session.exhausted
    assert session.phase is SessionPhase.RUNNING

    # Let the remaining budget run out.
    clock.advance(60.0)
    session.update()
    assert session.phase is SessionPhase.FINISHED
    assert session.finish_reason is FinishReason.TIMEOUT
    assert len(finished) == 1

    s = finished[0]
    assert (s.correct, s.answered, s.total) == (3, 4, 5)
    assert s.headline() == "Score: 3 / 5"
    assert s.mean_elapsed_s == 4.0

    rows = fetch_progress(config.db_path, "candidate-7")
    assert [r.question_id for r in rows] == [a.question_id for a in session.answers]
    assert [r.is_correct for r in rows] == [True, False, True, True]
    assert all(r.question_type == "aptitude" for r in rows)
    assert all(r.time_spent_seconds == 4 for r in rows)


def test_headless_group_discussion_run_finishes_early(tmp_path: Path) -> None:
    clock = FakeClock()
    config = _config(tmp_path)
    session = build_mock_test_session(
        clock=clock,
        config=config,
        identity=StaticIdentity("candidate-7"),
    )

    session.start(TestKind.GD)
    assert session.total == 2
    assert session.seed == derive_seed("candidate-7", "gd", 3)

    clock.advance(90.0)
    assert session.submit_text("Flexible hours help retention.") is True
    clock.advance(45.0)
    assert session.pause() is True
    clock.advance(300.0)
    assert session.resume() is True
    assert session.submit_text("Cost savings matter too.") is True
    assert session.remaining_s == DEFAULT_DURATIONS_S[TestKind.GD] - 135

    assert session.finish_early() is True
    s = session.summary()
    assert s is not None
    assert s.correct is None
    assert s.headline() == "Answered: 2 / 2"
    assert [a.elapsed_s for a in session.answers] == [90, 45]

    rows = fetch_progress(config.db_path, "candidate-7")
    assert [r.answer for r in rows] == ["Flexible hours help retention.", "Cost savings matter too."]
    assert all(r.is_correct is None for r in rows)


def test_headless_anonymous_run_keeps_bank_order_and_writes_nothing(tmp_path: Path) -> None:
    clock = FakeClock()
    config = _config(tmp_path)
    session = build_mock_test_session(clock=clock, config=config, identity=StaticIdentity(None))

    session.start(TestKind.TECHNICAL)
    assert session.ordering == ("tech-001", "tech-002", "tech-003")
    session.submit_text("two pointers")
    session.finish_early()

    assert not config.db_path.exists()
