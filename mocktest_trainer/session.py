"""Timed mock-test session: one explicit state machine per candidate.

Phases run ``idle -> loading -> running <-> paused -> finished`` and back to
``idle`` only through :meth:`MockTestSession.reset`. Every public action first
brings the countdown up to date, so an action that arrives after the time
budget ran out finds the session already finished and is rejected. Rejected
actions return ``False`` and change nothing.

Fetching questions and forwarding answers may run on an injected
``concurrent.futures.Executor``. Their results are applied only from
:meth:`MockTestSession.update`, on the caller's thread, and a load that no
longer belongs to the current session is dropped.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence
from concurrent.futures import Executor, Future
from dataclasses import dataclass
from enum import Enum

from .bank import JsonQuestionBank, QuestionBank, RawRecord
from .config import MockTestConfig
from .identity import IdentityProvider, StaticIdentity, identity_from_env
from .models import (
    AnswerRecord,
    EmptyQuestionBankError,
    MultipleChoiceQuestion,
    Question,
    TestKind,
    parse_questions,
)
from .persistence import AnswerSink, SqliteProgressSink
from .results import ResultSummary, summarize
from .seeding import session_seed
from .shuffle import seeded_shuffle
from .timer import Clock, CountdownTimer

logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    RUNNING = "running"
    PAUSED = "paused"
    FINISHED = "finished"


class FinishReason(str, Enum):
    TIMEOUT = "timeout"
    EARLY = "early"


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """View model for the UI (pure data)."""

    phase: SessionPhase
    kind: TestKind | None
    position: int
    total: int
    question: Question | None
    answered_current: bool
    selected_option: int | None
    remaining_s: int | None
    answered: int
    correct: int | None
    error: str | None = None
    summary: ResultSummary | None = None


@dataclass(slots=True)
class _PendingLoad:
    ticket: int
    kind: TestKind
    variant: int
    user_id: str | None
    future: Future[Sequence[RawRecord]]


class MockTestSession:
    def __init__(
        self,
        *,
        bank: QuestionBank,
        clock: Clock,
        config: MockTestConfig | None = None,
        identity: IdentityProvider | None = None,
        sink: AnswerSink | None = None,
        executor: Executor | None = None,
        on_finished: Callable[[ResultSummary], None] | None = None,
    ) -> None:
        self._bank = bank
        self._clock = clock
        self._config = config or MockTestConfig()
        self._identity = identity or StaticIdentity(None)
        self._sink = sink
        self._executor = executor
        self._on_finished = on_finished

        # Bumped on every start/reset; a load whose ticket differs is stale.
        self._generation = 0
        self._pending: _PendingLoad | None = None
        self._last_error: str | None = None
        self._clear()

    # ----- read side -----

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def kind(self) -> TestKind | None:
        return self._kind

    @property
    def user_id(self) -> str | None:
        return self._user_id

    @property
    def seed(self) -> int | None:
        return self._seed

    @property
    def position(self) -> int:
        return self._position

    @property
    def total(self) -> int:
        return len(self._questions)

    @property
    def questions(self) -> tuple[Question, ...]:
        return self._questions

    @property
    def ordering(self) -> tuple[str, ...]:
        return tuple(q.id for q in self._questions)

    @property
    def answers(self) -> tuple[AnswerRecord, ...]:
        return tuple(self._answers)

    @property
    def finish_reason(self) -> FinishReason | None:
        return self._finish_reason

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def remaining_s(self) -> int | None:
        if self._timer is None:
            return None
        return self._timer.remaining_s

    @property
    def exhausted(self) -> bool:
        return self._phase in (SessionPhase.RUNNING, SessionPhase.PAUSED) and self._position >= self.total

    @property
    def current_question(self) -> Question | None:
        if self._phase not in (SessionPhase.RUNNING, SessionPhase.PAUSED):
            return None
        if self._position >= len(self._questions):
            return None
        return self._questions[self._position]

    def is_answered(self) -> bool:
        return self._position in self._answered_positions

    def summary(self) -> ResultSummary | None:
        """Result of the finished session; computed once at finalisation."""

        if self._phase is not SessionPhase.FINISHED:
            return None
        return self._summary

    def snapshot(self) -> SessionSnapshot:
        selected = None
        if self._position in self._answered_positions:
            answer = self._answer_at(self._position)
            if answer is not None and isinstance(answer.answer, int):
                selected = answer.answer

        correct: int | None = None
        if self._kind is not None and self._kind.graded:
            correct = sum(1 for a in self._answers if a.is_correct is True)

        return SessionSnapshot(
            phase=self._phase,
            kind=self._kind,
            position=self._position,
            total=len(self._questions),
            question=self.current_question,
            answered_current=self.is_answered(),
            selected_option=selected,
            remaining_s=self.remaining_s,
            answered=len(self._answers),
            correct=correct,
            error=self._last_error,
            summary=self.summary(),
        )

    # ----- transitions -----

    def start(self, kind: TestKind, *, variant: int | None = None) -> bool:
        """Begin loading a test of ``kind``. Only legal from idle."""

        if self._phase is not SessionPhase.IDLE:
            return False

        kind = TestKind(kind)
        variant = self._config.variant_for(kind) if variant is None else int(variant)
        user_id = self._identity.current_user_id()

        self._clear()
        self._last_error = None
        self._generation += 1
        self._phase = SessionPhase.LOADING
        self._kind = kind
        self._user_id = user_id

        future: Future[Sequence[RawRecord]]
        if self._executor is None:
            future = Future()
            try:
                future.set_result(self._bank.list_questions(kind))
            except Exception as exc:
                future.set_exception(exc)
        else:
            future = self._executor.submit(self._bank.list_questions, kind)

        self._pending = _PendingLoad(
            ticket=self._generation,
            kind=kind,
            variant=variant,
            user_id=user_id,
            future=future,
        )
        logger.info("loading %s test (variant %d)", kind.value, variant)
        self._poll_load()
        return True

    def update(self) -> None:
        """Event-loop hook: apply a finished load and any due timer ticks."""

        self._poll_load()
        self._sync_clock()

    def submit_choice(self, option_index: int) -> bool:
        self._sync_clock()
        if self._phase is not SessionPhase.RUNNING:
            return False
        question = self.current_question
        if not isinstance(question, MultipleChoiceQuestion):
            return False
        if self._position in self._answered_positions:
            return False
        if not (0 <= option_index < len(question.options)):
            return False

        record = AnswerRecord(
            question_id=question.id,
            kind=TestKind.APTITUDE,
            answer=int(option_index),
            is_correct=option_index == question.correct_index,
            elapsed_s=self._elapsed_on_question(),
            position=self._position,
        )
        self._append(record)
        return True

    def submit_text(self, text: str) -> bool:
        self._sync_clock()
        if self._phase is not SessionPhase.RUNNING or self._kind is None or self._kind.graded:
            return False
        question = self.current_question
        if question is None:
            return False

        record = AnswerRecord(
            question_id=question.id,
            kind=self._kind,
            answer=str(text),
            is_correct=None,
            elapsed_s=self._elapsed_on_question(),
            position=self._position,
        )
        self._append(record)
        self._advance()
        return True

    def advance(self) -> bool:
        """Move to the next question. Running out of questions never finishes."""

        self._sync_clock()
        if self._phase is not SessionPhase.RUNNING:
            return False
        if self._position >= len(self._questions):
            return False
        self._advance()
        return True

    def pause(self) -> bool:
        self._sync_clock()
        if self._phase is not SessionPhase.RUNNING:
            return False
        assert self._timer is not None
        self._timer.pause()
        if self._phase is not SessionPhase.RUNNING:
            # The timer caught up on its last tick while pausing.
            return False
        self._paused_at = self._clock.now()
        self._phase = SessionPhase.PAUSED
        return True

    def resume(self) -> bool:
        if self._phase is not SessionPhase.PAUSED:
            return False
        assert self._timer is not None
        assert self._paused_at is not None
        if self._question_started_at is not None:
            # Time spent paused does not count toward the current question.
            self._question_started_at += self._clock.now() - self._paused_at
        self._paused_at = None
        self._timer.resume()
        self._phase = SessionPhase.RUNNING
        return True

    def finish_early(self) -> bool:
        self._sync_clock()
        if self._phase not in (SessionPhase.RUNNING, SessionPhase.PAUSED):
            return False
        self._finalize(FinishReason.EARLY)
        return True

    def reset(self) -> bool:
        """Drop the current session (including an in-flight load) and go idle."""

        if self._phase is SessionPhase.IDLE and self._pending is None:
            self._last_error = None
            return False
        if self._timer is not None:
            self._timer.cancel()
        if self._pending is not None:
            self._pending.future.cancel()
            self._pending = None
        self._generation += 1
        self._clear()
        self._last_error = None
        return True

    def close(self) -> None:
        self.reset()

    # ----- internals -----

    def _clear(self) -> None:
        self._phase = SessionPhase.IDLE
        self._kind: TestKind | None = None
        self._user_id: str | None = None
        self._seed: int | None = None
        self._questions: tuple[Question, ...] = ()
        self._position = 0
        self._answers: list[AnswerRecord] = []
        self._answered_positions: set[int] = set()
        self._timer: CountdownTimer | None = None
        self._question_started_at: float | None = None
        self._paused_at: float | None = None
        self._finish_reason: FinishReason | None = None
        self._summary: ResultSummary | None = None

    def _poll_load(self) -> None:
        pending = self._pending
        if pending is None or not pending.future.done():
            return
        self._pending = None

        if pending.ticket != self._generation or self._phase is not SessionPhase.LOADING:
            logger.debug("discarding stale %s load", pending.kind.value)
            return
        if pending.future.cancelled():
            self._fail_load(pending.kind, "question load was cancelled")
            return

        try:
            records = pending.future.result()
            questions = parse_questions(pending.kind, records)
            if not questions:
                raise EmptyQuestionBankError(f"no {pending.kind.value} questions available")
        except Exception as exc:
            logger.warning("failed to load %s questions: %s", pending.kind.value, exc, exc_info=True)
            self._fail_load(pending.kind, str(exc) or type(exc).__name__)
            return

        seed = session_seed(pending.user_id, pending.kind.value, pending.variant)
        ordered = questions if seed is None else seeded_shuffle(questions, seed)

        self._seed = seed
        self._questions = tuple(ordered)
        self._position = 0
        self._answers = []
        self._answered_positions = set()
        self._timer = CountdownTimer(
            clock=self._clock,
            duration_s=self._config.duration_for(pending.kind),
            on_expire=self._on_timer_expired,
        )
        self._phase = SessionPhase.RUNNING
        self._timer.start()
        self._question_started_at = self._clock.now()
        logger.info(
            "started %s test: %d questions, %ds, seed=%s",
            pending.kind.value,
            len(self._questions),
            self._timer.duration_s,
            "natural-order" if seed is None else seed,
        )

    def _fail_load(self, kind: TestKind, message: str) -> None:
        self._clear()
        self._last_error = f"Could not load {kind.label} questions: {message}"

    def _sync_clock(self) -> None:
        if self._phase is SessionPhase.RUNNING and self._timer is not None:
            self._timer.poll()

    def _on_timer_expired(self) -> None:
        self._finalize(FinishReason.TIMEOUT)

    def _finalize(self, reason: FinishReason) -> None:
        if self._phase is SessionPhase.FINISHED:
            return
        if self._phase not in (SessionPhase.RUNNING, SessionPhase.PAUSED):
            return
        assert self._kind is not None
        if self._timer is not None:
            self._timer.cancel()
        summary = summarize(self._kind, len(self._questions), self._answers)
        self._summary = summary
        self._phase = SessionPhase.FINISHED
        self._finish_reason = reason
        self._question_started_at = None
        self._paused_at = None

        logger.info(
            "finished %s test (%s): %s",
            summary.kind.value,
            reason.value,
            summary.headline(),
        )
        if self._on_finished is not None:
            self._on_finished(summary)

    def _advance(self) -> None:
        self._position += 1
        self._question_started_at = self._clock.now()

    def _append(self, record: AnswerRecord) -> None:
        self._answers.append(record)
        self._answered_positions.add(record.position)
        self._forward(record)

    def _answer_at(self, position: int) -> AnswerRecord | None:
        for a in reversed(self._answers):
            if a.position == position:
                return a
        return None

    def _elapsed_on_question(self) -> int:
        if self._question_started_at is None:
            return 0
        return _round_half_up(max(0.0, self._clock.now() - self._question_started_at))

    def _forward(self, record: AnswerRecord) -> None:
        """Best-effort hand-off to the sink. Never affects the local log."""

        if self._sink is None or self._user_id is None:
            return
        if self._executor is None:
            try:
                self._sink.record(record, self._user_id)
            except Exception:
                logger.warning("failed to store answer for %s", record.question_id, exc_info=True)
            return

        try:
            future = self._executor.submit(self._sink.record, record, self._user_id)
        except RuntimeError:
            logger.warning("answer sink unavailable; dropped %s", record.question_id, exc_info=True)
            return
        future.add_done_callback(lambda f, qid=record.question_id: _log_sink_result(f, qid))


def _log_sink_result(future: Future[None], question_id: str) -> None:
    if future.cancelled():
        logger.warning("answer write for %s was cancelled", question_id)
        return
    exc = future.exception()
    if exc is not None:
        logger.warning("failed to store answer for %s: %s", question_id, exc)


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def build_mock_test_session(
    *,
    clock: Clock,
    config: MockTestConfig | None = None,
    identity: IdentityProvider | None = None,
    executor: Executor | None = None,
    on_finished: Callable[[ResultSummary], None] | None = None,
) -> MockTestSession:
    """Factory wiring the JSON question bank and SQLite progress sink."""

    cfg = config or MockTestConfig()
    return MockTestSession(
        bank=JsonQuestionBank(cfg.bank_path),
        clock=clock,
        config=cfg,
        identity=identity or identity_from_env(),
        sink=SqliteProgressSink(cfg.db_path),
        executor=executor,
        on_finished=on_finished,
    )
