"""Countdown timing on top of an injectable monotonic clock."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Protocol


class Clock(Protocol):
    """Source of monotonic seconds; tests substitute a fake."""

    def now(self) -> float: ...


class RealClock:
    def now(self) -> float:
        return time.monotonic()


class CountdownTimer:
    """Whole-second countdown driven by an injected Clock.

    - One tick of ``period_s`` removes one second from ``remaining_s``.
    - ``poll()`` applies every tick that is due by the clock; hosts with their
      own scheduler may call ``tick()`` directly instead.
    - On reaching zero the timer stops and ``on_expire`` runs exactly once.
    - ``pause()`` keeps the partial tick so a pause/resume cycle neither loses
      nor gains time.
    - ``cancel()`` is final; no tick fires afterwards.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        duration_s: int,
        on_expire: Callable[[], None],
        period_s: float = 1.0,
    ) -> None:
        if int(duration_s) <= 0:
            raise ValueError("duration_s must be > 0")
        if period_s <= 0:
            raise ValueError("period_s must be > 0")

        self._clock = clock
        self._on_expire = on_expire
        self._period_s = float(period_s)
        self._duration_s = int(duration_s)
        self._remaining_s = int(duration_s)

        self._next_tick_at: float | None = None
        self._paused_progress_s: float | None = None
        self._expired = False
        self._cancelled = False

    @property
    def duration_s(self) -> int:
        return self._duration_s

    @property
    def remaining_s(self) -> int:
        return self._remaining_s

    @property
    def running(self) -> bool:
        return self._next_tick_at is not None

    @property
    def paused(self) -> bool:
        return self._paused_progress_s is not None

    @property
    def expired(self) -> bool:
        return self._expired

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def start(self) -> None:
        if self._cancelled or self._expired or self.running or self.paused:
            return
        self._next_tick_at = self._clock.now() + self._period_s

    def pause(self) -> None:
        if self._next_tick_at is None:
            return
        self.poll()
        if self._next_tick_at is None:
            # Expired while catching up.
            return
        tick_started_at = self._next_tick_at - self._period_s
        self._paused_progress_s = max(0.0, self._clock.now() - tick_started_at)
        self._next_tick_at = None

    def resume(self) -> None:
        if self._paused_progress_s is None or self._cancelled or self._expired:
            return
        left_in_tick = max(0.0, self._period_s - self._paused_progress_s)
        self._next_tick_at = self._clock.now() + left_in_tick
        self._paused_progress_s = None

    def cancel(self) -> None:
        self._cancelled = True
        self._next_tick_at = None
        self._paused_progress_s = None

    def poll(self) -> int:
        """Apply all ticks due by now. Returns how many were applied."""

        applied = 0
        while self._next_tick_at is not None and self._clock.now() >= self._next_tick_at:
            self._next_tick_at += self._period_s
            self._apply_tick()
            applied += 1
        return applied

    def tick(self) -> bool:
        """Apply a single tick immediately. Returns False when not running."""

        if self._next_tick_at is None:
            return False
        self._next_tick_at = self._clock.now() + self._period_s
        self._apply_tick()
        return True

    def _apply_tick(self) -> None:
        self._remaining_s = max(0, self._remaining_s - 1)
        if self._remaining_s > 0:
            return
        self._next_tick_at = None
        if self._expired:
            return
        self._expired = True
        self._on_expire()
