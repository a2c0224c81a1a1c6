"""Pygame UI shell for the mock test trainer.

Menu: Aptitude (multiple choice), Technical and Group Discussion (free text).
Ordering, timing, answer capture and scoring live in the core modules; this
file only draws snapshots and forwards key presses to the session.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Protocol

import pygame

from .config import MockTestConfig
from .logging_setup import configure_logging
from .models import MultipleChoiceQuestion, OpenResponseQuestion, TestKind
from .session import MockTestSession, SessionPhase, SessionSnapshot, build_mock_test_session
from .timer import RealClock

logger = logging.getLogger(__name__)

WINDOW_SIZE = (960, 540)
TARGET_FPS = 60

BG = (4, 12, 84)
PANEL_BG = (8, 18, 104)
HEADER_BG = (18, 30, 118)
BORDER = (226, 236, 255)
TEXT_MAIN = (238, 245, 255)
TEXT_MUTED = (188, 204, 228)
ACTIVE_BG = (244, 248, 255)
ACTIVE_TEXT = (16, 32, 88)
CORRECT = (96, 200, 128)
WRONG = (222, 96, 96)


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None]


class App:
    def __init__(self, surface: pygame.Surface, font: pygame.font.Font) -> None:
        self._surface = surface
        self._font = font
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def font(self) -> pygame.font.Font:
        return self._font

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def pop(self) -> None:
        # The root menu handles its own quit.
        if len(self._screens) > 1:
            self._screens.pop()

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


def _fit_label(font: pygame.font.Font, label: str, max_width: int) -> str:
    if max_width <= 0:
        return ""
    if font.size(label)[0] <= max_width:
        return label
    clipped = label
    while clipped and font.size(f"{clipped}...")[0] > max_width:
        clipped = clipped[:-1]
    return f"{clipped}..." if clipped else "..."


def _wrap_lines(font: pygame.font.Font, text: str, max_width: int) -> list[str]:
    lines: list[str] = []
    for paragraph in str(text).split("\n"):
        cur = ""
        for word in paragraph.split():
            trial = word if cur == "" else f"{cur} {word}"
            if font.size(trial)[0] <= max_width:
                cur = trial
                continue
            if cur:
                lines.append(cur)
            cur = word
        lines.append(cur)
    return lines


def _draw_wrapped(
    surface: pygame.Surface,
    text: str,
    rect: pygame.Rect,
    *,
    font: pygame.font.Font,
    color: tuple[int, int, int],
    max_lines: int,
) -> int:
    """Draw word-wrapped text; returns the y just below the last line."""

    y = rect.y
    line_h = font.get_linesize() + 2
    for line in _wrap_lines(font, text, rect.w)[: max(0, max_lines)]:
        surface.blit(font.render(_fit_label(font, line, rect.w), True, color), (rect.x, y))
        y += line_h
    return y


def _draw_frame(surface: pygame.Surface, tag: str, title: str, font: pygame.font.Font) -> tuple[pygame.Rect, pygame.Rect]:
    w, h = surface.get_size()
    surface.fill(BG)

    margin = max(10, min(24, w // 34))
    frame = pygame.Rect(margin, margin, max(280, w - margin * 2), max(220, h - margin * 2))
    pygame.draw.rect(surface, PANEL_BG, frame)
    pygame.draw.rect(surface, BORDER, frame, 2)

    header_h = max(40, min(56, h // 7))
    header = pygame.Rect(frame.x + 2, frame.y + 2, frame.w - 4, header_h)
    pygame.draw.rect(surface, HEADER_BG, header)
    pygame.draw.line(surface, BORDER, (header.x, header.bottom), (header.right, header.bottom), 1)

    tiny = pygame.font.Font(None, 20)
    surface.blit(tiny.render(tag, True, TEXT_MUTED), (header.x + 12, header.y + (header.h - tiny.get_height()) // 2))
    title_surf = font.render(title, True, TEXT_MAIN)
    surface.blit(title_surf, title_surf.get_rect(center=header.center))
    return frame, header


class MenuScreen:
    def __init__(self, app: App, title: str, items: list[MenuItem], *, is_root: bool = False) -> None:
        self._app = app
        self._title = title
        self._items = items
        self._selected = 0
        self._is_root = is_root
        self._item_font = pygame.font.Font(None, 32)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        key = event.key
        if key in (pygame.K_UP, pygame.K_w):
            self._move(-1)
        elif key in (pygame.K_DOWN, pygame.K_s):
            self._move(1)
        elif key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            if self._items:
                self._items[self._selected].action()
        elif key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            if self._is_root:
                self._app.quit()
            else:
                self._app.pop()

    def _move(self, delta: int) -> None:
        if not self._items:
            return
        self._selected = (self._selected + delta) % len(self._items)

    def render(self, surface: pygame.Surface) -> None:
        frame, header = _draw_frame(surface, "MENU", self._title, self._app.font)

        row_h = 44
        gap = 8
        total_h = len(self._items) * (row_h + gap)
        y = header.bottom + max(16, (frame.bottom - header.bottom - total_h) // 2)
        for idx, item in enumerate(self._items):
            row = pygame.Rect(frame.x + 40, y, frame.w - 80, row_h)
            selected = idx == self._selected
            pygame.draw.rect(surface, ACTIVE_BG if selected else (9, 20, 106), row)
            pygame.draw.rect(surface, (120, 142, 196) if selected else (62, 84, 152), row, 2 if selected else 1)
            label = self._item_font.render(
                _fit_label(self._item_font, item.label, row.w - 20),
                True,
                ACTIVE_TEXT if selected else TEXT_MAIN,
            )
            surface.blit(label, (row.x + 10, row.y + (row.h - label.get_height()) // 2))
            y += row_h + gap

        foot = self._hint_font.render("Enter: Select  |  Up/Down: Move  |  Esc: Back", True, TEXT_MUTED)
        surface.blit(foot, foot.get_rect(midbottom=(frame.centerx, frame.bottom - 10)))


class MockTestScreen:
    """Runs one test of ``kind`` on the shared session and shows its results."""

    def __init__(self, app: App, *, session: MockTestSession, kind: TestKind) -> None:
        self._app = app
        self._session = session
        self._kind = kind
        self._cursor = 0
        self._input = ""

        self._small_font = pygame.font.Font(None, 26)
        self._tiny_font = pygame.font.Font(None, 20)
        self._big_font = pygame.font.Font(None, 64)

        self._session.reset()
        self._session.start(kind)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        key = event.key
        phase = self._session.phase

        if key == pygame.K_ESCAPE:
            self._leave()
            return

        if phase in (SessionPhase.IDLE, SessionPhase.FINISHED):
            if key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE, pygame.K_BACKSPACE):
                self._leave()
            return

        if phase is SessionPhase.LOADING:
            return

        if key == pygame.K_F5:
            if phase is SessionPhase.PAUSED:
                self._session.resume()
            else:
                self._session.pause()
            return
        if key == pygame.K_F10:
            self._session.finish_early()
            return

        if phase is not SessionPhase.RUNNING:
            return

        question = self._session.current_question
        if isinstance(question, MultipleChoiceQuestion):
            self._handle_choice_key(key, question)
        elif isinstance(question, OpenResponseQuestion):
            self._handle_text_key(event)

    def _handle_choice_key(self, key: int, question: MultipleChoiceQuestion) -> None:
        count = len(question.options)
        if key in (pygame.K_UP, pygame.K_w):
            self._cursor = (self._cursor - 1) % count
            return
        if key in (pygame.K_DOWN, pygame.K_s):
            self._cursor = (self._cursor + 1) % count
            return
        if key in (pygame.K_RIGHT, pygame.K_TAB):
            self._next()
            return
        if key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            if self._session.is_answered():
                self._next()
            else:
                self._session.submit_choice(self._cursor)
            return

        choice = _choice_from_key(key)
        if choice is not None and 1 <= choice <= count:
            self._cursor = choice - 1
            self._session.submit_choice(choice - 1)

    def _handle_text_key(self, event: pygame.event.Event) -> None:
        key = event.key
        if key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            if event.mod & pygame.KMOD_SHIFT:
                self._input += "\n"
                return
            if self._session.submit_text(self._input):
                self._input = ""
            return
        if key == pygame.K_TAB:
            self._next()
            return
        if key == pygame.K_BACKSPACE:
            self._input = self._input[:-1]
            return
        ch = event.unicode
        if ch and ch.isprintable():
            self._input += ch

    def _next(self) -> None:
        if self._session.advance():
            self._cursor = 0
            self._input = ""

    def _leave(self) -> None:
        self._session.reset()
        self._app.pop()

    def render(self, surface: pygame.Surface) -> None:
        self._session.update()
        snap = self._session.snapshot()

        tag = {
            SessionPhase.IDLE: "Not started",
            SessionPhase.LOADING: "Loading",
            SessionPhase.RUNNING: "Timed Test",
            SessionPhase.PAUSED: "Paused",
            SessionPhase.FINISHED: "Results",
        }[snap.phase]
        frame, header = _draw_frame(surface, tag, self._kind.label, self._app.font)

        if snap.remaining_s is not None and snap.phase in (SessionPhase.RUNNING, SessionPhase.PAUSED):
            mm, ss = divmod(int(snap.remaining_s), 60)
            timer = self._small_font.render(f"{mm:02d}:{ss:02d}", True, TEXT_MAIN)
            surface.blit(timer, timer.get_rect(midright=(header.right - 12, header.centery)))

        content = pygame.Rect(frame.x + 24, header.bottom + 16, frame.w - 48, frame.bottom - header.bottom - 64)
        pygame.draw.rect(surface, (6, 13, 92), content)
        pygame.draw.rect(surface, (78, 102, 170), content, 1)
        inner = content.inflate(-24, -24)

        if snap.phase is SessionPhase.LOADING:
            self._render_message(surface, inner, "Loading questions...")
            footer = "Esc: Back"
        elif snap.phase is SessionPhase.IDLE:
            self._render_message(surface, inner, snap.error or "No test running.")
            footer = "Enter/Esc: Back"
        elif snap.phase is SessionPhase.FINISHED:
            self._render_results(surface, inner, snap)
            footer = "Enter/Esc: Back to menu"
        elif snap.phase is SessionPhase.PAUSED:
            self._render_message(surface, inner, "Paused. Press F5 to resume.")
            footer = "F5: Resume  |  F10: Finish  |  Esc: Quit test"
        else:
            footer = self._render_question(surface, inner, snap)

        foot = self._tiny_font.render(footer, True, TEXT_MUTED)
        surface.blit(foot, foot.get_rect(midbottom=(frame.centerx, frame.bottom - 12)))

    def _render_message(self, surface: pygame.Surface, rect: pygame.Rect, text: str) -> None:
        _draw_wrapped(surface, text, rect, font=self._small_font, color=TEXT_MAIN, max_lines=12)

    def _render_question(self, surface: pygame.Surface, rect: pygame.Rect, snap: SessionSnapshot) -> str:
        progress = self._tiny_font.render(
            f"Question {min(snap.position + 1, snap.total)} of {snap.total}", True, TEXT_MUTED
        )
        surface.blit(progress, (rect.x, rect.y))
        body = pygame.Rect(rect.x, rect.y + 24, rect.w, rect.h - 24)

        question = snap.question
        if question is None:
            self._render_message(surface, body, "All questions visited. Press F10 to finish.")
            return "F10: Finish  |  F5: Pause  |  Esc: Quit test"

        if isinstance(question, MultipleChoiceQuestion):
            y = _draw_wrapped(surface, question.prompt, body, font=self._small_font, color=TEXT_MAIN, max_lines=4)
            y += 10
            for idx, option in enumerate(question.options):
                row = pygame.Rect(body.x, y, body.w, 40)
                if snap.answered_current and idx == snap.selected_option:
                    fill = CORRECT if idx == question.correct_index else WRONG
                    pygame.draw.rect(surface, fill, row)
                elif not snap.answered_current and idx == self._cursor:
                    pygame.draw.rect(surface, ACTIVE_BG, row)
                else:
                    pygame.draw.rect(surface, (9, 20, 106), row)
                pygame.draw.rect(surface, (62, 84, 152), row, 1)
                selected = not snap.answered_current and idx == self._cursor
                label = self._small_font.render(
                    _fit_label(self._small_font, f"{chr(65 + idx)}. {option}", row.w - 24),
                    True,
                    ACTIVE_TEXT if selected else TEXT_MAIN,
                )
                surface.blit(label, (row.x + 12, row.y + (row.h - label.get_height()) // 2))
                y += 46
            return "1-9: Answer  |  Enter: Answer/Next  |  Right: Next  |  F5: Pause  |  F10: Finish"

        y = _draw_wrapped(surface, question.title, body, font=self._small_font, color=TEXT_MAIN, max_lines=2)
        if question.description:
            desc = pygame.Rect(body.x, y + 4, body.w, body.h)
            y = _draw_wrapped(surface, question.description, desc, font=self._tiny_font, color=TEXT_MUTED, max_lines=5)
        box = pygame.Rect(body.x, y + 10, body.w, max(60, body.bottom - y - 10))
        pygame.draw.rect(surface, (30, 30, 60), box)
        pygame.draw.rect(surface, (90, 90, 140), box, 2)
        caret = "|" if (pygame.time.get_ticks() // 500) % 2 == 0 else ""
        _draw_wrapped(
            surface,
            self._input + caret,
            box.inflate(-16, -16),
            font=self._small_font,
            color=TEXT_MAIN,
            max_lines=max(1, (box.h - 16) // (self._small_font.get_linesize() + 2)),
        )
        return "Enter: Save & Next  |  Shift+Enter: New line  |  Tab: Skip  |  F5: Pause  |  F10: Finish"

    def _render_results(self, surface: pygame.Surface, rect: pygame.Rect, snap: SessionSnapshot) -> None:
        summary = snap.summary
        if summary is None:
            self._render_message(surface, rect, "Results unavailable.")
            return

        title = self._small_font.render("Test Complete", True, TEXT_MUTED)
        surface.blit(title, (rect.x, rect.y))
        score = self._big_font.render(f"{summary.score} / {summary.total}", True, TEXT_MAIN)
        surface.blit(score, (rect.x, rect.y + 32))
        label = "Correct" if summary.graded else "Answered"
        surface.blit(self._small_font.render(label, True, TEXT_MUTED), (rect.x, rect.y + 96))

        if summary.mean_elapsed_s is not None:
            timing = self._tiny_font.render(
                f"Mean time per answer: {summary.mean_elapsed_s:.1f}s", True, TEXT_MUTED
            )
            surface.blit(timing, (rect.x, rect.y + 128))


def _choice_from_key(key: int) -> int | None:
    mapping = {getattr(pygame, f"K_{n}"): n for n in range(1, 10)}
    mapping.update({getattr(pygame, f"K_KP{n}"): n for n in range(1, 10)})
    return mapping.get(key)


def run(*, max_frames: int | None = None, event_injector: Callable[[int], None] | None = None) -> int:
    configure_logging()
    config = MockTestConfig.from_env()

    pygame.init()
    pygame.display.set_caption("Mock Test Trainer")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    font = pygame.font.Font(None, 36)
    clock = pygame.time.Clock()

    app = App(surface=surface, font=font)
    executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="mocktest-io")
    session = build_mock_test_session(clock=RealClock(), config=config, executor=executor)
    logger.info("question bank: %s", config.bank_path)

    def open_test(kind: TestKind) -> Callable[[], None]:
        return lambda: app.push(MockTestScreen(app, session=session, kind=kind))

    items = [
        MenuItem(f"{kind.label}  ({config.duration_for(kind) // 60} min)", open_test(kind))
        for kind in TestKind
    ]
    items.append(MenuItem("Quit", app.quit))
    app.push(MenuScreen(app, "Mock Tests", items, is_root=True))

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        session.close()
        executor.shutdown(wait=True)
        pygame.quit()

    return 0
