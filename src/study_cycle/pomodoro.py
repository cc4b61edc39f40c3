"""Pomodoro timer that turns focused study time into session records."""
import logging
import math
import uuid
from dataclasses import replace
from datetime import datetime

from study_cycle.models import PomodoroSettings, StudySession

logger = logging.getLogger(__name__)

STUDY = "study"
BREAK = "break"


def format_clock(seconds: int) -> str:
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes:02d}:{secs:02d}"


class PomodoroTimer:
    """Study/break countdown driven by explicit ticks.

    The timer never reads a wall clock on its own schedule: callers advance it
    with ``tick`` and timestamps come from ``clock``.
    """

    def __init__(self, settings: PomodoroSettings | None = None, clock=datetime.now):
        self.settings = settings or PomodoroSettings()
        if self.settings.study_time <= 0:
            raise ValueError("Study time must be positive")
        if self.settings.sessions_until_long_break <= 0:
            raise ValueError("Sessions until long break must be positive")
        self.clock = clock
        self.mode = STUDY
        self.remaining = 0
        self.running = False
        self.completed_count = 0
        self.current_session: StudySession | None = None
        self._context: dict | None = None

    def start(self, subject: str, topic: str | None = None, subtopic: str | None = None,
              task_id: str | None = None) -> StudySession:
        if not subject:
            raise ValueError("A subject is required to start the timer")
        self._context = {"subject": subject, "topic": topic or None,
                         "subtopic": subtopic or None, "task_id": task_id or None}
        return self._begin_study()

    def _begin_study(self) -> StudySession:
        self.current_session = StudySession(id=uuid.uuid4().hex, start_time=self.clock(), **self._context)
        self.mode = STUDY
        self.remaining = self.settings.study_time
        self.running = True
        logger.debug("Study phase started for %s", self._context["subject"])
        return self.current_session

    def pause(self) -> None:
        self.running = False

    def resume(self) -> None:
        if self.remaining > 0:
            self.running = True

    def stop(self) -> StudySession | None:
        """Abandon the current phase; an interrupted study phase is returned as an incomplete session."""
        session = None
        if self.current_session is not None:
            end = self.clock()
            elapsed = (end - self.current_session.start_time).total_seconds()
            session = replace(
                self.current_session, end_time=end, duration=math.floor(elapsed / 60), completed=False,
            )
        self.mode = STUDY
        self.remaining = 0
        self.running = False
        self.current_session = None
        self._context = None
        return session

    def next_break_is_long(self) -> bool:
        return (self.completed_count + 1) % self.settings.sessions_until_long_break == 0

    def tick(self, seconds: int = 1) -> list[StudySession]:
        """Advance the countdown. Returns the sessions completed during this tick."""
        finished = []
        while seconds > 0 and self.running:
            step = min(seconds, self.remaining)
            self.remaining -= step
            seconds -= step
            if self.remaining > 0:
                break
            if self.mode == STUDY:
                finished.append(self._finish_study())
            else:
                self._finish_break()
        return finished

    def _finish_study(self) -> StudySession:
        long_break = self.next_break_is_long()
        session = replace(
            self.current_session, end_time=self.clock(),
            duration=self.settings.study_time / 60, completed=True,
        )
        self.completed_count += 1
        self.current_session = None
        self.mode = BREAK
        self.remaining = self.settings.long_break_time if long_break else self.settings.break_time
        self.running = self.settings.auto_start_breaks
        if self.remaining <= 0:
            self._finish_break()
        logger.info("Completed %s study session #%d", session.subject, self.completed_count)
        return session

    def _finish_break(self) -> None:
        if self.settings.auto_start_sessions and self._context:
            self._begin_study()
            return
        self.mode = STUDY
        self.remaining = 0
        self.running = False
