# tests/test_pomodoro.py
from datetime import datetime, timedelta

import pytest

from study_cycle.models import PomodoroSettings
from study_cycle.pomodoro import BREAK, STUDY, PomodoroTimer, format_clock


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 3, 2, 9, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


def make_timer(**overrides):
    settings = PomodoroSettings(study_time=60, break_time=10, long_break_time=30,
                                sessions_until_long_break=2, **overrides)
    clock = FakeClock()
    return PomodoroTimer(settings, clock=clock), clock


def test_start_requires_subject():
    timer, _ = make_timer()
    with pytest.raises(ValueError):
        timer.start("")


def test_invalid_settings_rejected():
    with pytest.raises(ValueError):
        PomodoroTimer(PomodoroSettings(study_time=0))
    with pytest.raises(ValueError):
        PomodoroTimer(PomodoroSettings(sessions_until_long_break=0))


def test_start_sets_study_phase():
    timer, clock = make_timer()
    session = timer.start("Math", topic="Algebra")
    assert timer.mode == STUDY
    assert timer.running
    assert timer.remaining == 60
    assert session.subject == "Math"
    assert session.topic == "Algebra"
    assert session.start_time == clock.now


def test_study_phase_completes_into_session():
    timer, _ = make_timer()
    timer.start("Math")
    assert timer.tick(59) == []
    finished = timer.tick(1)
    assert len(finished) == 1
    session = finished[0]
    assert session.completed is True
    assert session.duration == 1
    assert timer.completed_count == 1
    assert timer.mode == BREAK
    assert timer.remaining == 10
    # breaks wait for the user unless auto_start_breaks
    assert timer.running is False


def test_break_end_returns_to_idle_study():
    timer, _ = make_timer()
    timer.start("Math")
    timer.tick(60)
    timer.resume()
    timer.tick(10)
    assert timer.mode == STUDY
    assert timer.running is False
    assert timer.remaining == 0


def test_long_break_after_every_nth_session():
    timer, _ = make_timer(auto_start_breaks=True, auto_start_sessions=True)
    timer.start("Math")
    assert timer.next_break_is_long() is False
    finished = timer.tick(60)
    assert timer.remaining == 10  # first break is short
    finished += timer.tick(10 + 60)
    assert timer.mode == BREAK
    assert timer.remaining == 30  # second break is long
    assert len(finished) == 2
    assert timer.completed_count == 2


def test_auto_start_sessions_keeps_subject():
    timer, _ = make_timer(auto_start_breaks=True, auto_start_sessions=True)
    timer.start("History", topic="Rome")
    timer.tick(70)
    assert timer.mode == STUDY
    assert timer.running
    assert timer.current_session.subject == "History"
    assert timer.current_session.topic == "Rome"


def test_pause_stops_countdown():
    timer, _ = make_timer()
    timer.start("Math")
    timer.pause()
    timer.tick(30)
    assert timer.remaining == 60
    timer.resume()
    timer.tick(30)
    assert timer.remaining == 30


def test_stop_records_interrupted_session():
    timer, clock = make_timer()
    timer.start("Math")
    clock.advance(150)
    timer.tick(30)
    session = timer.stop()
    assert session.completed is False
    assert session.duration == 2
    assert session.end_time == clock.now
    assert timer.running is False
    assert timer.current_session is None


def test_stop_without_session_returns_none():
    timer, _ = make_timer()
    assert timer.stop() is None


def test_format_clock():
    assert format_clock(1500) == "25:00"
    assert format_clock(65) == "01:05"
    assert format_clock(-3) == "00:00"
