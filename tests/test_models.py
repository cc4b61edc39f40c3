"""Tests for data model classes."""
from datetime import date

from study_cycle.models import (
    CycleConfig, CycleDay, PomodoroSettings, StudyPlan, StudySession, Subject, WeeklyEntry, WeeklyScheduleDay,
)


def test_subject_defaults():
    s = Subject(id="1", name="Math")
    assert s.mastery_level is None
    assert s.priority == 1
    assert s.color == "#8884d8"
    assert s.topics == []
    assert s.custom_subject is False


def test_cycle_config_defaults():
    c = CycleConfig()
    assert c.force_all_subjects is True
    assert c.focus_mode == "balanced"
    assert c.avoid_consecutive is True
    assert c.rotation_intensity == 1


def test_cycle_day_defaults():
    d = CycleDay(day=1, day_name="Monday", total_planned_hours=2.0)
    assert d.tasks == []
    assert d.subject == "Scheduled study"
    assert d.priority == 1


def test_study_plan_defaults():
    p = StudyPlan(id="p", type="cycle", subjects=[], total_hours=10)
    assert p.cycle == []
    assert p.weekly == []
    assert p.exam_date is None
    assert p.config == CycleConfig()
    assert p.name == ""
    assert p.created_on == date.today()
    # mutable defaults are not shared
    p.focus_areas.append("x")
    assert StudyPlan(id="q", type="cycle", subjects=[], total_hours=1).focus_areas == []


def test_pomodoro_defaults():
    s = PomodoroSettings()
    assert s.study_time == 1500
    assert s.break_time == 300
    assert s.long_break_time == 900
    assert s.sessions_until_long_break == 4


def test_study_session_defaults():
    from datetime import datetime
    s = StudySession(id="1", subject="Math", start_time=datetime(2026, 1, 1))
    assert s.duration == 0
    assert s.completed is False
    assert s.end_time is None


def test_weekly_day_total_hours():
    day = WeeklyScheduleDay(day="Monday", subjects=[
        WeeklyEntry(name="A", color="#000", duration="3h", priority="High"),
        WeeklyEntry(name="B", color="#000", duration="1h", priority="Low"),
    ])
    assert day.total_planned_hours == 4
