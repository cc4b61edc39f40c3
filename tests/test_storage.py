# tests/test_storage.py
from datetime import date, datetime

import pytest

from study_cycle.db import init_db, get_connection
from study_cycle.models import CycleConfig, PomodoroSettings, StudySession, Subject, Subtopic, Topic
from study_cycle.planner import build_plan
from study_cycle.storage import (
    PersistenceError, clear_sessions, delete_plan, get_active_plan, get_sessions, get_setting,
    list_plans, load_plan, load_pomodoro_settings, plan_from_dict, plan_to_dict, record_session,
    rename_plan, save_plan, save_pomodoro_settings, set_active_plan, set_setting,
)


def make_session(subject="Math", day=2, completed=True, duration=25, topic=None):
    return StudySession(
        id=f"{subject}-{day}-{duration}",
        subject=subject,
        topic=topic,
        start_time=datetime(2026, 3, day, 10, 0),
        end_time=datetime(2026, 3, day, 10, 25),
        duration=duration,
        completed=completed,
    )


def test_plan_dict_round_trip(three_subjects):
    subjects = three_subjects + [Subject(
        id="d", name="D",
        topics=[Topic(id="t", name="Optics", subject_id="d", subtopics=[Subtopic(id="s", name="Lenses", topic_id="t")])],
    )]
    plan = build_plan(subjects, {}, 18, CycleConfig(focus_mode="priority"), exam_date=date(2027, 6, 1),
                      name="Spring", created_on=date(2027, 1, 10))
    data = plan_to_dict(plan)
    assert data["exam_date"] == "2027-06-01"
    assert data["created_on"] == "2027-01-10"
    assert data["name"] == "Spring"
    assert plan_from_dict(data) == plan


def test_save_and_load_plan(tmp_db, three_subjects):
    init_db(tmp_db)
    plan = build_plan(three_subjects, {}, 20)
    save_plan(tmp_db, plan)
    assert load_plan(tmp_db, plan.id) == plan
    assert load_plan(tmp_db, "missing") is None


def test_save_plan_overwrites(tmp_db, three_subjects):
    init_db(tmp_db)
    plan = build_plan(three_subjects, {}, 20)
    save_plan(tmp_db, plan)
    plan.total_hours = 30
    save_plan(tmp_db, plan)
    assert load_plan(tmp_db, plan.id).total_hours == 30
    assert len(list_plans(tmp_db)) == 1


def test_schedule_plan_round_trip(tmp_db, three_subjects):
    init_db(tmp_db)
    plan = build_plan(three_subjects, {}, 20, plan_type="schedule")
    save_plan(tmp_db, plan)
    loaded = load_plan(tmp_db, plan.id)
    assert loaded.weekly == plan.weekly


def test_list_plans_summaries(tmp_db, three_subjects):
    init_db(tmp_db)
    save_plan(tmp_db, build_plan(three_subjects, {}, 20, exam_id="gre", name="GRE run"))
    summary = list_plans(tmp_db)[0]
    assert summary["name"] == "GRE run"
    assert summary["type"] == "cycle"
    assert summary["exam_id"] == "gre"
    assert summary["subjects"] == 3
    assert summary["total_hours"] == 20


def test_active_plan(tmp_db, three_subjects):
    init_db(tmp_db)
    assert get_active_plan(tmp_db) is None
    plan = build_plan(three_subjects, {}, 20)
    save_plan(tmp_db, plan)
    set_active_plan(tmp_db, plan.id)
    assert get_active_plan(tmp_db).id == plan.id
    delete_plan(tmp_db, plan.id)
    assert load_plan(tmp_db, plan.id) is None
    assert get_active_plan(tmp_db) is None


def test_corrupt_plan_raises_persistence_error(tmp_db):
    init_db(tmp_db)
    conn = get_connection(tmp_db)
    conn.execute("INSERT INTO kv_store (key, value) VALUES ('plan:bad', '{not json')")
    conn.commit()
    conn.close()
    with pytest.raises(PersistenceError):
        load_plan(tmp_db, "bad")
    # unreadable blobs are skipped in listings
    assert list_plans(tmp_db) == []


def test_missing_tables_raise_persistence_error(tmp_db, three_subjects):
    # database never initialized
    with pytest.raises(PersistenceError):
        save_plan(tmp_db, build_plan(three_subjects, {}, 20))


def test_settings(tmp_db):
    init_db(tmp_db)
    assert get_setting(tmp_db, "x") is None
    assert get_setting(tmp_db, "x", "fallback") == "fallback"
    set_setting(tmp_db, "x", "1")
    set_setting(tmp_db, "x", "2")
    assert get_setting(tmp_db, "x") == "2"


def test_pomodoro_settings_round_trip(tmp_db):
    init_db(tmp_db)
    assert load_pomodoro_settings(tmp_db) == PomodoroSettings()
    custom = PomodoroSettings(study_time=50 * 60, sessions_until_long_break=3)
    save_pomodoro_settings(tmp_db, custom)
    assert load_pomodoro_settings(tmp_db) == custom


def test_corrupt_pomodoro_settings(tmp_db):
    init_db(tmp_db)
    set_setting(tmp_db, "pomodoro_settings", '{"unknown": 1}')
    with pytest.raises(PersistenceError):
        load_pomodoro_settings(tmp_db)


def test_record_and_get_sessions(tmp_db):
    init_db(tmp_db)
    record_session(tmp_db, make_session("Physics", day=3))
    record_session(tmp_db, make_session("Math", day=2, completed=False, duration=12, topic="Algebra"))
    sessions = get_sessions(tmp_db)
    assert [s.subject for s in sessions] == ["Math", "Physics"]
    assert sessions[0] == make_session("Math", day=2, completed=False, duration=12, topic="Algebra")
    assert [s.subject for s in get_sessions(tmp_db, subject="Physics")] == ["Physics"]


def test_clear_sessions(tmp_db):
    init_db(tmp_db)
    record_session(tmp_db, make_session())
    clear_sessions(tmp_db)
    assert get_sessions(tmp_db) == []


def test_plan_without_stored_name_or_start_date(three_subjects):
    data = plan_to_dict(build_plan(three_subjects, {}, 20))
    del data["name"]
    del data["created_on"]
    plan = plan_from_dict(data)
    assert plan.name == ""
    assert plan.created_on == date.today()


def test_rename_plan(tmp_db, three_subjects):
    init_db(tmp_db)
    plan = build_plan(three_subjects, {}, 20, name="Draft")
    save_plan(tmp_db, plan)
    renamed = rename_plan(tmp_db, plan.id, "  Final  ")
    assert renamed.name == "Final"
    assert renamed.id == plan.id
    assert load_plan(tmp_db, plan.id) == renamed
    assert plan.name == "Draft"
    assert rename_plan(tmp_db, "missing", "x") is None
