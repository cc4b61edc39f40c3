# tests/test_integration.py
"""End-to-end test of the core workflow."""
from datetime import datetime, timedelta

from study_cycle.cycle import regenerate_plan
from study_cycle.db import init_db
from study_cycle.exams import get_exam_type, subjects_for_exam
from study_cycle.models import CycleConfig, PomodoroSettings
from study_cycle.planner import build_plan
from study_cycle.pomodoro import PomodoroTimer
from study_cycle.stats import progress_stats, subject_breakdown
from study_cycle.storage import get_active_plan, get_sessions, record_session, save_plan, set_active_plan


def test_plan_study_and_review(tmp_db):
    init_db(tmp_db)

    # Plan
    exam = get_exam_type("oab")
    subjects = subjects_for_exam(exam)
    levels = {subjects[0].name: "beginner", subjects[-1].name: "advanced"}
    plan = build_plan(subjects, levels, 21, CycleConfig(), exam_id=exam.id)
    save_plan(tmp_db, plan)
    set_active_plan(tmp_db, plan.id)
    assert len(plan.cycle) == 14

    # Regenerate with a narrower rotation and persist the copy
    narrow = regenerate_plan(plan, CycleConfig(force_all_subjects=False, subjects_per_cycle=3))
    save_plan(tmp_db, narrow)
    stored = get_active_plan(tmp_db)
    assert stored.config.subjects_per_cycle == 3
    assert len({t.subject for d in stored.cycle for t in d.tasks}) <= 3

    # Study two pomodoros on today's first subject
    now = [datetime(2026, 3, 4, 9, 0)]
    timer = PomodoroTimer(PomodoroSettings(study_time=25 * 60, auto_start_breaks=True,
                                           auto_start_sessions=True), clock=lambda: now[0])
    first_subject = stored.cycle[0].tasks[0].subject
    timer.start(first_subject)
    for _ in range(2):
        now[0] += timedelta(minutes=30)
        for session in timer.tick(30 * 60):
            record_session(tmp_db, session)
    interrupted = timer.stop()
    record_session(tmp_db, interrupted)

    # Review
    sessions = get_sessions(tmp_db)
    assert len(sessions) == 3
    stats = progress_stats(sessions, today=now[0].date())
    assert stats["completed_sessions"] == 2
    assert stats["subject_time"][first_subject] == 50
    rows = subject_breakdown(sessions, stored.subjects)
    assert rows[0]["subject"] == first_subject
    assert rows[0]["percentage"] == 100
