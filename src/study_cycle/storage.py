"""Plan, session and settings persistence.

Plans are kept as plain JSON blobs in the key-value table; sessions get a row
each. Every storage failure surfaces as ``PersistenceError`` so callers can
report it and keep working with the plan they hold in memory.
"""
import json
import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import asdict, replace
from datetime import date, datetime

from study_cycle.db import get_connection
from study_cycle.models import (
    CycleConfig, CycleDay, CycleTask, PomodoroSettings, StudyPlan, StudySession,
    Subject, Subtopic, Topic, WeeklyEntry, WeeklyScheduleDay,
)

logger = logging.getLogger(__name__)

PLAN_KEY_PREFIX = "plan:"
ACTIVE_PLAN_SETTING = "active_plan_id"
POMODORO_SETTING = "pomodoro_settings"


class PersistenceError(Exception):
    """Raised when the plan store cannot be read or written."""


@contextmanager
def _connect(db_path: str):
    try:
        conn = get_connection(db_path)
    except sqlite3.Error as e:
        raise PersistenceError(f"Cannot open database {db_path}: {e}") from e
    try:
        yield conn
        conn.commit()
    except sqlite3.Error as e:
        logger.error("Storage failure on %s: %s", db_path, e)
        raise PersistenceError(str(e)) from e
    finally:
        conn.close()


# --- serialization ---


def _subject_from_dict(data: dict) -> Subject:
    topics = [
        Topic(**{**t, "subtopics": [Subtopic(**st) for st in t.get("subtopics", [])]})
        for t in data.get("topics", [])
    ]
    return Subject(**{**data, "topics": topics})


def plan_to_dict(plan: StudyPlan) -> dict:
    data = asdict(plan)
    data["exam_date"] = plan.exam_date.isoformat() if plan.exam_date else None
    data["created_on"] = plan.created_on.isoformat()
    return data


def plan_from_dict(data: dict) -> StudyPlan:
    exam_date = data.get("exam_date")
    created_on = data.get("created_on")
    return StudyPlan(
        id=data["id"],
        type=data["type"],
        name=data.get("name", ""),
        subjects=[_subject_from_dict(s) for s in data.get("subjects", [])],
        total_hours=data["total_hours"],
        cycle=[
            CycleDay(**{**d, "tasks": [CycleTask(**t) for t in d.get("tasks", [])]})
            for d in data.get("cycle", [])
        ],
        weekly=[
            WeeklyScheduleDay(day=w["day"], subjects=[WeeklyEntry(**e) for e in w.get("subjects", [])])
            for w in data.get("weekly", [])
        ],
        focus_areas=data.get("focus_areas", []),
        exam_date=date.fromisoformat(exam_date) if exam_date else None,
        exam_id=data.get("exam_id"),
        weekly_hour_limit=data.get("weekly_hour_limit"),
        mastery_levels=data.get("mastery_levels", {}),
        config=CycleConfig(**data.get("config", {})),
        # plans saved before start dates were stored begin today
        created_on=date.fromisoformat(created_on) if created_on else date.today(),
    )


def _session_from_row(row) -> StudySession:
    return StudySession(
        id=row["id"],
        subject=row["subject"],
        topic=row["topic"],
        subtopic=row["subtopic"],
        start_time=datetime.fromisoformat(row["start_time"]),
        end_time=datetime.fromisoformat(row["end_time"]) if row["end_time"] else None,
        duration=row["duration"],
        completed=bool(row["completed"]),
        notes=row["notes"],
        task_id=row["task_id"],
    )


# --- settings ---


def get_setting(db_path: str, key: str, default: str = None) -> str | None:
    with _connect(db_path) as conn:
        row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
    return row["value"] if row else default


def set_setting(db_path: str, key: str, value: str) -> None:
    with _connect(db_path) as conn:
        conn.execute(
            "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
            (key, value, value),
        )


def load_pomodoro_settings(db_path: str) -> PomodoroSettings:
    raw = get_setting(db_path, POMODORO_SETTING)
    if not raw:
        return PomodoroSettings()
    try:
        return PomodoroSettings(**json.loads(raw))
    except (ValueError, TypeError) as e:
        raise PersistenceError(f"Corrupt timer settings: {e}") from e


def save_pomodoro_settings(db_path: str, settings: PomodoroSettings) -> None:
    set_setting(db_path, POMODORO_SETTING, json.dumps(asdict(settings)))


# --- plans ---


def save_plan(db_path: str, plan: StudyPlan) -> None:
    blob = json.dumps(plan_to_dict(plan))
    with _connect(db_path) as conn:
        conn.execute(
            """INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at""",
            (PLAN_KEY_PREFIX + plan.id, blob, datetime.now().isoformat()),
        )
    logger.debug("Saved plan %s (%d bytes)", plan.id, len(blob))


def load_plan(db_path: str, plan_id: str) -> StudyPlan | None:
    with _connect(db_path) as conn:
        row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (PLAN_KEY_PREFIX + plan_id,)).fetchone()
    if not row:
        return None
    try:
        return plan_from_dict(json.loads(row["value"]))
    except (ValueError, KeyError, TypeError) as e:
        raise PersistenceError(f"Stored plan {plan_id} is unreadable: {e}") from e


def list_plans(db_path: str) -> list[dict]:
    """Summaries of stored plans, most recently saved first."""
    with _connect(db_path) as conn:
        rows = conn.execute(
            "SELECT key, value, updated_at FROM kv_store WHERE key LIKE ? ORDER BY updated_at DESC",
            (PLAN_KEY_PREFIX + "%",),
        ).fetchall()
    summaries = []
    for r in rows:
        try:
            data = json.loads(r["value"])
        except ValueError:
            logger.warning("Skipping unreadable plan blob %s", r["key"])
            continue
        summaries.append({
            "id": r["key"][len(PLAN_KEY_PREFIX):],
            "name": data.get("name") or "",
            "type": data.get("type"),
            "exam_id": data.get("exam_id"),
            "subjects": len(data.get("subjects", [])),
            "total_hours": data.get("total_hours"),
            "updated_at": r["updated_at"],
        })
    return summaries


def delete_plan(db_path: str, plan_id: str) -> None:
    with _connect(db_path) as conn:
        conn.execute("DELETE FROM kv_store WHERE key = ?", (PLAN_KEY_PREFIX + plan_id,))
    if get_setting(db_path, ACTIVE_PLAN_SETTING) == plan_id:
        set_setting(db_path, ACTIVE_PLAN_SETTING, "")


def rename_plan(db_path: str, plan_id: str, name: str) -> StudyPlan | None:
    plan = load_plan(db_path, plan_id)
    if plan is None:
        return None
    renamed = replace(plan, name=name.strip())
    save_plan(db_path, renamed)
    return renamed


def set_active_plan(db_path: str, plan_id: str) -> None:
    set_setting(db_path, ACTIVE_PLAN_SETTING, plan_id)


def get_active_plan(db_path: str) -> StudyPlan | None:
    plan_id = get_setting(db_path, ACTIVE_PLAN_SETTING)
    return load_plan(db_path, plan_id) if plan_id else None


# --- sessions ---


def record_session(db_path: str, session: StudySession) -> None:
    with _connect(db_path) as conn:
        conn.execute(
            """INSERT OR REPLACE INTO study_sessions
            (id, subject, topic, subtopic, start_time, end_time, duration, completed, notes, task_id)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                session.id, session.subject, session.topic, session.subtopic,
                session.start_time.isoformat(),
                session.end_time.isoformat() if session.end_time else None,
                session.duration, int(session.completed), session.notes, session.task_id,
            ),
        )


def get_sessions(db_path: str, subject: str | None = None) -> list[StudySession]:
    with _connect(db_path) as conn:
        if subject:
            rows = conn.execute(
                "SELECT * FROM study_sessions WHERE subject = ? ORDER BY start_time", (subject,)
            ).fetchall()
        else:
            rows = conn.execute("SELECT * FROM study_sessions ORDER BY start_time").fetchall()
    return [_session_from_row(r) for r in rows]


def clear_sessions(db_path: str) -> None:
    with _connect(db_path) as conn:
        conn.execute("DELETE FROM study_sessions")
