"""Progress statistics derived from study session history."""
from datetime import date, timedelta

from study_cycle.cycle import cycle_day_for
from study_cycle.models import DEFAULT_COLOR, StudyPlan, StudySession, Subject


def format_minutes(minutes: float) -> str:
    total = int(round(minutes))
    hours, mins = divmod(total, 60)
    if hours:
        return f"{hours}h {mins:02d}m"
    return f"{mins}m"


def week_bounds(today: date) -> tuple[date, date]:
    """Monday and Sunday of the week containing ``today``."""
    start = today - timedelta(days=today.weekday())
    return start, start + timedelta(days=6)


def _minutes(sessions: list[StudySession]) -> float:
    return sum(s.duration for s in sessions)


def progress_stats(sessions: list[StudySession], today: date | None = None) -> dict:
    today = today or date.today()
    week_start, week_end = week_bounds(today)
    today_sessions = [s for s in sessions if s.start_time.date() == today]
    week_sessions = [s for s in sessions if week_start <= s.start_time.date() <= week_end]

    subject_time: dict[str, float] = {}
    topic_time: dict[str, float] = {}
    for s in sessions:
        subject_time[s.subject] = subject_time.get(s.subject, 0) + s.duration
        if s.topic:
            key = f"{s.subject} - {s.topic}"
            topic_time[key] = topic_time.get(key, 0) + s.duration

    return {
        "total_time": _minutes(sessions),
        "today_time": _minutes(today_sessions),
        "week_time": _minutes(week_sessions),
        "completed_sessions": sum(1 for s in sessions if s.completed),
        "today_completed": sum(1 for s in today_sessions if s.completed),
        "week_completed": sum(1 for s in week_sessions if s.completed),
        "subject_time": subject_time,
        "topic_time": topic_time,
    }


def subject_breakdown(sessions: list[StudySession], subjects: list[Subject]) -> list[dict]:
    """Minutes per subject with colour and share of total, largest first."""
    stats = progress_stats(sessions)
    total = stats["total_time"]
    colors = {s.name: s.color for s in subjects}
    rows = [
        {
            "subject": name,
            "minutes": minutes,
            "color": colors.get(name, DEFAULT_COLOR),
            "percentage": round(minutes / total * 100) if total else 0,
        }
        for name, minutes in stats["subject_time"].items()
    ]
    return sorted(rows, key=lambda r: r["minutes"], reverse=True)


def recent_sessions(sessions: list[StudySession], limit: int = 10) -> list[StudySession]:
    return sorted(sessions, key=lambda s: s.start_time, reverse=True)[:limit]


def plan_adherence(plan: StudyPlan, sessions: list[StudySession], day_index: int,
                   today: date | None = None) -> dict:
    """Planned hours for a cycle day against what was actually studied today."""
    today = today or date.today()
    cycle_day = cycle_day_for(plan, day_index)
    planned = cycle_day.total_planned_hours if cycle_day else 0.0
    studied = _minutes([s for s in sessions if s.start_time.date() == today]) / 60
    return {
        "day": cycle_day.day if cycle_day else None,
        "day_name": cycle_day.day_name if cycle_day else None,
        "planned_hours": round(planned, 2),
        "studied_hours": round(studied, 2),
        "percentage": round(min(100.0, studied / planned * 100), 1) if planned else 0.0,
    }
