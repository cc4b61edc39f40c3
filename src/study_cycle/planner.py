"""Assemble study plans from assessed subjects."""
import logging
import uuid
from datetime import date

from study_cycle.cycle import WEEK_DAYS, generate_cycle
from study_cycle.models import (
    PLAN_TYPES, CycleConfig, StudyPlan, Subject, WeeklyEntry, WeeklyScheduleDay,
)
from study_cycle.weighting import base_weight, resolve_mastery

logger = logging.getLogger(__name__)

SCHEDULE_DURATIONS = {3: "3h", 2: "2h", 1: "1h"}
SCHEDULE_PRIORITIES = {3: "High", 2: "Medium", 1: "Low"}


def focus_areas(subjects: list[Subject], mastery_levels: dict | None = None) -> list[str]:
    """Names of subjects not yet mastered (beginner or intermediate)."""
    return [s.name for s in subjects if base_weight(resolve_mastery(s, mastery_levels)) >= 2]


def generate_weekly_schedule(subjects: list[Subject], mastery_levels: dict | None = None) -> list[WeeklyScheduleDay]:
    """Fixed Monday-Sunday schedule: weaker subjects get more and longer sessions."""
    schedule = [WeeklyScheduleDay(day=name) for name in WEEK_DAYS]
    for index, subject in enumerate(subjects):
        weight = base_weight(resolve_mastery(subject, mastery_levels))
        for i in range(max(1, weight)):
            schedule[(index * 2 + i) % 7].subjects.append(WeeklyEntry(
                name=subject.name,
                color=subject.color,
                duration=SCHEDULE_DURATIONS[weight],
                priority=SCHEDULE_PRIORITIES[weight],
            ))
    return schedule


def days_until_exam(exam_date: date | None, today: date | None = None) -> int | None:
    if exam_date is None:
        return None
    today = today or date.today()
    return max(0, (exam_date - today).days)


def build_plan(
    subjects: list[Subject],
    mastery_levels: dict,
    weekly_hours: float,
    config: CycleConfig | None = None,
    plan_type: str = "cycle",
    exam_date: date | None = None,
    exam_id: str | None = None,
    name: str = "",
    created_on: date | None = None,
) -> StudyPlan:
    if plan_type not in PLAN_TYPES:
        raise ValueError(f"Unknown plan type: {plan_type!r}")
    if weekly_hours < 0:
        raise ValueError("Weekly hours cannot be negative")
    config = config or CycleConfig()
    levels = {s.name: resolve_mastery(s, mastery_levels) for s in subjects}
    plan = StudyPlan(
        id=uuid.uuid4().hex,
        type=plan_type,
        subjects=list(subjects),
        name=name.strip(),
        total_hours=weekly_hours,
        focus_areas=focus_areas(subjects, levels),
        exam_date=exam_date,
        exam_id=exam_id,
        weekly_hour_limit=weekly_hours,
        mastery_levels=levels,
        config=config,
        created_on=created_on or date.today(),
    )
    if plan_type == "cycle":
        plan.cycle = generate_cycle(subjects, weekly_hours, config, levels)
    else:
        plan.weekly = generate_weekly_schedule(subjects, levels)
    logger.info("Built %s plan %s with %d subjects", plan_type, plan.id, len(subjects))
    return plan
