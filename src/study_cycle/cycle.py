"""Rotating 14-day study cycle generation.

The generator is a greedy heuristic: it walks the rotation day by day and
packs subjects into each day until the day's hour target, the per-day slot
cap, or the attempt budget is reached. All usage counters live in
``WeightedSubject`` objects built fresh for each call, so nothing is shared
between runs.
"""
import logging
from dataclasses import replace

from study_cycle.models import (
    BALANCED, CycleConfig, CycleDay, CycleTask, StudyPlan, Subject, WeightedSubject,
)
from study_cycle.weighting import weight_subjects

logger = logging.getLogger(__name__)

CYCLE_LENGTH = 14
MIN_AVERAGE_DAILY_HOURS = 1.5
MIN_DAILY_TARGET = 1.0
MAX_TASKS_PER_DAY = 4
MIN_TASK_HOURS = 0.5
MAX_TASK_HOURS = 2.5
WEEK_DAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
DAY_NAMES = WEEK_DAYS * 2


def average_daily_hours(weekly_hours: float) -> float:
    return max(MIN_AVERAGE_DAILY_HOURS, (weekly_hours * 2) / CYCLE_LENGTH)


def daily_target(weekly_hours: float) -> float:
    """Hours to aim for on each cycle day: never below 1h, never above the flat weekly share."""
    return max(MIN_DAILY_TARGET, min(average_daily_hours(weekly_hours), weekly_hours / 7))


def task_duration(remaining: float, tasks_today: int) -> float:
    """Length of the next slot, spreading what is left over the slots still open today."""
    longest = min(MAX_TASK_HOURS, remaining)
    return max(MIN_TASK_HOURS, min(longest, remaining / max(1, MAX_TASKS_PER_DAY - tasks_today)))


def select_pool(weighted: list[WeightedSubject], config: CycleConfig) -> list[WeightedSubject]:
    if config.force_all_subjects:
        return list(weighted)
    # sorted() is stable, so equal weights keep input order
    ranked = sorted(weighted, key=lambda w: w.weight, reverse=True)
    return ranked[:max(0, config.subjects_per_cycle)]


def _pick(candidates: list[WeightedSubject], focus_mode: str) -> WeightedSubject:
    if focus_mode == BALANCED:
        best = candidates[0]
        for current in candidates[1:]:
            if current.times_used < best.times_used:
                best = current
            elif current.times_used == best.times_used and current.weight > best.weight:
                best = current
        return best
    best = candidates[0]
    best_score = best.weight / (best.times_used + 1)
    for current in candidates[1:]:
        score = current.weight / (current.times_used + 1)
        if score > best_score:
            best, best_score = current, score
    return best


def _eligible(pool: list[WeightedSubject], day: int, picked: set[str],
              avoid_consecutive: bool) -> list[WeightedSubject]:
    return [
        ws for ws in pool
        if ws.name not in picked
        and not (avoid_consecutive and day > 0 and ws.last_used_day == day - 1)
    ]


def _describe(day: CycleDay) -> None:
    day.topic = f"Day {day.day}"
    day.subtopic = f"{day.total_planned_hours:.1f}h of study"
    day.duration = f"{day.total_planned_hours:.1f}h"


def generate_cycle(
    subjects: list[Subject],
    weekly_hours: float,
    config: CycleConfig,
    mastery_levels: dict | None = None,
) -> list[CycleDay]:
    """Build the 14-day rotation for a set of subjects.

    Args:
        subjects: Subjects to schedule. Names must be unique.
        weekly_hours: Weekly study budget; small or negative values are
            lifted by the daily floors.
        config: Pool and selection policy.
        mastery_levels: Optional mastery level per subject name.

    Returns:
        Fourteen CycleDay records, or an empty list when there are no subjects.
    """
    if not subjects:
        logger.warning("No subjects provided for cycle generation")
        return []

    weighted = weight_subjects(subjects, config.focus_mode, mastery_levels)
    pool = select_pool(weighted, config)
    logger.debug("Rotation pool: %s", ", ".join(f"{w.name} ({w.weight})" for w in pool))

    target = daily_target(weekly_hours)
    max_attempts = len(pool) * 3
    cycle = []
    for day in range(CYCLE_LENGTH):
        tasks: list[CycleTask] = []
        picked: set[str] = set()
        hours = 0.0
        attempts = 0
        while hours < target and len(tasks) < MAX_TASKS_PER_DAY and attempts < max_attempts:
            attempts += 1
            candidates = _eligible(pool, day, picked, config.avoid_consecutive)
            if not candidates and hours < MIN_DAILY_TARGET:
                # No alternative subject exists; repeat yesterday's rather than leave the day short
                candidates = _eligible(pool, day, picked, False)
            if not candidates:
                logger.debug("Day %d: no eligible subjects left", day + 1)
                break
            chosen = _pick(candidates, config.focus_mode)
            duration = task_duration(target - hours, len(tasks))
            chosen.times_used += 1
            chosen.last_used_day = day
            picked.add(chosen.name)
            hours += duration
            tasks.append(CycleTask(chosen.name, duration, chosen.subject.color))
            logger.debug("Day %d: %s for %.1fh (day total %.1fh)", day + 1, chosen.name, duration, hours)

        cycle_day = CycleDay(day=day + 1, day_name=DAY_NAMES[day], total_planned_hours=hours, tasks=tasks)
        _describe(cycle_day)
        cycle.append(cycle_day)

    logger.info("Generated %d-day cycle over %d subjects", len(cycle), len(pool))
    return cycle


def regenerate_plan(plan: StudyPlan, config: CycleConfig, subjects: list[Subject] | None = None) -> StudyPlan:
    """Return a copy of the plan with a freshly generated cycle; the input plan is left untouched."""
    subjects = plan.subjects if subjects is None else subjects
    cycle = generate_cycle(subjects, plan.total_hours, config, plan.mastery_levels)
    return replace(plan, subjects=list(subjects), cycle=cycle, config=replace(config))


def cycle_day_for(plan: StudyPlan, day_index: int) -> CycleDay | None:
    """Cycle entry for a running day counter (0-based), wrapping around the rotation."""
    if not plan.cycle:
        return None
    return plan.cycle[day_index % len(plan.cycle)]
