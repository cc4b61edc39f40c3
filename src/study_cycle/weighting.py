"""Subject weighting from self-assessed mastery and focus mode."""
from study_cycle.models import (
    BEGINNER, INTERMEDIATE, ADVANCED, DEFAULT_MASTERY, PRIORITY, DIFFICULTY,
    MASTERY_LEVELS, Subject, WeightedSubject,
)

# Lower mastery means more repetition
BASE_WEIGHTS = {BEGINNER: 3, INTERMEDIATE: 2, ADVANCED: 1}
FOCUS_MULTIPLIERS = {PRIORITY: 1.5, DIFFICULTY: 2}


def base_weight(mastery_level: str | None) -> int:
    return BASE_WEIGHTS.get(mastery_level or DEFAULT_MASTERY, BASE_WEIGHTS[DEFAULT_MASTERY])


def resolve_mastery(subject: Subject, mastery_levels: dict | None = None) -> str:
    """Mastery level for a subject: caller's map by name, then the subject, then the default."""
    level = (mastery_levels or {}).get(subject.name) or subject.mastery_level
    return level if level in MASTERY_LEVELS else DEFAULT_MASTERY


def compute_weight(subject: Subject, mastery_level: str | None, focus_mode: str) -> float:
    """Scheduling weight for one subject.

    Args:
        subject: The subject being weighted (kept for the call contract; only
            its mastery level matters).
        mastery_level: beginner, intermediate or advanced. Missing or unknown
            values count as intermediate.
        focus_mode: balanced leaves the base weight, priority multiplies it by
            1.5 and difficulty by 2.

    Returns:
        A float >= 1.
    """
    weight = float(base_weight(mastery_level))
    return weight * FOCUS_MULTIPLIERS.get(focus_mode, 1)


def weight_subjects(subjects: list[Subject], focus_mode: str,
                    mastery_levels: dict | None = None) -> list[WeightedSubject]:
    """Wrap each subject with its weight, keeping input order."""
    return [
        WeightedSubject(
            subject=s,
            weight=compute_weight(s, resolve_mastery(s, mastery_levels), focus_mode),
        )
        for s in subjects
    ]
