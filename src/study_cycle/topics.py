"""Topic lists and completion progress for plan subjects.

Plans are treated as values here: every update returns a copy and leaves the
plan it was given untouched.
"""
from dataclasses import replace

from study_cycle.models import StudyPlan, Subject, Topic


def make_topics(subject: Subject, names: list[str]) -> list[Topic]:
    """New topics from user-typed names, skipping blanks and names the subject already has."""
    seen = {t.name.lower() for t in subject.topics}
    topics = []
    for raw in names:
        name = raw.strip()
        if not name or name.lower() in seen:
            continue
        seen.add(name.lower())
        index = len(subject.topics) + len(topics)
        topics.append(Topic(id=f"{subject.id}-{index}", name=name, subject_id=subject.id))
    return topics


def add_topics(subject: Subject, names: list[str]) -> Subject:
    return replace(subject, topics=subject.topics + make_topics(subject, names))


def find_subject(plan: StudyPlan, name: str) -> Subject | None:
    for subject in plan.subjects:
        if subject.name == name:
            return subject
    return None


def update_subject(plan: StudyPlan, subject: Subject) -> StudyPlan:
    """Copy of the plan with the subject of the same name swapped in."""
    if find_subject(plan, subject.name) is None:
        raise ValueError(f"Plan has no subject named {subject.name!r}")
    return replace(plan, subjects=[subject if s.name == subject.name else s for s in plan.subjects])


def set_topic_completed(plan: StudyPlan, subject_name: str, topic_id: str, completed: bool = True) -> StudyPlan:
    subject = find_subject(plan, subject_name)
    if subject is None or not any(t.id == topic_id for t in subject.topics):
        raise ValueError(f"No topic {topic_id!r} under {subject_name!r}")
    topics = [replace(t, completed=completed) if t.id == topic_id else t for t in subject.topics]
    return update_subject(plan, replace(subject, topics=topics))


def topic_progress(subject: Subject) -> dict:
    """Completed and total topic counts with the completed share as a whole percentage."""
    total = len(subject.topics)
    completed = sum(1 for t in subject.topics if t.completed)
    return {
        "completed": completed,
        "total": total,
        "percentage": round(completed / total * 100) if total else 0,
    }
