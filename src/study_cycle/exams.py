"""Exam catalogue and subject construction."""
import json
from pathlib import Path

from study_cycle.models import ExamType, Subject

CONTENT_DIR = Path(__file__).parent / "content"
CUSTOM_EXAM_ID = "custom"
SUBJECT_COLORS = ["#8884d8", "#82ca9d", "#ffc658", "#ff7c7c", "#8dd1e1", "#d084d0", "#ffb347", "#87d068"]


def load_exam_types(path: Path = CONTENT_DIR / "exams.json") -> list[ExamType]:
    """Load the packaged exam catalogue."""
    data = json.loads(path.read_text())
    return [ExamType(**exam) for exam in data["exams"]]


def get_exam_type(exam_id: str, exam_types: list[ExamType] | None = None) -> ExamType | None:
    for exam in exam_types if exam_types is not None else load_exam_types():
        if exam.id == exam_id:
            return exam
    return None


def subjects_for_exam(exam: ExamType) -> list[Subject]:
    return [
        Subject(id=str(i), name=name, priority=1, color=SUBJECT_COLORS[i % len(SUBJECT_COLORS)])
        for i, name in enumerate(exam.default_subjects)
    ]


def custom_subjects(names: list[str]) -> list[Subject]:
    """Subjects from user-typed names. Blank and repeated names are dropped since names key everything else."""
    seen = set()
    subjects = []
    for raw in names:
        name = raw.strip()
        if not name or name.lower() in seen:
            continue
        seen.add(name.lower())
        i = len(subjects)
        subjects.append(Subject(
            id=str(i), name=name, color=SUBJECT_COLORS[i % len(SUBJECT_COLORS)], custom_subject=True,
        ))
    return subjects
