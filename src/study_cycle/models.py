"""Data classes for the study planner domain model."""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

BEGINNER = "beginner"
INTERMEDIATE = "intermediate"
ADVANCED = "advanced"
MASTERY_LEVELS = (BEGINNER, INTERMEDIATE, ADVANCED)
DEFAULT_MASTERY = INTERMEDIATE

BALANCED = "balanced"
PRIORITY = "priority"
DIFFICULTY = "difficulty"
FOCUS_MODES = (BALANCED, PRIORITY, DIFFICULTY)

PLAN_TYPES = ("cycle", "schedule")
DEFAULT_COLOR = "#8884d8"

# Before day 0, and far enough back that day 0 never counts as "yesterday"
LAST_USED_SENTINEL = -3


@dataclass
class Subtopic:
    id: str
    name: str
    topic_id: str
    weight: Optional[float] = None
    completed: bool = False


@dataclass
class Topic:
    id: str
    name: str
    subject_id: str
    subtopics: list[Subtopic] = field(default_factory=list)
    weight: Optional[float] = None
    completed: bool = False


@dataclass
class Subject:
    id: str
    name: str
    mastery_level: Optional[str] = None
    priority: int = 1
    color: str = DEFAULT_COLOR
    topics: list[Topic] = field(default_factory=list)
    custom_subject: bool = False


@dataclass
class CycleConfig:
    force_all_subjects: bool = True
    subjects_per_cycle: int = 5
    focus_mode: str = BALANCED
    avoid_consecutive: bool = True
    rotation_intensity: int = 1  # reserved, not read by the generator


@dataclass
class WeightedSubject:
    subject: Subject
    weight: float
    times_used: int = 0
    last_used_day: int = LAST_USED_SENTINEL

    @property
    def name(self) -> str:
        return self.subject.name


@dataclass
class CycleTask:
    subject: str
    duration_hours: float
    color: str = DEFAULT_COLOR


@dataclass
class CycleDay:
    day: int
    day_name: str
    total_planned_hours: float
    tasks: list[CycleTask] = field(default_factory=list)
    subject: str = "Scheduled study"
    topic: str = ""
    subtopic: str = ""
    color: str = DEFAULT_COLOR
    duration: str = ""
    focus: str = "Planned"
    priority: int = 1


@dataclass
class WeeklyEntry:
    name: str
    color: str
    duration: str
    priority: str


@dataclass
class WeeklyScheduleDay:
    day: str
    subjects: list[WeeklyEntry] = field(default_factory=list)

    @property
    def total_planned_hours(self) -> float:
        return sum(float(e.duration.rstrip("h")) for e in self.subjects)


@dataclass
class StudyPlan:
    id: str
    type: str
    subjects: list[Subject]
    total_hours: float
    name: str = ""
    cycle: list[CycleDay] = field(default_factory=list)
    weekly: list[WeeklyScheduleDay] = field(default_factory=list)
    focus_areas: list[str] = field(default_factory=list)
    exam_date: Optional[date] = None
    exam_id: Optional[str] = None
    weekly_hour_limit: Optional[float] = None
    mastery_levels: dict[str, str] = field(default_factory=dict)
    config: CycleConfig = field(default_factory=CycleConfig)
    created_on: date = field(default_factory=date.today)  # day 1 of the rotation


@dataclass
class StudySession:
    id: str
    subject: str
    start_time: datetime
    duration: float = 0  # minutes
    completed: bool = False
    topic: Optional[str] = None
    subtopic: Optional[str] = None
    end_time: Optional[datetime] = None
    notes: Optional[str] = None
    task_id: Optional[str] = None


@dataclass
class PomodoroSettings:
    study_time: int = 25 * 60  # seconds
    break_time: int = 5 * 60
    long_break_time: int = 15 * 60
    sessions_until_long_break: int = 4
    auto_start_breaks: bool = False
    auto_start_sessions: bool = False
    sound_enabled: bool = True


@dataclass
class ExamType:
    id: str
    name: str
    description: str = ""
    default_subjects: list[str] = field(default_factory=list)
    recommended_hours: Optional[float] = None
    difficulty: Optional[str] = None
