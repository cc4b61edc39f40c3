import pytest

from study_cycle.models import Subject


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_planner.db")
    return db_path


@pytest.fixture
def three_subjects():
    return [
        Subject(id="a", name="A", mastery_level="beginner"),
        Subject(id="b", name="B", mastery_level="intermediate"),
        Subject(id="c", name="C", mastery_level="advanced"),
    ]
