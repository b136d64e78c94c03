"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Tables only carry foreign keys; the lesson/quiz many-to-many is read
and written through the `LessonQuiz` junction table by the
repositories rather than through ORM relationship collections.
"""

from enum import IntEnum
from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime, date, timezone


class Difficulty(IntEnum):
    """Quiz difficulty, stored and serialized as its integer value."""
    EASY = 0
    MEDIUM = 1
    HARD = 2


class User(SQLModel, table=True):
    """A registered API user.

    Fields:
    - `username`: unique login name
    - `password_hash`: hashed password string (never store plaintext)
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, nullable=False, unique=True)
    password_hash: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Teacher(SQLModel, table=True):
    """A teacher who authors lessons."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100)
    email: str


class Lesson(SQLModel, table=True):
    """A lesson owned by exactly one `Teacher`.

    Removing the teacher removes the lesson (`ON DELETE CASCADE`).
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=100)
    description: str = Field(default="", max_length=500)
    date_created: date = Field(default_factory=date.today)
    teacher_id: int = Field(foreign_key="teacher.id", ondelete="CASCADE", index=True)


class Quiz(SQLModel, table=True):
    """A quiz that can be attached to any number of lessons."""
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=100)
    description: str = Field(default="", max_length=500)
    date_created: date = Field(default_factory=date.today)
    max_mins_allotted: int = 0
    grade: int = 0
    # plain integer column holding a `Difficulty` value
    difficulty_level: int = Field(default=int(Difficulty.EASY))


class LessonQuiz(SQLModel, table=True):
    """Junction row linking a `Lesson` and a `Quiz`.

    The composite primary key guarantees a pair is stored at most once.
    """
    lesson_id: int = Field(foreign_key="lesson.id", ondelete="CASCADE", primary_key=True)
    quiz_id: int = Field(foreign_key="quiz.id", ondelete="CASCADE", primary_key=True)
