"""Pydantic request/response schemas used by the API and pages.

Schemas keep API input/output shapes stable and provide validation for
controller handlers and tests. Request models (`Add*Dto`,
`Update*Dto`) are validated at the HTTP boundary; response models
flatten related-entity names and counts so callers never see the
junction table.
"""

from datetime import date
from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional

from .models import Difficulty


class RegisterIn(BaseModel):
    """Payload for user registration/login endpoints."""
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class TokenOut(BaseModel):
    """Authentication response containing an access token."""
    access_token: str


# Teachers

class TeacherDto(BaseModel):
    """Teacher summary with derived lesson and quiz counts."""
    teacher_id: int
    name: str
    email: str
    total_lessons: int = 0
    total_quizzes: int = 0


class AddTeacherDto(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr


class UpdateTeacherDto(BaseModel):
    teacher_id: int
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr


# Lessons

class LessonDto(BaseModel):
    """Lesson summary.

    `name` is the owning teacher's name. Projections that do not load
    related rows (lessons listed for a teacher) leave `name`,
    `total_quizzes` and `quiz_names` unset.
    """
    lesson_id: int
    title: str
    description: str = ""
    date_created: date
    teacher_id: Optional[int] = None
    name: Optional[str] = None
    total_quizzes: Optional[int] = None
    quiz_names: Optional[List[str]] = None


class ListLessonDto(BaseModel):
    """A lesson linked to a quiz, annotated with its teacher's name."""
    lesson_id: int
    title: str
    description: str = ""
    date_created: date
    name: str


class AddLessonDto(BaseModel):
    title: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    date_created: date = Field(default_factory=date.today)
    teacher_id: int


class UpdateLessonDto(BaseModel):
    lesson_id: int
    title: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    date_created: date = Field(default_factory=date.today)
    teacher_id: int


# Quizzes

class QuizDto(BaseModel):
    """Quiz summary with the titles of the lessons it is linked to."""
    quiz_id: int
    title: str
    description: str = ""
    date_created: date
    max_mins_allotted: int
    grade: int
    difficulty_level: Difficulty
    total_lessons: int = 0
    lesson_names: List[str] = Field(default_factory=list)


class ListQuizDto(BaseModel):
    """A quiz linked to a lesson."""
    quiz_id: int
    title: str
    grade: int
    difficulty_level: Difficulty


class AddQuizDto(BaseModel):
    title: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    date_created: date = Field(default_factory=date.today)
    max_mins_allotted: int = Field(default=0, ge=0)
    grade: int = 0
    difficulty_level: Difficulty
    lesson_id: int


class UpdateQuizDto(BaseModel):
    quiz_id: int
    title: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    max_mins_allotted: int = Field(default=0, ge=0)
    grade: int = 0
    difficulty_level: Difficulty
