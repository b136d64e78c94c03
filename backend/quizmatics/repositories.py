"""Repository classes encapsulating database operations.

Each repository is small and focused on a single table (users,
teachers, lessons, quizzes, lesson/quiz links). Repositories return
SQLModel objects or plain tuples and perform commits/refreshes where
appropriate; they never build response shapes.
"""

from typing import Dict, Iterable, List, Optional, Tuple
from sqlmodel import Session, select
from sqlalchemy import func
from . import models


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.User) -> models.User:
        """Persist a new user and return the managed instance."""
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_by_username(self, username: str) -> Optional[models.User]:
        """Return a `User` by username or `None` if not found."""
        stmt = select(models.User).where(models.User.username == username)
        return self.session.exec(stmt).first()

    def get(self, user_id: int) -> Optional[models.User]:
        """Get a `User` by primary key."""
        return self.session.get(models.User, user_id)


class TeacherRepository:
    """CRUD operations and lesson/quiz tallies for `Teacher` rows."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, teacher: models.Teacher) -> models.Teacher:
        self.session.add(teacher)
        self.session.commit()
        self.session.refresh(teacher)
        return teacher

    def get(self, teacher_id: int) -> Optional[models.Teacher]:
        return self.session.get(models.Teacher, teacher_id)

    def list_all(self) -> List[models.Teacher]:
        stmt = select(models.Teacher).order_by(models.Teacher.id)
        return self.session.exec(stmt).all()

    def save(self, teacher: models.Teacher) -> models.Teacher:
        """Flush pending attribute changes of a loaded teacher."""
        self.session.add(teacher)
        self.session.commit()
        return teacher

    def delete(self, teacher: models.Teacher) -> None:
        """Delete a teacher; the database cascades to lessons and links."""
        self.session.delete(teacher)
        self.session.commit()

    def lesson_counts(self, teacher_id: Optional[int] = None) -> Dict[int, int]:
        """Return `{teacher_id: number of lessons}` for teachers owning lessons."""
        stmt = select(models.Lesson.teacher_id, func.count(models.Lesson.id)).group_by(models.Lesson.teacher_id)
        if teacher_id is not None:
            stmt = stmt.where(models.Lesson.teacher_id == teacher_id)
        return {tid: count for tid, count in self.session.exec(stmt).all()}

    def link_counts(self, teacher_id: Optional[int] = None) -> Dict[int, int]:
        """Return `{teacher_id: number of lesson/quiz links}`.

        Links are counted per lesson, so a quiz attached to two lessons
        of the same teacher is counted twice.
        """
        stmt = (
            select(models.Lesson.teacher_id, func.count(models.LessonQuiz.quiz_id))
            .join(models.LessonQuiz, models.LessonQuiz.lesson_id == models.Lesson.id)
            .group_by(models.Lesson.teacher_id)
        )
        if teacher_id is not None:
            stmt = stmt.where(models.Lesson.teacher_id == teacher_id)
        return {tid: count for tid, count in self.session.exec(stmt).all()}


class LessonRepository:
    """CRUD operations for `Lesson` rows."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, lesson: models.Lesson) -> models.Lesson:
        self.session.add(lesson)
        self.session.commit()
        self.session.refresh(lesson)
        return lesson

    def get(self, lesson_id: int) -> Optional[models.Lesson]:
        return self.session.get(models.Lesson, lesson_id)

    def save(self, lesson: models.Lesson) -> models.Lesson:
        self.session.add(lesson)
        self.session.commit()
        return lesson

    def delete(self, lesson: models.Lesson) -> None:
        self.session.delete(lesson)
        self.session.commit()

    def list_with_teacher_names(self, lesson_id: Optional[int] = None) -> List[Tuple[models.Lesson, Optional[str]]]:
        """Return `(lesson, teacher name)` pairs ordered by lesson id.

        When `lesson_id` is given the result holds at most one pair.
        """
        stmt = (
            select(models.Lesson, models.Teacher.name)
            .join(models.Teacher, models.Teacher.id == models.Lesson.teacher_id, isouter=True)
            .order_by(models.Lesson.id)
        )
        if lesson_id is not None:
            stmt = stmt.where(models.Lesson.id == lesson_id)
        return self.session.exec(stmt).all()

    def list_by_teacher(self, teacher_id: int) -> List[models.Lesson]:
        stmt = select(models.Lesson).where(models.Lesson.teacher_id == teacher_id).order_by(models.Lesson.id)
        return self.session.exec(stmt).all()


class QuizRepository:
    """CRUD operations for `Quiz` rows."""
    def __init__(self, session: Session):
        self.session = session

    def create_with_link(self, quiz: models.Quiz, lesson_id: int) -> models.Quiz:
        """Insert a quiz together with its first lesson link in one commit."""
        self.session.add(quiz)
        self.session.flush()
        self.session.add(models.LessonQuiz(lesson_id=lesson_id, quiz_id=quiz.id))
        self.session.commit()
        self.session.refresh(quiz)
        return quiz

    def get(self, quiz_id: int) -> Optional[models.Quiz]:
        return self.session.get(models.Quiz, quiz_id)

    def list_all(self) -> List[models.Quiz]:
        stmt = select(models.Quiz).order_by(models.Quiz.id)
        return self.session.exec(stmt).all()

    def save(self, quiz: models.Quiz) -> models.Quiz:
        self.session.add(quiz)
        self.session.commit()
        return quiz

    def delete(self, quiz: models.Quiz) -> None:
        self.session.delete(quiz)
        self.session.commit()


class LessonQuizRepository:
    """Queries and mutations on the lesson/quiz junction table."""
    def __init__(self, session: Session):
        self.session = session

    def get(self, lesson_id: int, quiz_id: int) -> Optional[models.LessonQuiz]:
        """Return the junction row for a pair or `None` if not linked."""
        return self.session.get(models.LessonQuiz, (lesson_id, quiz_id))

    def link(self, lesson_id: int, quiz_id: int) -> models.LessonQuiz:
        row = models.LessonQuiz(lesson_id=lesson_id, quiz_id=quiz_id)
        self.session.add(row)
        self.session.commit()
        return row

    def unlink(self, row: models.LessonQuiz) -> None:
        self.session.delete(row)
        self.session.commit()

    def quizzes_for_lesson(self, lesson_id: int) -> List[models.Quiz]:
        stmt = (
            select(models.Quiz)
            .join(models.LessonQuiz, models.LessonQuiz.quiz_id == models.Quiz.id)
            .where(models.LessonQuiz.lesson_id == lesson_id)
            .order_by(models.Quiz.id)
        )
        return self.session.exec(stmt).all()

    def lessons_for_quiz(self, quiz_id: int) -> List[Tuple[models.Lesson, Optional[str]]]:
        """Return `(lesson, teacher name)` pairs for every lesson linked to a quiz."""
        stmt = (
            select(models.Lesson, models.Teacher.name)
            .join(models.LessonQuiz, models.LessonQuiz.lesson_id == models.Lesson.id)
            .join(models.Teacher, models.Teacher.id == models.Lesson.teacher_id, isouter=True)
            .where(models.LessonQuiz.quiz_id == quiz_id)
            .order_by(models.Lesson.id)
        )
        return self.session.exec(stmt).all()

    def quiz_titles_by_lesson(self, lesson_ids: Iterable[int]) -> Dict[int, List[str]]:
        """Map each lesson id to the titles of its linked quizzes."""
        ids = list(lesson_ids)
        out: Dict[int, List[str]] = {lid: [] for lid in ids}
        if not ids:
            return out
        stmt = (
            select(models.LessonQuiz.lesson_id, models.Quiz.title)
            .join(models.Quiz, models.Quiz.id == models.LessonQuiz.quiz_id)
            .where(models.LessonQuiz.lesson_id.in_(ids))
            .order_by(models.LessonQuiz.lesson_id, models.Quiz.id)
        )
        for lesson_id, title in self.session.exec(stmt).all():
            out[lesson_id].append(title)
        return out

    def lesson_titles_by_quiz(self, quiz_ids: Iterable[int]) -> Dict[int, List[str]]:
        """Map each quiz id to the titles of the lessons it is linked to."""
        ids = list(quiz_ids)
        out: Dict[int, List[str]] = {qid: [] for qid in ids}
        if not ids:
            return out
        stmt = (
            select(models.LessonQuiz.quiz_id, models.Lesson.title)
            .join(models.Lesson, models.Lesson.id == models.LessonQuiz.lesson_id)
            .where(models.LessonQuiz.quiz_id.in_(ids))
            .order_by(models.LessonQuiz.quiz_id, models.Lesson.id)
        )
        for quiz_id, title in self.session.exec(stmt).all():
            out[quiz_id].append(title)
        return out
