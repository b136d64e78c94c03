"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories
and map rows to response schemas. Mutating operations return a
`ServiceResponse` carrying a status tag instead of raising for expected
failures (missing rows, duplicate or missing links); only persistence
errors are caught here, logged, and reported as `ServiceStatus.ERROR`.
"""

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import jwt
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError
from sqlmodel import Session

from . import models, repositories
from .config import settings
from .schemas import (
    AddLessonDto,
    AddQuizDto,
    AddTeacherDto,
    LessonDto,
    ListLessonDto,
    ListQuizDto,
    QuizDto,
    TeacherDto,
    UpdateLessonDto,
    UpdateQuizDto,
    UpdateTeacherDto,
)

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
UNKNOWN_TEACHER = "Unknown Teacher"

logger = logging.getLogger("quizmatics.services")


class ServiceStatus(str, enum.Enum):
    CREATED = "Created"
    UPDATED = "Updated"
    DELETED = "Deleted"
    NOT_FOUND = "NotFound"
    ALREADY_EXISTS = "AlreadyExists"
    NOT_LINKED = "NotLinked"
    ERROR = "Error"


@dataclass
class ServiceResponse:
    """Outcome of a mutating service call.

    `created_id` is only set for `ServiceStatus.CREATED`.
    """
    status: ServiceStatus
    messages: List[str] = field(default_factory=list)
    created_id: Optional[int] = None


class AuthService:
    """Authentication related operations (register + authenticate)."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def register(self, username: str, password: str) -> models.User:
        """Create a new user with a hashed password.

        Returns the persisted `User` instance.
        """
        hashed = PWD_CTX.hash(password)
        u = models.User(username=username, password_hash=hashed)
        return self.user_repo.create(u)

    def authenticate(self, username: str, password: str):
        """Verify credentials and return a signed JWT token on success.

        Returns `None` if authentication fails.
        """
        user = self.user_repo.get_by_username(username)
        if not user:
            return None
        if not PWD_CTX.verify(password, user.password_hash):
            return None
        expire = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRE_HOURS)
        payload = {"user_id": user.id, "username": user.username, "exp": int(expire.timestamp())}
        return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


class TeacherService:
    """Teacher CRUD with lesson and quiz tallies."""
    def __init__(self, session: Session):
        self.session = session
        self.teacher_repo = repositories.TeacherRepository(session)

    def list_teachers(self) -> List[TeacherDto]:
        """Return every teacher with `total_lessons` and `total_quizzes`."""
        lesson_counts = self.teacher_repo.lesson_counts()
        link_counts = self.teacher_repo.link_counts()
        return [self._to_dto(t, lesson_counts, link_counts) for t in self.teacher_repo.list_all()]

    def find_teacher(self, teacher_id: int) -> Optional[TeacherDto]:
        teacher = self.teacher_repo.get(teacher_id)
        if not teacher:
            return None
        return self._to_dto(
            teacher,
            self.teacher_repo.lesson_counts(teacher_id),
            self.teacher_repo.link_counts(teacher_id),
        )

    def add_teacher(self, dto: AddTeacherDto) -> ServiceResponse:
        teacher = models.Teacher(name=dto.name, email=str(dto.email))
        try:
            self.teacher_repo.create(teacher)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.exception("add_teacher failed")
            return ServiceResponse(ServiceStatus.ERROR, ["There was an error adding the Teacher.", str(e)])
        return ServiceResponse(ServiceStatus.CREATED, created_id=teacher.id)

    def update_teacher(self, teacher_id: int, dto: UpdateTeacherDto) -> ServiceResponse:
        """Overwrite name and email of an existing teacher."""
        if teacher_id != dto.teacher_id:
            return ServiceResponse(ServiceStatus.ERROR, ["Teacher ID mismatch."])
        teacher = self.teacher_repo.get(teacher_id)
        if not teacher:
            return ServiceResponse(ServiceStatus.NOT_FOUND, ["Teacher not found."])
        teacher.name = dto.name
        teacher.email = str(dto.email)
        try:
            self.teacher_repo.save(teacher)
        except StaleDataError:
            self.session.rollback()
            logger.warning("update_teacher conflict for teacher %s", teacher_id)
            return ServiceResponse(ServiceStatus.ERROR, ["An error occurred updating the record"])
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("update_teacher failed for teacher %s", teacher_id)
            return ServiceResponse(ServiceStatus.ERROR, ["An error occurred updating the record"])
        return ServiceResponse(ServiceStatus.UPDATED)

    def delete_teacher(self, teacher_id: int) -> ServiceResponse:
        """Delete a teacher together with its lessons and their quiz links."""
        teacher = self.teacher_repo.get(teacher_id)
        if not teacher:
            return ServiceResponse(ServiceStatus.NOT_FOUND, ["Teacher cannot be deleted because it does not exist."])
        try:
            self.teacher_repo.delete(teacher)
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("delete_teacher failed for teacher %s", teacher_id)
            return ServiceResponse(ServiceStatus.ERROR, ["Error encountered while deleting the teacher"])
        return ServiceResponse(ServiceStatus.DELETED)

    @staticmethod
    def _to_dto(teacher: models.Teacher, lesson_counts: dict, link_counts: dict) -> TeacherDto:
        return TeacherDto(
            teacher_id=teacher.id,
            name=teacher.name,
            email=teacher.email,
            total_lessons=lesson_counts.get(teacher.id, 0),
            total_quizzes=link_counts.get(teacher.id, 0),
        )


class LessonService:
    """Lesson CRUD plus the quiz listings for a lesson."""
    def __init__(self, session: Session):
        self.session = session
        self.lesson_repo = repositories.LessonRepository(session)
        self.teacher_repo = repositories.TeacherRepository(session)
        self.link_repo = repositories.LessonQuizRepository(session)

    def list_lessons(self) -> List[LessonDto]:
        return self._lesson_dtos(self.lesson_repo.list_with_teacher_names())

    def find_lesson(self, lesson_id: int) -> Optional[LessonDto]:
        dtos = self._lesson_dtos(self.lesson_repo.list_with_teacher_names(lesson_id))
        return dtos[0] if dtos else None

    def add_lesson(self, dto: AddLessonDto) -> ServiceResponse:
        """Create a lesson for an existing teacher."""
        if not self.teacher_repo.get(dto.teacher_id):
            return ServiceResponse(ServiceStatus.NOT_FOUND, ["Teacher not found."])
        lesson = models.Lesson(
            title=dto.title,
            description=dto.description,
            date_created=dto.date_created,
            teacher_id=dto.teacher_id,
        )
        try:
            self.lesson_repo.create(lesson)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.exception("add_lesson failed")
            return ServiceResponse(ServiceStatus.ERROR, ["There was an error adding the lesson.", str(e)])
        return ServiceResponse(ServiceStatus.CREATED, created_id=lesson.id)

    def update_lesson(self, lesson_id: int, dto: UpdateLessonDto) -> ServiceResponse:
        """Overwrite title, description, date and owner of a lesson.

        The path id must match the payload id, the lesson must exist and
        the new owning teacher must exist; each check fails with its own
        message.
        """
        if lesson_id != dto.lesson_id:
            return ServiceResponse(ServiceStatus.ERROR, ["Lesson ID mismatch."])
        lesson = self.lesson_repo.get(lesson_id)
        if not lesson:
            return ServiceResponse(ServiceStatus.NOT_FOUND, ["Lesson not found."])
        if not self.teacher_repo.get(dto.teacher_id):
            return ServiceResponse(ServiceStatus.NOT_FOUND, ["Teacher not found."])
        lesson.title = dto.title
        lesson.description = dto.description
        lesson.date_created = dto.date_created
        lesson.teacher_id = dto.teacher_id
        try:
            self.lesson_repo.save(lesson)
        except StaleDataError:
            self.session.rollback()
            logger.warning("update_lesson conflict for lesson %s", lesson_id)
            return ServiceResponse(ServiceStatus.ERROR, ["An error occurred updating the record"])
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("update_lesson failed for lesson %s", lesson_id)
            return ServiceResponse(ServiceStatus.ERROR, ["An error occurred updating the record"])
        return ServiceResponse(ServiceStatus.UPDATED)

    def delete_lesson(self, lesson_id: int) -> ServiceResponse:
        lesson = self.lesson_repo.get(lesson_id)
        if not lesson:
            return ServiceResponse(ServiceStatus.NOT_FOUND, ["Lesson cannot be deleted because it does not exist."])
        try:
            self.lesson_repo.delete(lesson)
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("delete_lesson failed for lesson %s", lesson_id)
            return ServiceResponse(ServiceStatus.ERROR, ["Error encountered while deleting the lesson"])
        return ServiceResponse(ServiceStatus.DELETED)

    def list_of_quizzes(self, lesson_id: int) -> List[ListQuizDto]:
        """Return the quizzes linked to a lesson.

        An unknown lesson and a lesson without links both give an empty
        list; callers that need to tell them apart use `find_lesson`.
        """
        return [
            ListQuizDto(
                quiz_id=q.id,
                title=q.title,
                grade=q.grade,
                difficulty_level=models.Difficulty(q.difficulty_level),
            )
            for q in self.link_repo.quizzes_for_lesson(lesson_id)
        ]

    def list_lessons_by_teacher_id(self, teacher_id: int) -> List[LessonDto]:
        return [
            LessonDto(
                lesson_id=lesson.id,
                title=lesson.title,
                description=lesson.description,
                date_created=lesson.date_created,
            )
            for lesson in self.lesson_repo.list_by_teacher(teacher_id)
        ]

    def _lesson_dtos(self, rows) -> List[LessonDto]:
        titles = self.link_repo.quiz_titles_by_lesson(lesson.id for lesson, _ in rows)
        out = []
        for lesson, teacher_name in rows:
            quiz_names = titles.get(lesson.id, [])
            out.append(LessonDto(
                lesson_id=lesson.id,
                title=lesson.title,
                description=lesson.description,
                date_created=lesson.date_created,
                teacher_id=lesson.teacher_id,
                name=teacher_name,
                total_quizzes=len(quiz_names),
                quiz_names=quiz_names,
            ))
        return out


class QuizService:
    """Quiz CRUD and the lesson/quiz link operations."""
    def __init__(self, session: Session):
        self.session = session
        self.quiz_repo = repositories.QuizRepository(session)
        self.lesson_repo = repositories.LessonRepository(session)
        self.link_repo = repositories.LessonQuizRepository(session)

    def list_quizzes(self) -> List[QuizDto]:
        quizzes = self.quiz_repo.list_all()
        titles = self.link_repo.lesson_titles_by_quiz(q.id for q in quizzes)
        return [self._to_dto(q, titles.get(q.id, [])) for q in quizzes]

    def find_quiz(self, quiz_id: int) -> Optional[QuizDto]:
        quiz = self.quiz_repo.get(quiz_id)
        if not quiz:
            return None
        titles = self.link_repo.lesson_titles_by_quiz([quiz.id])
        return self._to_dto(quiz, titles.get(quiz.id, []))

    def add_quiz(self, dto: AddQuizDto) -> ServiceResponse:
        """Create a quiz already linked to the lesson named in `dto`."""
        if not self.lesson_repo.get(dto.lesson_id):
            return ServiceResponse(ServiceStatus.NOT_FOUND, ["Lesson not found."])
        quiz = models.Quiz(
            title=dto.title,
            description=dto.description,
            date_created=dto.date_created,
            max_mins_allotted=dto.max_mins_allotted,
            grade=dto.grade,
            difficulty_level=int(dto.difficulty_level),
        )
        try:
            self.quiz_repo.create_with_link(quiz, dto.lesson_id)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.exception("add_quiz failed")
            return ServiceResponse(ServiceStatus.ERROR, ["There was an error adding the Quiz.", str(e)])
        return ServiceResponse(ServiceStatus.CREATED, created_id=quiz.id)

    def update_quiz(self, quiz_id: int, dto: UpdateQuizDto) -> ServiceResponse:
        """Overwrite the quiz's own fields; lesson links are left alone."""
        if quiz_id != dto.quiz_id:
            return ServiceResponse(ServiceStatus.ERROR, ["Quiz ID mismatch."])
        quiz = self.quiz_repo.get(quiz_id)
        if not quiz:
            return ServiceResponse(ServiceStatus.NOT_FOUND, ["Quiz not found."])
        quiz.title = dto.title
        quiz.description = dto.description
        quiz.max_mins_allotted = dto.max_mins_allotted
        quiz.grade = dto.grade
        quiz.difficulty_level = int(dto.difficulty_level)
        try:
            self.quiz_repo.save(quiz)
        except StaleDataError:
            self.session.rollback()
            logger.warning("update_quiz conflict for quiz %s", quiz_id)
            return ServiceResponse(ServiceStatus.ERROR, ["An error occurred updating the record"])
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("update_quiz failed for quiz %s", quiz_id)
            return ServiceResponse(ServiceStatus.ERROR, ["An error occurred updating the record"])
        return ServiceResponse(ServiceStatus.UPDATED)

    def delete_quiz(self, quiz_id: int) -> ServiceResponse:
        quiz = self.quiz_repo.get(quiz_id)
        if not quiz:
            return ServiceResponse(ServiceStatus.NOT_FOUND, ["Quiz cannot be deleted because it does not exist."])
        try:
            self.quiz_repo.delete(quiz)
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("delete_quiz failed for quiz %s", quiz_id)
            return ServiceResponse(ServiceStatus.ERROR, ["Error encountered while deleting the quiz."])
        return ServiceResponse(ServiceStatus.DELETED, [f"Quiz {quiz_id} deleted successfully."])

    def list_of_lessons(self, quiz_id: int) -> List[ListLessonDto]:
        """Return the lessons a quiz is linked to, with teacher names."""
        return [
            ListLessonDto(
                lesson_id=lesson.id,
                title=lesson.title,
                description=lesson.description,
                date_created=lesson.date_created,
                name=teacher_name or UNKNOWN_TEACHER,
            )
            for lesson, teacher_name in self.link_repo.lessons_for_quiz(quiz_id)
        ]

    def link_quiz_to_lesson(self, lesson_id: int, quiz_id: int) -> ServiceResponse:
        if not self.lesson_repo.get(lesson_id) or not self.quiz_repo.get(quiz_id):
            return ServiceResponse(ServiceStatus.NOT_FOUND, ["Lesson or Quiz not found."])
        if self.link_repo.get(lesson_id, quiz_id):
            return ServiceResponse(ServiceStatus.ALREADY_EXISTS, ["Quiz is already linked to this Lesson."])
        try:
            self.link_repo.link(lesson_id, quiz_id)
        except IntegrityError:
            # a concurrent request inserted the same pair first
            self.session.rollback()
            return ServiceResponse(ServiceStatus.ALREADY_EXISTS, ["Quiz is already linked to this Lesson."])
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("link failed for lesson %s quiz %s", lesson_id, quiz_id)
            return ServiceResponse(ServiceStatus.ERROR, ["Error encountered while linking the quiz."])
        return ServiceResponse(ServiceStatus.UPDATED)

    def unlink_quiz_from_lesson(self, lesson_id: int, quiz_id: int) -> ServiceResponse:
        if not self.lesson_repo.get(lesson_id):
            return ServiceResponse(ServiceStatus.NOT_FOUND, ["Lesson not found."])
        row = self.link_repo.get(lesson_id, quiz_id)
        if not row:
            return ServiceResponse(ServiceStatus.NOT_LINKED, ["Quiz is not linked to this Lesson."])
        try:
            self.link_repo.unlink(row)
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("unlink failed for lesson %s quiz %s", lesson_id, quiz_id)
            return ServiceResponse(ServiceStatus.ERROR, ["Error encountered while unlinking the quiz."])
        return ServiceResponse(ServiceStatus.UPDATED)

    @staticmethod
    def _to_dto(quiz: models.Quiz, lesson_names: List[str]) -> QuizDto:
        return QuizDto(
            quiz_id=quiz.id,
            title=quiz.title,
            description=quiz.description,
            date_created=quiz.date_created,
            max_mins_allotted=quiz.max_mins_allotted,
            grade=quiz.grade,
            difficulty_level=models.Difficulty(quiz.difficulty_level),
            total_lessons=len(lesson_names),
            lesson_names=lesson_names,
        )
