import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, select

from quizmatics import models
from quizmatics.database import engine
from quizmatics.schemas import AddLessonDto, AddQuizDto, AddTeacherDto, UpdateQuizDto
from quizmatics.services import LessonService, QuizService, ServiceResponse, ServiceStatus, TeacherService


def _lesson(session, title='Geometry'):
    tid = TeacherService(session).add_teacher(AddTeacherDto(name='Mr Lee', email='lee@x.com')).created_id
    return LessonService(session).add_lesson(AddLessonDto(title=title, teacher_id=tid)).created_id


def _links(session, lesson_id, quiz_id):
    stmt = select(models.LessonQuiz).where(
        models.LessonQuiz.lesson_id == lesson_id, models.LessonQuiz.quiz_id == quiz_id
    )
    return session.exec(stmt).all()


def test_add_quiz_requires_existing_lesson(session):
    res = QuizService(session).add_quiz(AddQuizDto(title='Q', difficulty_level=0, lesson_id=77))
    assert res.status == ServiceStatus.NOT_FOUND
    assert res.messages == ['Lesson not found.']
    assert session.exec(select(models.Quiz)).all() == []


def test_add_quiz_is_created_with_its_first_link(session):
    lid = _lesson(session)
    res = QuizService(session).add_quiz(
        AddQuizDto(title='Angles', description='d', max_mins_allotted=20, grade=8, difficulty_level=1, lesson_id=lid)
    )
    assert res.status == ServiceStatus.CREATED
    quiz = QuizService(session).find_quiz(res.created_id)
    assert quiz.title == 'Angles'
    assert quiz.max_mins_allotted == 20
    assert quiz.difficulty_level == models.Difficulty.MEDIUM
    assert quiz.total_lessons == 1
    assert quiz.lesson_names == ['Geometry']


def test_update_quiz_overwrites_fields_and_keeps_links(session):
    lid = _lesson(session)
    qid = QuizService(session).add_quiz(AddQuizDto(title='Q', difficulty_level=0, lesson_id=lid)).created_id
    res = QuizService(session).update_quiz(
        qid, UpdateQuizDto(quiz_id=qid, title='Q2', description='new', max_mins_allotted=45, grade=10, difficulty_level=2)
    )
    assert res.status == ServiceStatus.UPDATED
    quiz = QuizService(session).find_quiz(qid)
    assert (quiz.title, quiz.grade, quiz.max_mins_allotted) == ('Q2', 10, 45)
    assert quiz.difficulty_level == models.Difficulty.HARD
    assert quiz.lesson_names == ['Geometry']


def test_update_quiz_mismatch_and_missing(session):
    svc = QuizService(session)
    mismatch = svc.update_quiz(1, UpdateQuizDto(quiz_id=2, title='X', difficulty_level=0))
    assert mismatch.status == ServiceStatus.ERROR
    missing = svc.update_quiz(3, UpdateQuizDto(quiz_id=3, title='X', difficulty_level=0))
    assert missing.status == ServiceStatus.NOT_FOUND


def test_link_twice_keeps_a_single_row(session):
    lid = _lesson(session)
    other = _lesson(session, 'Other')
    qid = QuizService(session).add_quiz(AddQuizDto(title='Q', difficulty_level=0, lesson_id=lid)).created_id

    first = QuizService(session).link_quiz_to_lesson(other, qid)
    second = QuizService(session).link_quiz_to_lesson(other, qid)
    assert first.status == ServiceStatus.UPDATED
    assert second.status == ServiceStatus.ALREADY_EXISTS
    assert len(_links(session, other, qid)) == 1


def test_link_race_on_primary_key_reports_already_exists(session):
    lid = _lesson(session)
    qid = QuizService(session).add_quiz(AddQuizDto(title='Q', difficulty_level=0, lesson_id=lid)).created_id
    with Session(engine) as racing:
        svc = QuizService(racing)
        # pretend the duplicate check ran before another request inserted the pair
        svc.link_repo.get = lambda lesson_id, quiz_id: None
        res = svc.link_quiz_to_lesson(lid, qid)
    assert res.status == ServiceStatus.ALREADY_EXISTS
    assert len(_links(session, lid, qid)) == 1


def test_link_with_missing_side_is_not_found(session):
    lid = _lesson(session)
    assert QuizService(session).link_quiz_to_lesson(lid, 999).status == ServiceStatus.NOT_FOUND
    assert QuizService(session).link_quiz_to_lesson(999, 1).status == ServiceStatus.NOT_FOUND


def test_unlink(session):
    lid = _lesson(session)
    other = _lesson(session, 'Other')
    qid = QuizService(session).add_quiz(AddQuizDto(title='Q', difficulty_level=0, lesson_id=lid)).created_id

    not_linked = QuizService(session).unlink_quiz_from_lesson(other, qid)
    assert not_linked.status == ServiceStatus.NOT_LINKED
    assert len(session.exec(select(models.LessonQuiz)).all()) == 1

    missing = QuizService(session).unlink_quiz_from_lesson(999, qid)
    assert missing.status == ServiceStatus.NOT_FOUND
    assert missing.messages == ['Lesson not found.']

    done = QuizService(session).unlink_quiz_from_lesson(lid, qid)
    assert done.status == ServiceStatus.UPDATED
    assert _links(session, lid, qid) == []
    assert QuizService(session).find_quiz(qid) is not None


def test_list_of_lessons_carries_teacher_names(session):
    lid = _lesson(session)
    qid = QuizService(session).add_quiz(AddQuizDto(title='Q', difficulty_level=0, lesson_id=lid)).created_id
    lessons = QuizService(session).list_of_lessons(qid)
    assert [(lesson.lesson_id, lesson.title, lesson.name) for lesson in lessons] == [(lid, 'Geometry', 'Mr Lee')]
    assert QuizService(session).list_of_lessons(999) == []


def test_delete_quiz_removes_its_links(session):
    lid = _lesson(session)
    qid = QuizService(session).add_quiz(AddQuizDto(title='Q', difficulty_level=0, lesson_id=lid)).created_id
    res = QuizService(session).delete_quiz(qid)
    assert res.status == ServiceStatus.DELETED
    assert session.exec(select(models.LessonQuiz)).all() == []
    assert LessonService(session).find_lesson(lid).total_quizzes == 0
    assert QuizService(session).delete_quiz(qid).status == ServiceStatus.NOT_FOUND


def test_update_quiz_conflict_when_row_deleted_concurrently(session):
    lid = _lesson(session)
    qid = QuizService(session).add_quiz(AddQuizDto(title='Q', difficulty_level=0, lesson_id=lid)).created_id
    svc = QuizService(session)
    original_save = svc.quiz_repo.save

    def save_after_concurrent_delete(quiz):
        with Session(engine) as other:
            other.delete(other.get(models.Quiz, quiz.id))
            other.commit()
        return original_save(quiz)

    svc.quiz_repo.save = save_after_concurrent_delete
    res = svc.update_quiz(qid, UpdateQuizDto(quiz_id=qid, title='Late', difficulty_level=1))
    assert res.status == ServiceStatus.ERROR
    assert res.messages == ['An error occurred updating the record']


def test_update_quiz_reports_error_on_database_failure(session):
    lid = _lesson(session)
    qid = QuizService(session).add_quiz(AddQuizDto(title='Q', difficulty_level=0, lesson_id=lid)).created_id
    svc = QuizService(session)

    def failing_save(quiz):
        raise OperationalError('UPDATE quiz', {}, Exception('database is locked'))

    svc.quiz_repo.save = failing_save
    res = svc.update_quiz(qid, UpdateQuizDto(quiz_id=qid, title='Never', difficulty_level=1))
    assert res.status == ServiceStatus.ERROR
    assert QuizService(session).find_quiz(qid).title == 'Q'


def test_service_response_needs_a_status():
    with pytest.raises(TypeError):
        ServiceResponse()
    assert ServiceResponse(ServiceStatus.UPDATED).messages == []
