"""Server-rendered pages for teachers, lessons and quizzes.

Each entity gets list, details, add, edit and delete pages backed by the
same services as the JSON API. Teacher and lesson edit and delete pages
require the login cookie issued by `/Account/Login`. Form posts are validated with the API
schemas; invalid input re-renders the form with messages, service
failures render `error.html`, and successful posts redirect (303) so a
browser refresh does not resubmit.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError
from sqlmodel import Session

from . import models, services
from .auth import PAGE_TOKEN_COOKIE, get_page_user
from .config import settings
from .database import get_session
from .schemas import (
    AddLessonDto,
    AddQuizDto,
    AddTeacherDto,
    ListQuizDto,
    UpdateLessonDto,
    UpdateQuizDto,
    UpdateTeacherDto,
)
from .services import ServiceResponse, ServiceStatus

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))
templates.env.globals["Difficulty"] = models.Difficulty

logger = logging.getLogger("quizmatics.pages")

teacher_pages = APIRouter(prefix="/TeacherPage", include_in_schema=False)
lesson_pages = APIRouter(prefix="/LessonPage", include_in_schema=False)
quiz_pages = APIRouter(prefix="/QuizPage", include_in_schema=False)
account_pages = APIRouter(prefix="/Account", include_in_schema=False)
PAGE_PREFIXES = ("/TeacherPage", "/LessonPage", "/QuizPage", "/Account")

_ERROR_STATUS = {
    ServiceStatus.NOT_FOUND: 404,
    ServiceStatus.ALREADY_EXISTS: 409,
    ServiceStatus.NOT_LINKED: 409,
    ServiceStatus.ERROR: 500,
}


def render_error(request: Request, messages: List[str], status_code: int = 400):
    """Render the shared error view listing `messages`.

    A 401 also shows a link to the login page.
    """
    ctx = {"errors": messages, "show_login": status_code == 401}
    return templates.TemplateResponse(request, "error.html", ctx, status_code=status_code)


def _service_error(request: Request, result: ServiceResponse):
    logger.info("page request failed status=%s messages=%s", result.status, result.messages)
    return render_error(request, result.messages, _ERROR_STATUS.get(result.status, 500))


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=303)


def _form_errors(exc: ValidationError) -> List[str]:
    return [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]


def _form_int(value: str):
    """Return `value` as an int when it parses, otherwise unchanged for the validator to reject."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return value


def _lesson_form_data(title: str, description: str, date_created: str, teacher_id: str) -> Dict:
    data = {"title": title, "description": description, "teacher_id": _form_int(teacher_id)}
    # a blank date falls back to today through the schema default
    if date_created.strip():
        data["date_created"] = date_created.strip()
    return data


# Teacher pages

@teacher_pages.get("")
def teacher_index():
    return _redirect("/TeacherPage/List")


@teacher_pages.get("/List")
def teacher_list(request: Request, db: Session = Depends(get_session)):
    teachers = services.TeacherService(db).list_teachers()
    return templates.TemplateResponse(request, "teachers/list.html", {"teachers": teachers})


@teacher_pages.get("/Details/{id}")
def teacher_details(id: int, request: Request, db: Session = Depends(get_session)):
    """Show one teacher and the lessons they own."""
    teacher = services.TeacherService(db).find_teacher(id)
    if teacher is None:
        return render_error(request, ["Could not find teacher"], 404)
    lessons = services.LessonService(db).list_lessons_by_teacher_id(id)
    return templates.TemplateResponse(request, "teachers/details.html", {"teacher": teacher, "lessons": lessons})


@teacher_pages.get("/Add")
def teacher_add_form(request: Request):
    return templates.TemplateResponse(request, "teachers/add.html", {"form": {}, "errors": []})


@teacher_pages.post("/Add")
def teacher_add(request: Request, name: str = Form(""), email: str = Form(""), db: Session = Depends(get_session)):
    form = {"name": name, "email": email}
    try:
        dto = AddTeacherDto.model_validate(form)
    except ValidationError as exc:
        return templates.TemplateResponse(
            request, "teachers/add.html", {"form": form, "errors": _form_errors(exc)}, status_code=400
        )
    result = services.TeacherService(db).add_teacher(dto)
    if result.status != ServiceStatus.CREATED:
        return _service_error(request, result)
    return _redirect("/TeacherPage/List")


@teacher_pages.get("/Edit/{id}")
def teacher_edit_form(
    id: int,
    request: Request,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_page_user),
):
    teacher = services.TeacherService(db).find_teacher(id)
    if teacher is None:
        return render_error(request, ["Teacher not found"], 404)
    form = {"teacher_id": teacher.teacher_id, "name": teacher.name, "email": teacher.email}
    return templates.TemplateResponse(request, "teachers/edit.html", {"form": form, "errors": []})


@teacher_pages.post("/Edit/{id}")
def teacher_edit(
    id: int,
    request: Request,
    teacher_id: str = Form(""),
    name: str = Form(""),
    email: str = Form(""),
    db: Session = Depends(get_session),
    user: models.User = Depends(get_page_user),
):
    form = {"teacher_id": _form_int(teacher_id), "name": name, "email": email}
    if form["teacher_id"] != id:
        return render_error(request, ["Invalid teacher ID"], 400)
    try:
        dto = UpdateTeacherDto.model_validate(form)
    except ValidationError as exc:
        return templates.TemplateResponse(
            request, "teachers/edit.html", {"form": form, "errors": _form_errors(exc)}, status_code=400
        )
    result = services.TeacherService(db).update_teacher(id, dto)
    if result.status != ServiceStatus.UPDATED:
        return _service_error(request, result)
    return _redirect(f"/TeacherPage/Details/{id}")


@teacher_pages.get("/ConfirmDelete/{id}")
def teacher_confirm_delete(
    id: int,
    request: Request,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_page_user),
):
    teacher = services.TeacherService(db).find_teacher(id)
    if teacher is None:
        return render_error(request, ["Teacher not found"], 404)
    return templates.TemplateResponse(request, "teachers/confirm_delete.html", {"teacher": teacher})


@teacher_pages.post("/Delete/{id}")
def teacher_delete(
    id: int,
    request: Request,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_page_user),
):
    result = services.TeacherService(db).delete_teacher(id)
    if result.status != ServiceStatus.DELETED:
        return _service_error(request, result)
    return _redirect("/TeacherPage/List")


# Lesson pages

@lesson_pages.get("")
def lesson_index():
    return _redirect("/LessonPage/List")


@lesson_pages.get("/List")
def lesson_list(request: Request, db: Session = Depends(get_session)):
    lessons = services.LessonService(db).list_lessons()
    return templates.TemplateResponse(request, "lessons/list.html", {"lessons": lessons})


@lesson_pages.get("/Details/{id}")
def lesson_details(id: int, request: Request, db: Session = Depends(get_session)):
    """Show a lesson, its linked quizzes and the quizzes still available to link."""
    lesson_svc = services.LessonService(db)
    lesson = lesson_svc.find_lesson(id)
    if lesson is None:
        return render_error(request, ["Could not find lesson"], 404)
    linked = lesson_svc.list_of_quizzes(id)
    linked_ids = {q.quiz_id for q in linked}
    available = [
        ListQuizDto(quiz_id=q.quiz_id, title=q.title, grade=q.grade, difficulty_level=q.difficulty_level)
        for q in services.QuizService(db).list_quizzes()
        if q.quiz_id not in linked_ids
    ]
    return templates.TemplateResponse(
        request,
        "lessons/details.html",
        {"lesson": lesson, "linked_quizzes": linked, "available_quizzes": available},
    )


@lesson_pages.post("/LinkQuiz")
def lesson_link_quiz(
    request: Request,
    lesson_id: int = Form(...),
    quiz_id: int = Form(...),
    db: Session = Depends(get_session),
):
    result = services.QuizService(db).link_quiz_to_lesson(lesson_id, quiz_id)
    if result.status != ServiceStatus.UPDATED:
        return _service_error(request, result)
    return _redirect(f"/LessonPage/Details/{lesson_id}")


@lesson_pages.post("/UnlinkQuiz")
def lesson_unlink_quiz(
    request: Request,
    lesson_id: int = Form(...),
    quiz_id: int = Form(...),
    db: Session = Depends(get_session),
):
    result = services.QuizService(db).unlink_quiz_from_lesson(lesson_id, quiz_id)
    if result.status != ServiceStatus.UPDATED:
        return _service_error(request, result)
    return _redirect(f"/LessonPage/Details/{lesson_id}")


def _lesson_form(request: Request, db: Session, template: str, form: Dict, errors: Optional[List[str]] = None, status_code: int = 200):
    teachers = services.TeacherService(db).list_teachers()
    if not teachers:
        return render_error(request, ["No teachers found."], 404)
    return templates.TemplateResponse(
        request, template, {"form": form, "errors": errors or [], "teachers": teachers}, status_code=status_code
    )


@lesson_pages.get("/Add")
def lesson_add_form(request: Request, db: Session = Depends(get_session)):
    return _lesson_form(request, db, "lessons/add.html", {})


@lesson_pages.post("/Add")
def lesson_add(
    request: Request,
    title: str = Form(""),
    description: str = Form(""),
    date_created: str = Form(""),
    teacher_id: str = Form(""),
    db: Session = Depends(get_session),
):
    form = _lesson_form_data(title, description, date_created, teacher_id)
    try:
        dto = AddLessonDto.model_validate(form)
    except ValidationError as exc:
        return _lesson_form(request, db, "lessons/add.html", form, _form_errors(exc), 400)
    result = services.LessonService(db).add_lesson(dto)
    if result.status != ServiceStatus.CREATED:
        return _service_error(request, result)
    return _redirect("/LessonPage/List")


@lesson_pages.get("/Edit/{id}")
def lesson_edit_form(
    id: int,
    request: Request,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_page_user),
):
    lesson = services.LessonService(db).find_lesson(id)
    if lesson is None:
        return render_error(request, ["Lesson not found"], 404)
    form = {
        "lesson_id": lesson.lesson_id,
        "title": lesson.title,
        "description": lesson.description,
        "date_created": lesson.date_created.isoformat(),
        "teacher_id": lesson.teacher_id,
    }
    return _lesson_form(request, db, "lessons/edit.html", form)


@lesson_pages.post("/Edit/{id}")
def lesson_edit(
    id: int,
    request: Request,
    lesson_id: str = Form(""),
    title: str = Form(""),
    description: str = Form(""),
    date_created: str = Form(""),
    teacher_id: str = Form(""),
    db: Session = Depends(get_session),
    user: models.User = Depends(get_page_user),
):
    form = _lesson_form_data(title, description, date_created, teacher_id)
    form["lesson_id"] = _form_int(lesson_id)
    if form["lesson_id"] != id:
        return render_error(request, ["Lesson ID mismatch"], 400)
    try:
        dto = UpdateLessonDto.model_validate(form)
    except ValidationError as exc:
        return _lesson_form(request, db, "lessons/edit.html", form, _form_errors(exc), 400)
    result = services.LessonService(db).update_lesson(id, dto)
    if result.status != ServiceStatus.UPDATED:
        return _service_error(request, result)
    return _redirect(f"/LessonPage/Details/{id}")


@lesson_pages.get("/ConfirmDelete/{id}")
def lesson_confirm_delete(
    id: int,
    request: Request,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_page_user),
):
    lesson = services.LessonService(db).find_lesson(id)
    if lesson is None:
        return render_error(request, ["Lesson not found"], 404)
    return templates.TemplateResponse(request, "lessons/confirm_delete.html", {"lesson": lesson})


@lesson_pages.post("/Delete/{id}")
def lesson_delete(
    id: int,
    request: Request,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_page_user),
):
    result = services.LessonService(db).delete_lesson(id)
    if result.status != ServiceStatus.DELETED:
        return _service_error(request, result)
    return _redirect("/LessonPage/List")


# Quiz pages

@quiz_pages.get("")
def quiz_index():
    return _redirect("/QuizPage/List")


@quiz_pages.get("/List")
def quiz_list(request: Request, db: Session = Depends(get_session)):
    quizzes = services.QuizService(db).list_quizzes()
    return templates.TemplateResponse(request, "quizzes/list.html", {"quizzes": quizzes})


@quiz_pages.get("/Details/{id}")
def quiz_details(id: int, request: Request, db: Session = Depends(get_session)):
    quiz_svc = services.QuizService(db)
    quiz = quiz_svc.find_quiz(id)
    if quiz is None:
        return render_error(request, ["Could not find quiz"], 404)
    lessons = quiz_svc.list_of_lessons(id)
    return templates.TemplateResponse(request, "quizzes/details.html", {"quiz": quiz, "lessons": lessons})


@quiz_pages.get("/Add")
def quiz_add_form(request: Request, db: Session = Depends(get_session)):
    lessons = services.LessonService(db).list_lessons()
    if not lessons:
        return render_error(request, ["No lessons found."], 404)
    return templates.TemplateResponse(request, "quizzes/add.html", {"form": {}, "errors": [], "lessons": lessons})


@quiz_pages.post("/Add")
def quiz_add(
    request: Request,
    title: str = Form(""),
    description: str = Form(""),
    max_mins_allotted: str = Form("0"),
    grade: str = Form("0"),
    difficulty_level: str = Form(""),
    lesson_id: str = Form(""),
    db: Session = Depends(get_session),
):
    form = {
        "title": title,
        "description": description,
        "max_mins_allotted": _form_int(max_mins_allotted),
        "grade": _form_int(grade),
        "difficulty_level": _form_int(difficulty_level),
        "lesson_id": _form_int(lesson_id),
    }
    try:
        dto = AddQuizDto.model_validate(form)
    except ValidationError as exc:
        lessons = services.LessonService(db).list_lessons()
        return templates.TemplateResponse(
            request,
            "quizzes/add.html",
            {"form": form, "errors": _form_errors(exc), "lessons": lessons},
            status_code=400,
        )
    result = services.QuizService(db).add_quiz(dto)
    if result.status != ServiceStatus.CREATED:
        return _service_error(request, result)
    return _redirect("/QuizPage/List")


@quiz_pages.get("/Edit/{id}")
def quiz_edit_form(id: int, request: Request, db: Session = Depends(get_session)):
    quiz = services.QuizService(db).find_quiz(id)
    if quiz is None:
        return render_error(request, ["Quiz not found"], 404)
    form = {
        "quiz_id": quiz.quiz_id,
        "title": quiz.title,
        "description": quiz.description,
        "max_mins_allotted": quiz.max_mins_allotted,
        "grade": quiz.grade,
        "difficulty_level": int(quiz.difficulty_level),
    }
    return templates.TemplateResponse(request, "quizzes/edit.html", {"form": form, "errors": []})


@quiz_pages.post("/Edit/{id}")
def quiz_edit(
    id: int,
    request: Request,
    quiz_id: str = Form(""),
    title: str = Form(""),
    description: str = Form(""),
    max_mins_allotted: str = Form("0"),
    grade: str = Form("0"),
    difficulty_level: str = Form(""),
    db: Session = Depends(get_session),
):
    form = {
        "quiz_id": _form_int(quiz_id),
        "title": title,
        "description": description,
        "max_mins_allotted": _form_int(max_mins_allotted),
        "grade": _form_int(grade),
        "difficulty_level": _form_int(difficulty_level),
    }
    if form["quiz_id"] != id:
        return render_error(request, ["Quiz ID mismatch"], 400)
    try:
        dto = UpdateQuizDto.model_validate(form)
    except ValidationError as exc:
        return templates.TemplateResponse(
            request, "quizzes/edit.html", {"form": form, "errors": _form_errors(exc)}, status_code=400
        )
    result = services.QuizService(db).update_quiz(id, dto)
    if result.status != ServiceStatus.UPDATED:
        return _service_error(request, result)
    return _redirect(f"/QuizPage/Details/{id}")


@quiz_pages.get("/ConfirmDelete/{id}")
def quiz_confirm_delete(id: int, request: Request, db: Session = Depends(get_session)):
    quiz = services.QuizService(db).find_quiz(id)
    if quiz is None:
        return render_error(request, ["Quiz not found"], 404)
    return templates.TemplateResponse(request, "quizzes/confirm_delete.html", {"quiz": quiz})


@quiz_pages.post("/Delete/{id}")
def quiz_delete(id: int, request: Request, db: Session = Depends(get_session)):
    result = services.QuizService(db).delete_quiz(id)
    if result.status != ServiceStatus.DELETED:
        return _service_error(request, result)
    return _redirect("/QuizPage/List")


# Account pages

def _safe_next(next_url: str) -> str:
    """Only allow redirects back into this site."""
    if next_url.startswith("/") and not next_url.startswith("//"):
        return next_url
    return "/"


@account_pages.get("/Login")
def login_form(request: Request, next: str = "/"):
    return templates.TemplateResponse(request, "account/login.html", {"form": {"next": _safe_next(next)}, "errors": []})


@account_pages.post("/Login")
def login(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    next: str = Form("/"),
    db: Session = Depends(get_session),
):
    """Check credentials and store the JWT in the page login cookie."""
    token = services.AuthService(db).authenticate(username, password)
    if not token:
        form = {"username": username, "next": _safe_next(next)}
        return templates.TemplateResponse(
            request, "account/login.html", {"form": form, "errors": ["Invalid username or password."]}, status_code=401
        )
    response = _redirect(_safe_next(next))
    response.set_cookie(
        PAGE_TOKEN_COOKIE,
        token,
        max_age=settings.JWT_EXPIRE_HOURS * 3600,
        httponly=True,
        samesite="lax",
    )
    return response


@account_pages.post("/Logout")
def logout():
    response = _redirect("/")
    response.delete_cookie(PAGE_TOKEN_COOKIE)
    return response
