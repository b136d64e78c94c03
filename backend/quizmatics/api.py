"""JSON API routers for teachers, lessons and quizzes.

Routes are intentionally thin: they validate the request body through
the pydantic schemas, delegate to a service and translate the returned
`ServiceResponse` status into an HTTP status code:

- NotFound -> 404
- AlreadyExists / NotLinked -> 409
- Error -> 500
- path/payload id mismatch -> 400 (checked before calling the service)
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlmodel import Session

from . import models, services
from .auth import get_current_user
from .database import get_session
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
from .services import ServiceResponse, ServiceStatus

teachers_router = APIRouter(prefix="/api/Teachers", tags=["teachers"])
lessons_router = APIRouter(prefix="/api/Lessons", tags=["lessons"])
quizzes_router = APIRouter(prefix="/api/Quizzes", tags=["quizzes"])

_HTTP_STATUS = {
    ServiceStatus.NOT_FOUND: 404,
    ServiceStatus.ALREADY_EXISTS: 409,
    ServiceStatus.NOT_LINKED: 409,
    ServiceStatus.ERROR: 500,
}


def _raise_for_status(result: ServiceResponse, default_detail: str) -> None:
    """Raise the HTTPException matching a failed service result."""
    code = _HTTP_STATUS.get(result.status)
    if code is None:
        return
    detail = " ".join(result.messages) if result.messages else default_detail
    raise HTTPException(status_code=code, detail=detail)


# Teachers

@teachers_router.get("/List", response_model=List[TeacherDto])
def list_teachers(db: Session = Depends(get_session)):
    """List every teacher with lesson and quiz totals."""
    return services.TeacherService(db).list_teachers()


@teachers_router.get("/Find/{id}", response_model=TeacherDto)
def find_teacher(id: int, db: Session = Depends(get_session)):
    teacher = services.TeacherService(db).find_teacher(id)
    if teacher is None:
        raise HTTPException(status_code=404, detail=f"No teacher found for that ID {id}")
    return teacher


@teachers_router.post("/Add", status_code=201)
def add_teacher(payload: AddTeacherDto, response: Response, db: Session = Depends(get_session)):
    """Create a teacher and return its id.

    Email addresses are not required to be unique.
    """
    result = services.TeacherService(db).add_teacher(payload)
    _raise_for_status(result, "An unexpected error occurred while adding the teacher.")
    response.headers["Location"] = f"/api/Teachers/Find/{result.created_id}"
    return {"message": f"Teacher {result.created_id} added successfully.", "teacher_id": result.created_id}


@teachers_router.put("/Update/{id}")
def update_teacher(id: int, payload: UpdateTeacherDto, db: Session = Depends(get_session)):
    if id != payload.teacher_id:
        raise HTTPException(status_code=400, detail="Teacher ID mismatch.")
    result = services.TeacherService(db).update_teacher(id, payload)
    _raise_for_status(result, "An unexpected error occurred while updating the teacher.")
    return {"message": f"Teacher {id} updated successfully."}


@teachers_router.delete("/Delete/{id}")
def delete_teacher(id: int, db: Session = Depends(get_session)):
    """Delete a teacher, its lessons and their quiz links."""
    result = services.TeacherService(db).delete_teacher(id)
    _raise_for_status(result, "An unexpected error occurred while deleting the teacher.")
    return {"message": f"Teacher {id} deleted successfully."}


# Lessons

@lessons_router.get("/List", response_model=List[LessonDto])
def list_lessons(db: Session = Depends(get_session)):
    return services.LessonService(db).list_lessons()


@lessons_router.get("/Find/{id}", response_model=LessonDto)
def find_lesson(id: int, db: Session = Depends(get_session)):
    lesson = services.LessonService(db).find_lesson(id)
    if lesson is None:
        raise HTTPException(status_code=404, detail=f"No lesson found for that ID {id}")
    return lesson


@lessons_router.post("/Add", status_code=201)
def add_lesson(payload: AddLessonDto, response: Response, db: Session = Depends(get_session)):
    """Create a lesson owned by an existing teacher."""
    result = services.LessonService(db).add_lesson(payload)
    if result.status == ServiceStatus.NOT_FOUND:
        raise HTTPException(status_code=404, detail="Teacher not found. Cannot add lesson.")
    _raise_for_status(result, "An unexpected error occurred while adding the lesson.")
    response.headers["Location"] = f"/api/Lessons/Find/{result.created_id}"
    return {"message": f"Lesson added successfully with ID {result.created_id}", "lesson_id": result.created_id}


@lessons_router.put("/Update/{id}")
def update_lesson(
    id: int,
    payload: UpdateLessonDto,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    """Overwrite a lesson. Requires a bearer token."""
    if id != payload.lesson_id:
        raise HTTPException(status_code=400, detail="Lesson ID mismatch.")
    result = services.LessonService(db).update_lesson(id, payload)
    _raise_for_status(result, "An unexpected error occurred while updating the lesson.")
    return {"message": f"Lesson with ID {id} updated successfully."}


@lessons_router.delete("/Delete/{id}")
def delete_lesson(id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Delete a lesson and its quiz links. Requires a bearer token."""
    result = services.LessonService(db).delete_lesson(id)
    _raise_for_status(result, "An unexpected error occurred while deleting the lesson.")
    return {"message": f"Lesson with ID {id} deleted successfully."}


@lessons_router.get("/ListOfQuizzes/{id}", response_model=List[ListQuizDto])
def list_of_quizzes(id: int, db: Session = Depends(get_session)):
    """List the quizzes linked to a lesson.

    Responds 404 both for an unknown lesson and for a lesson without
    linked quizzes; the detail message says which.
    """
    svc = services.LessonService(db)
    quizzes = svc.list_of_quizzes(id)
    if not quizzes:
        if svc.find_lesson(id) is None:
            raise HTTPException(status_code=404, detail=f"Lesson with ID {id} not found.")
        raise HTTPException(status_code=404, detail=f"No quizzes found for Lesson ID {id}.")
    return quizzes


@lessons_router.get("/ListLessonsByTeacher/{id}", response_model=List[LessonDto], response_model_exclude_none=True)
def list_lessons_by_teacher(id: int, db: Session = Depends(get_session)):
    lessons = services.LessonService(db).list_lessons_by_teacher_id(id)
    if not lessons:
        raise HTTPException(status_code=404, detail="No lessons found for this teacher.")
    return lessons


# Quizzes

@quizzes_router.get("/List", response_model=List[QuizDto])
def list_quizzes(db: Session = Depends(get_session)):
    return services.QuizService(db).list_quizzes()


@quizzes_router.get("/Find/{id}", response_model=QuizDto)
def find_quiz(id: int, db: Session = Depends(get_session)):
    quiz = services.QuizService(db).find_quiz(id)
    if quiz is None:
        raise HTTPException(status_code=404, detail=f"No quiz found for that ID {id}")
    return quiz


@quizzes_router.post("/Add", status_code=201)
def add_quiz(payload: AddQuizDto, response: Response, db: Session = Depends(get_session)):
    """Create a quiz linked to the lesson given by `lesson_id`."""
    result = services.QuizService(db).add_quiz(payload)
    _raise_for_status(result, "An unexpected error occurred while adding the quiz.")
    response.headers["Location"] = f"/api/Quizzes/Find/{result.created_id}"
    return {"message": f"Quiz {result.created_id} added successfully.", "quiz_id": result.created_id}


@quizzes_router.put("/Update/{id}")
def update_quiz(id: int, payload: UpdateQuizDto, db: Session = Depends(get_session)):
    if id != payload.quiz_id:
        raise HTTPException(status_code=400, detail="Quiz ID mismatch.")
    result = services.QuizService(db).update_quiz(id, payload)
    _raise_for_status(result, "An unexpected error occurred while updating the quiz.")
    return {"message": f"Quiz {id} updated successfully."}


@quizzes_router.delete("/Delete/{id}")
def delete_quiz(id: int, db: Session = Depends(get_session)):
    result = services.QuizService(db).delete_quiz(id)
    _raise_for_status(result, "An unexpected error occurred while deleting the quiz.")
    return {"message": f"Quiz {id} deleted successfully."}


@quizzes_router.get("/ListOfLessons/{id}", response_model=List[ListLessonDto])
def list_of_lessons(id: int, db: Session = Depends(get_session)):
    """List the lessons a quiz is linked to, with teacher names."""
    svc = services.QuizService(db)
    lessons = svc.list_of_lessons(id)
    if not lessons:
        if svc.find_quiz(id) is None:
            raise HTTPException(status_code=404, detail=f"Quiz with ID {id} not found.")
        raise HTTPException(status_code=404, detail=f"No lessons found for Quiz ID {id}.")
    return lessons


@quizzes_router.post("/LinkQuiz")
def link_quiz(lesson_id: int, quiz_id: int, db: Session = Depends(get_session)):
    """Attach a quiz to a lesson; 409 if the pair is already linked."""
    result = services.QuizService(db).link_quiz_to_lesson(lesson_id, quiz_id)
    _raise_for_status(result, "An unexpected error occurred while linking the quiz.")
    return {"message": f"Quiz {quiz_id} linked to Lesson {lesson_id}."}


@quizzes_router.api_route("/UnlinkQuiz", methods=["POST", "DELETE"])
def unlink_quiz(lesson_id: int, quiz_id: int, db: Session = Depends(get_session)):
    """Detach a quiz from a lesson; 409 if the pair is not linked."""
    result = services.QuizService(db).unlink_quiz_from_lesson(lesson_id, quiz_id)
    _raise_for_status(result, "An unexpected error occurred while unlinking the quiz.")
    return {"message": f"Quiz {quiz_id} unlinked from Lesson {lesson_id}."}
