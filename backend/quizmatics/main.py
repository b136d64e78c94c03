"""FastAPI application entrypoint.

This module builds the QuizMatics application: it wires the JSON API
routers (`/api/Teachers`, `/api/Lessons`, `/api/Quizzes`) and the
server-rendered page routers (`/TeacherPage`, `/LessonPage`,
`/QuizPage`, `/Account`), installs request logging and error handling,
and defines the few routes that belong to neither:

- POST /auth/register
- POST /auth/login
- GET /health
- GET /
"""

from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlmodel import Session
import json
import logging
import time
import uuid
from .database import create_db_and_tables, get_session
from . import services, repositories
from .api import teachers_router, lessons_router, quizzes_router
from .pages import (
    PAGE_PREFIXES,
    account_pages,
    lesson_pages,
    quiz_pages,
    render_error,
    teacher_pages,
    templates,
)
from .schemas import RegisterIn, TokenOut
from .config import settings

app = FastAPI(
    title="QuizMatics API",
    description="Teachers, lessons and the quizzes linked to them.",
    version="1.0.0",
)
logger = logging.getLogger("quizmatics.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

# Wide-open CORS keeps local HTML testers working without extra config in dev.
if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()

app.include_router(teachers_router)
app.include_router(lessons_router)
app.include_router(quizzes_router)
app.include_router(teacher_pages)
app.include_router(lesson_pages)
app.include_router(quiz_pages)
app.include_router(account_pages)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    if request.url.path.startswith("/api"):
        logger.info(
            "request_done %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": response.status_code,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Reject malformed input with 400 before it reaches a service.

    Page callers get the error view; every other caller gets the
    pydantic error list as JSON.
    """
    if not request.url.path.startswith(PAGE_PREFIXES):
        return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})
    messages = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
    return render_error(request, messages, 400)


@app.exception_handler(StarletteHTTPException)
async def page_http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTP errors raised under the page routers with the error view.

    Every other path keeps FastAPI's JSON `{"detail": ...}` body.
    """
    if not request.url.path.startswith(PAGE_PREFIXES):
        return await http_exception_handler(request, exc)
    return render_error(request, [str(exc.detail)], exc.status_code)


@app.post('/auth/register')
def register(payload: RegisterIn, db: Session = Depends(get_session)):
    """Register a new user (idempotent).

    Returns the existing user if the username is already taken so that
    automation and tests can call it repeatedly.
    """
    existing = repositories.UserRepository(db).get_by_username(payload.username)
    if existing:
        return {'id': existing.id, 'username': existing.username}
    user = services.AuthService(db).register(payload.username, payload.password)
    return {'id': user.id, 'username': user.username}


@app.post('/auth/login', response_model=TokenOut)
def login(payload: RegisterIn, db: Session = Depends(get_session)):
    """Authenticate a user and return a short-lived JWT token.

    The token is required by the lesson update and delete API routes.
    """
    token = services.AuthService(db).authenticate(payload.username, payload.password)
    if not token:
        raise HTTPException(status_code=401, detail='invalid credentials')
    return {'access_token': token}


@app.get("/", include_in_schema=False)
def home(request: Request):
    """Landing page linking to the teacher, lesson and quiz pages."""
    return templates.TemplateResponse(request, "home.html", {})


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}
