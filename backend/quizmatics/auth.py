"""Authentication helpers and FastAPI security dependency.

This module provides utilities to decode JWT tokens and a FastAPI
dependency `get_current_user` that validates the bearer token and
returns the corresponding `User` model instance from the database.
`get_page_user` does the same for the HTML pages, reading the token
from a cookie instead of the Authorization header.

Token verification raises HTTPExceptions on failure so it can be used
directly inside route dependencies.
"""

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt
from sqlmodel import Session
from .config import settings
from .database import get_session
from . import repositories

bearer_scheme = HTTPBearer(auto_error=False)
PAGE_TOKEN_COOKIE = "access_token"


def decode_token(token: str):
    """Decode and verify a JWT token.

    Returns the decoded payload on success or raises an HTTPException
    with status 401 on failure.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail='token expired')
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail='invalid token')


def _user_from_token(token: str, db: Session):
    payload = decode_token(token)
    user_id = payload.get('user_id')
    if not user_id:
        raise HTTPException(status_code=401, detail='invalid token payload')
    user = repositories.UserRepository(db).get(user_id)
    if not user:
        raise HTTPException(status_code=401, detail='user not found')
    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(bearer_scheme),
    db: Session = Depends(get_session),
):
    """FastAPI dependency that returns the authenticated user.

    The function extracts the bearer token from the request, decodes it
    and looks the user up in the request's session. It raises an
    HTTPException(401) for any authentication issue, including a
    missing Authorization header.
    """
    if credentials is None:
        raise HTTPException(status_code=401, detail='not authenticated', headers={'WWW-Authenticate': 'Bearer'})
    return _user_from_token(credentials.credentials, db)


def get_page_user(request: Request, db: Session = Depends(get_session)):
    """Page counterpart of `get_current_user`.

    Reads the JWT from the `PAGE_TOKEN_COOKIE` cookie set by
    `/Account/Login` and raises HTTPException(401) when it is missing
    or invalid.
    """
    token = request.cookies.get(PAGE_TOKEN_COOKIE)
    if not token:
        raise HTTPException(status_code=401, detail='Please log in to continue.')
    return _user_from_token(token, db)
