"""Application settings and validation."""

import os
from pathlib import Path

BASE = Path(__file__).resolve().parent.parent


class Settings:
    ENV: str
    DATABASE_URL: str
    SQL_ECHO: bool
    JWT_SECRET: str
    JWT_ALGORITHM: str
    JWT_EXPIRE_HOURS: int
    ALLOW_INSECURE_JWT: bool
    ALLOW_DEV_CORS: bool
    LOG_LEVEL: str

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE / 'app.db'}")
        self.SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"
        self.JWT_SECRET = os.getenv("JWT_SECRET", "change_me_for_prod")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.JWT_EXPIRE_HOURS = int(os.getenv("JWT_EXPIRE_HOURS", "24"))
        self.ALLOW_INSECURE_JWT = os.getenv("ALLOW_INSECURE_JWT", "false").lower() == "true"
        self.ALLOW_DEV_CORS = os.getenv("ALLOW_DEV_CORS", "true").lower() == "true"
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self._validate()

    def _validate(self):
        if self.ENV != "dev" and not self.ALLOW_INSECURE_JWT and self.JWT_SECRET == "change_me_for_prod":
            raise RuntimeError("JWT_SECRET must be set to a non-default value in non-dev environments")
        if self.JWT_EXPIRE_HOURS <= 0:
            raise RuntimeError("JWT_EXPIRE_HOURS must be a positive integer")


settings = Settings()
