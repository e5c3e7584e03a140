# backend/backoffice/config.py
from __future__ import annotations
import os

from .time_utils import utcnow


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///backoffice.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Upper bound on allocate-then-verify rounds when issuing invoice/ticket codes
    CODE_ALLOCATION_ATTEMPTS = int(os.environ.get("BACKOFFICE_CODE_ATTEMPTS", "10"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Server clock; tests swap in a controllable one
    CLOCK = staticmethod(utcnow)
