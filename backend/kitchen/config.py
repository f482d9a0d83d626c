# backend/kitchen/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/kitchen.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///kitchen.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Realtime notifications: per-listener buffer and idle heartbeat
    NOTIFICATION_QUEUE_SIZE = int(os.environ.get("NOTIFICATION_QUEUE_SIZE", "100"))
    NOTIFICATION_HEARTBEAT_SECONDS = float(os.environ.get("NOTIFICATION_HEARTBEAT_SECONDS", "15"))

    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "24"))

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))
