from __future__ import annotations
import os
from pathlib import Path

class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    BASE_DIR = Path(__file__).resolve().parent
    # SQLite file in project directory
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'app.db'}")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    WTF_CSRF_TIME_LIMIT = None
    WTF_CSRF_HEADERS = ["X-CSRF-Token", "X-CSRFToken"]

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_JSON = True

    # a student may hold at most one elective per group (off: not enforced upstream)
    ELECTIVE_ONE_PER_GROUP = os.getenv("ELECTIVE_ONE_PER_GROUP", "0") == "1"

    SEED_TEST_DATA = False
    DEFAULT_USERS: list[dict] = []

class DevConfig(BaseConfig):
    DEBUG = True
    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
    SEED_TEST_DATA = True
    DEFAULT_USERS = [
        {"email": "admin@example.com", "password": "pass", "role": "ADMIN"},
    ]

class TestConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    WTF_CSRF_ENABLED = False
    LOG_JSON = False

class ProdConfig(BaseConfig):
    DEBUG = False
    JSON_SORT_KEYS = False

config_map = {
    "dev": DevConfig,
    "test": TestConfig,
    "prod": ProdConfig,
    "default": DevConfig,
}
