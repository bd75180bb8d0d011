"""
Django settings for the jigsaw backend.

Only what the jigsaw app needs: the ORM for saved puzzles, REST framework for
record validation, and logging for integrity diagnostics.
"""
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "insecure-development-key")
DEBUG = os.environ.get("DJANGO_DEBUG", "1") == "1"
ALLOWED_HOSTS = os.environ.get("DJANGO_ALLOWED_HOSTS", "localhost").split(",")

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "rest_framework",
    "jigsaw",
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("DJANGO_DB_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
USE_TZ = True
TIME_ZONE = "UTC"

JIGSAW = {
    "TICK_SECONDS": 1,
    "HINT_INTERVAL_SECONDS": 5,
    "HINT_LIMIT": 2,
    "HINTS_PER_SESSION": 3,
    "MOVE_THROTTLE_SECONDS": 0.05,
    "DEFAULT_DIFFICULTY": "4x4",
    "DEFAULT_TIME_LIMIT": 300,
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "loggers": {
        "jigsaw": {
            "handlers": ["console"],
            "level": os.environ.get("JIGSAW_LOG_LEVEL", "INFO"),
        },
    },
}
