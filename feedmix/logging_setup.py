# feedmix/logging_setup.py
import logging
from logging.config import dictConfig
from logging import LogRecord
from pathlib import Path
import contextvars
import os

# ---- Correlation ID (used by middleware) ----
request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")

class RequestIdFilter(logging.Filter):
    def filter(self, record: LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True

# ---- Structured fields ----
# attributes every LogRecord carries; anything else arrived through extra=
_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message", "asctime", "request_id", "fields", "taskName",
}

class FieldsFormatter(logging.Formatter):
    """Renders the record's extra= payload as ` key=value` pairs in %(fields)s."""

    def format(self, record: LogRecord) -> str:
        extras = {k: v for k, v in vars(record).items() if k not in _RESERVED_ATTRS}
        record.fields = "".join(f" {k}={v}" for k, v in sorted(extras.items()))
        return super().format(record)

# ---- Paths & levels ----
BASE_DIR = Path(__file__).resolve().parents[1]  # project root (folder that contains 'feedmix/')
LOG_DIR  = Path(os.getenv("LOG_DIR", BASE_DIR / "logs"))
LOG_FILE = LOG_DIR / "feedmix.log"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

def setup_logging() -> Path:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    dictConfig({
        "version": 1,
        "disable_existing_loggers": False,

        "filters": {
            "request_id": {"()": RequestIdFilter},
        },

        "formatters": {
            "standard": {
                "()": FieldsFormatter,
                "fmt": (
                    "%(asctime)s | %(levelname)s | %(name)s | req=%(request_id)s | "
                    "%(message)s%(fields)s (%(filename)s:%(lineno)d)"
                ),
            },
            "uvicorn_access": {
                "format": "%(asctime)s | %(levelname)s | %(message)s"
            },
        },

        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "filters": ["request_id"],
            },
            "file": {
                "class": "logging.handlers.TimedRotatingFileHandler",
                "formatter": "standard",
                "filters": ["request_id"],
                "filename": str(LOG_FILE),
                "when": "midnight",
                "backupCount": 14,
                "encoding": "utf-8",
            },
            "uvicorn_console": {
                "class": "logging.StreamHandler",
                "formatter": "uvicorn_access",
            },
        },

        "loggers": {
            # children (feedmix.mixer, feedmix.prefs, ...) inherit from here
            "feedmix": {"handlers": ["console", "file"], "level": LOG_LEVEL, "propagate": False},

            "uvicorn.error":  {"handlers": ["uvicorn_console", "file"], "level": "INFO", "propagate": False},
            "uvicorn.access": {"handlers": ["uvicorn_console", "file"], "level": "INFO", "propagate": False},
        },

        "root": {"handlers": ["console", "file"], "level": LOG_LEVEL},
    })

    logging.getLogger("feedmix").info(f"Logging to: {LOG_FILE}")
    return LOG_FILE

def get_logger(name: str = "feedmix") -> logging.Logger:
    return logging.getLogger(name)
