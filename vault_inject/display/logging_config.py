"""Logging configuration setup."""

import copy
import logging
import logging.config
import os
import re
from typing import Optional, Set, Tuple  # noqa: UP035

from vault_inject.constants import DEFAULT_LOG_LEVEL

# ── Secret redaction filter ──────────────────────────────────────────────

_REDACTED = "***REDACTED***"


class SecretRedactionFilter(logging.Filter):
    """Logging filter that replaces resolved secret values with a placeholder.

    Call :meth:`register` to add values that should be scrubbed.  Every
    secret value and token is registered as soon as it is obtained.
    """

    def __init__(self) -> None:
        super().__init__()
        self._secrets: Set[str] = set()
        self._pattern: "re.Pattern[str] | None" = None

    def register(self, value: str) -> None:
        """Register a secret value for redaction."""
        if value and len(value) >= 4 and value not in self._secrets:  # skip trivially short values
            self._secrets.add(value)
            # Rebuild regex pattern with longest-first ordering
            escaped = sorted((re.escape(s) for s in self._secrets), key=len, reverse=True)
            self._pattern = re.compile("|".join(escaped))

    def redact(self, text: str) -> str:
        if self._pattern is None:
            return text
        return self._pattern.sub(_REDACTED, text)

    def filter(self, record: logging.LogRecord) -> bool:
        if self._pattern is not None:
            if isinstance(record.msg, str):
                record.msg = self.redact(record.msg)
            if record.args:
                if isinstance(record.args, dict):
                    record.args = {
                        k: self.redact(v) if isinstance(v, str) else v
                        for k, v in record.args.items()
                    }
                elif isinstance(record.args, tuple):
                    record.args = tuple(
                        self.redact(a) if isinstance(a, str) else a
                        for a in record.args
                    )
        return True


# Module-level singleton so the pipeline can register values at resolve time.
secret_redaction_filter = SecretRedactionFilter()

BASE_LOG_CFG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "%(asctime)s - %(name)25s:%(lineno)-4d - %(levelname)-7s - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "stderr_handler": {
            "class": "logging.StreamHandler",
            "level": "DEBUG",
            "formatter": "simple",
            "stream": "ext://sys.stderr",
        },
    },
    "loggers": {
        "vault_inject": {
            "handlers": ["stderr_handler"],
            "propagate": False,
            "level": DEFAULT_LOG_LEVEL,
        },
        "httpx": {
            "handlers": ["stderr_handler"],
            "propagate": False,
            "level": "WARNING",
        },
        "httpcore": {
            "handlers": ["stderr_handler"],
            "propagate": False,
            "level": "WARNING",
        },
    },
    "root": {
        "handlers": ["stderr_handler"],
        "level": "WARNING",
    },
}

VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def setup_logging(log_lvl_str: str, log_file: Optional[str] = None) -> Tuple[Optional[str], str]:
    """
    Set up the logging system.

    Logs go to stderr, or to *log_file* when given, so the wrapped
    command's stdout is never polluted.

    Args:
        log_lvl_str: The desired log level string (e.g., 'debug', 'info').
        log_file: Optional path of a file to log to instead of stderr.

    Returns:
        A tuple of (log_file_path or None, validated_log_level).
    """
    log_lvl_valid = log_lvl_str.upper()
    invalid = log_lvl_valid not in VALID_LEVELS
    if invalid:
        log_lvl_valid = DEFAULT_LOG_LEVEL

    log_cfg: dict = copy.deepcopy(BASE_LOG_CFG)
    if log_file:
        log_dir = os.path.dirname(os.path.abspath(log_file))
        os.makedirs(log_dir, exist_ok=True)
        log_cfg["handlers"]["stderr_handler"] = {
            "class": "logging.FileHandler",
            "level": "DEBUG",
            "formatter": "simple",
            "filename": log_file,
            "encoding": "utf-8",
        }

    log_cfg["loggers"]["vault_inject"]["level"] = log_lvl_valid
    if log_lvl_valid == "DEBUG":
        log_cfg["loggers"]["httpx"]["level"] = "INFO"
    log_cfg["root"]["level"] = log_lvl_valid if log_lvl_valid == "DEBUG" else "WARNING"

    logging.config.dictConfig(log_cfg)
    # Attach secret redaction filter to every handler we configured
    for name in ("vault_inject", "httpx", "httpcore", ""):
        for handler in logging.getLogger(name).handlers:
            handler.addFilter(secret_redaction_filter)

    if invalid:
        logging.getLogger(__name__).warning(
            "Invalid log level '%s'. Using '%s'.", log_lvl_str, log_lvl_valid
        )
    return log_file, log_lvl_valid
