# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Structured JSON logger for bertprep.

Every log line is a single JSON object carrying a UTC timestamp, the level,
the logger name, and the rendered message. Anything passed through the
`extra` kwarg of a logging call is merged into the same object, which is
how the tokenizer and the encoders attach batch sizes, tensor names and
the like.

The factory `get_logger` is the only way loggers are created in this
package. It attaches a stdout handler (plus an optional file handler) and
stops propagation to the root logger, so library users who configure
their own logging are not flooded with duplicate lines.

  {"ts": "2026-...", "level": "INFO", "module": "bertprep.tokenizer.vocab.core", "msg": "Vocabulary loaded", "size": 21128}
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

# Attributes every LogRecord carries. Anything else on the record came in
# through `extra` and belongs in the JSON object.
_RESERVED_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}


class JsonFormatter(logging.Formatter):
    """
    Render a LogRecord as one line of JSON.

    Mandatory keys are ts, level, module and msg. Exception info, when
    present, is rendered into an "exc" key so tracebacks stay on one line.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "ts": datetime.now(tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.name,
            "msg": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key.startswith("_"):
                continue
            entry[key] = value

        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str, ensure_ascii=False)


_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _resolve_log_level(level_name: str) -> int:
    """Map a level name such as "debug" or "INFO" to the logging constant."""
    upper = level_name.upper()
    if upper not in _VALID_LOG_LEVELS:
        raise ValueError(
            f"Invalid log level '{level_name}'. Must be one of: {', '.join(_VALID_LOG_LEVELS)}"
        )
    return getattr(logging, upper)


def get_logger(
    name: str,
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Create (or re-level) a structured JSON logger.

    Args:
        name: Logger name, normally the calling module's __name__.
        log_level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL.
        log_file: Optional file that receives the same JSON lines as stdout.

    Returns:
        A logging.Logger writing JSON lines.
    """
    logger = logging.getLogger(name)
    level = _resolve_log_level(log_level)
    logger.setLevel(level)

    # Re-levelling an existing logger must not stack a second set of handlers.
    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        if log_file is not None and not _has_file_handler(logger, log_file):
            _add_file_handler(logger, log_file, level, JsonFormatter())
        return logger

    formatter = JsonFormatter()

    stdout_handler = logging.StreamHandler(stream=sys.stdout)
    stdout_handler.setLevel(level)
    stdout_handler.setFormatter(formatter)
    logger.addHandler(stdout_handler)

    if log_file is not None:
        _add_file_handler(logger, log_file, level, formatter)

    logger.propagate = False

    return logger


def _has_file_handler(logger: logging.Logger, log_file: Path) -> bool:
    target = os.path.abspath(log_file)
    return any(
        isinstance(handler, logging.FileHandler) and handler.baseFilename == target
        for handler in logger.handlers
    )


def _add_file_handler(
    logger: logging.Logger,
    log_file: Path,
    level: int,
    formatter: logging.Formatter,
) -> None:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)
