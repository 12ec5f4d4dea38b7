# session_store/core/logging_config.py
"""
Logging setup for the session store.

One root configuration (console plus a rotating file) for the whole app,
with a separate level for the ``session_store`` loggers so token and store
activity can be traced at DEBUG without turning on every library's debug
output. Tokens are never logged whole: use ``short_token``.
"""

import os
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

SESSION_LOGGER = "session_store"
LOG_FILE_NAME = "sessions.log"

# Libraries that log every request or command at INFO/DEBUG
QUIET_LOGGERS = ("uvicorn.access", "redis", "httpx", "httpcore")


def setup_logging(
    level: Optional[str] = None,
    log_dir: Optional[Union[str, Path]] = None,
    session_level: Optional[str] = None
) -> logging.Logger:
    """
    Configure console and rotating-file logging. Calling it again does not
    add duplicate handlers.

    Args:
        level: Root level, defaults to LOG_LEVEL or INFO
        log_dir: Directory for sessions.log, defaults to LOG_DIR or ./logs
        session_level: Level for ``session_store.*``, defaults to
            SESSION_LOG_LEVEL or the root level
    """
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    session_level = (session_level or os.getenv("SESSION_LOG_LEVEL") or level).upper()
    log_dir = Path(log_dir or os.getenv("LOG_DIR", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    log_file = str((log_dir / LOG_FILE_NAME).resolve())
    file_handlers = [h for h in root_logger.handlers if isinstance(h, RotatingFileHandler)]
    # RotatingFileHandler is a StreamHandler too; only a plain one counts as console
    has_console = any(
        isinstance(h, logging.StreamHandler) and h not in file_handlers
        for h in root_logger.handlers
    )

    if not has_console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if not any(h.baseFilename == log_file for h in file_handlers):
        file_handler = RotatingFileHandler(
            filename=log_file,
            maxBytes=5 * 1024 * 1024,
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Propagated records skip the root logger's own level, so session_store
    # debug output gets through even under a stricter root level
    logging.getLogger(SESSION_LOGGER).setLevel(session_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


def short_token(token: str) -> str:
    """Render a token for log output without exposing it"""
    return f"{token[:8]}..."
