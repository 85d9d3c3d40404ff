"""
Logging for host applications embedding the fingerprint library:
- Rich console for humans (default).
- Optional JSON lines on stderr.
- Optional rotating file log.
- QueueHandler/QueueListener so worker threads never block on sinks.

The library itself only calls `get_logger`; configuring sinks is left to the
host, which calls `init_logging()` once at startup.

Env vars:
    PFP_LOG_LEVEL   = DEBUG|INFO|WARNING|ERROR (default WARNING)
    PFP_LOG_JSON    = 0|1  (default 0)
    PFP_LOG_TO_FILE = 0|1  (default 0)
    PFP_LOG_FILE    = path to log file (default .pfp/logs/fingerprints.log)
"""

from __future__ import annotations

import atexit
import json
import logging
import os
import queue
import sys
from dataclasses import dataclass
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "pfp"
_DEFAULT_FILE = Path(".pfp/logs/fingerprints.log")


@dataclass
class LogConfig:
    level: str = "WARNING"
    json: bool = False
    to_file: bool = False
    file_path: Path = _DEFAULT_FILE
    max_bytes: int = 2 * 1024 * 1024
    backup_count: int = 3


_CONSOLE = Console(stderr=True, highlight=False, soft_wrap=True)
_QUEUE: Optional[queue.Queue] = None
_LISTENER: Optional[QueueListener] = None
_INITIALIZED = False


class JsonFormatter(logging.Formatter):
    """One JSON object per record, stable keys."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = {
            "level": record.levelname,
            "time": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
            "logger": record.name,
            "msg": record.getMessage(),
            "thread": record.threadName,
            "line": record.lineno,
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "0") == "1"


def _resolve(
    level: Optional[str],
    json_out: Optional[bool],
    to_file: Optional[bool],
    file_path: Optional[Path],
) -> LogConfig:
    return LogConfig(
        level=(level or os.getenv("PFP_LOG_LEVEL") or "WARNING").upper(),
        json=json_out if json_out is not None else _env_flag("PFP_LOG_JSON"),
        to_file=to_file if to_file is not None else _env_flag("PFP_LOG_TO_FILE"),
        file_path=Path(os.getenv("PFP_LOG_FILE") or (file_path or _DEFAULT_FILE)),
    )


def _build_handlers(cfg: LogConfig) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []

    if cfg.json:
        console_handler = logging.StreamHandler(stream=sys.stderr)
        console_handler.setFormatter(JsonFormatter())
        handlers.append(console_handler)
    else:
        rich_handler = RichHandler(
            console=_CONSOLE, show_time=True, show_path=False, markup=False
        )
        rich_handler.setFormatter(logging.Formatter("%(message)s"))
        handlers.append(rich_handler)

    if cfg.to_file:
        try:
            cfg.file_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                cfg.file_path,
                maxBytes=cfg.max_bytes,
                backupCount=cfg.backup_count,
                encoding="utf-8",
            )
        except OSError as exc:
            # A missing log directory must not break fingerprinting.
            logging.getLogger(ROOT_LOGGER).warning(
                "file logging disabled: %s", exc
            )
        else:
            file_handler.setFormatter(
                JsonFormatter()
                if cfg.json
                else logging.Formatter(
                    "%(asctime)s %(levelname)s %(name)s: %(message)s"
                )
            )
            handlers.append(file_handler)

    return handlers


def init_logging(
    level: Optional[str] = None,
    *,
    json: Optional[bool] = None,
    to_file: Optional[bool] = None,
    file_path: Optional[Path] = None,
) -> None:
    """
    Initialize process-wide logging. Safe to call multiple times (idempotent).

    Arguments win over env vars; env vars win over defaults.
    """
    global _INITIALIZED, _QUEUE, _LISTENER

    if _INITIALIZED:
        return

    cfg = _resolve(level, json, to_file, file_path)

    root = logging.getLogger()
    root.setLevel(getattr(logging, cfg.level, logging.WARNING))

    if not any(isinstance(h, QueueHandler) for h in root.handlers):
        _QUEUE = queue.Queue(-1)
        root.addHandler(QueueHandler(_QUEUE))

    if _QUEUE is not None:
        _LISTENER = QueueListener(
            _QUEUE, *_build_handlers(cfg), respect_handler_level=True
        )
        _LISTENER.start()
        atexit.register(shutdown_logging)

    logging.getLogger("PIL").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    _INITIALIZED = True


def shutdown_logging() -> None:
    """Stop the listener and detach the queue handler (used by tests too)."""
    global _LISTENER, _QUEUE, _INITIALIZED
    if _LISTENER:
        _LISTENER.stop()
        for handler in _LISTENER.handlers:
            handler.close()
        _LISTENER = None
    root = logging.getLogger()
    for h in [h for h in root.handlers if isinstance(h, QueueHandler)]:
        root.removeHandler(h)
    _QUEUE = None
    _INITIALIZED = False


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Namespaced logger under "pfp". Cheap; call at module import time.
    """
    if not name:
        return logging.getLogger(ROOT_LOGGER)
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
