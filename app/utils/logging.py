from __future__ import annotations

import logging
import os
from typing import Iterable, List, Optional

_DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_DEFAULT_DATEFMT = "%H:%M:%S"
_LEVEL_ENV_VARS = ("PHONEDATA_LOG_LEVEL",)
_DEBUG_FLAGS = ("PHONEDATA_DEBUG",)


def _coerce_level(value: Optional[str], fallback: int) -> int:
    if not value:
        return fallback
    text = value.strip()
    if not text:
        return fallback
    if text.isdigit():
        return int(text)
    candidate = logging.getLevelName(text.upper())
    if isinstance(candidate, int):
        return candidate
    return fallback


def _env_truthy(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _resolve_env_level() -> Optional[int]:
    for var in _LEVEL_ENV_VARS:
        value = os.getenv(var)
        if value:
            return _coerce_level(value, logging.INFO)
    if any(_env_truthy(os.getenv(flag)) for flag in _DEBUG_FLAGS):
        return logging.DEBUG
    return None


def configure_root(
    default_level: int | str = logging.INFO,
    handlers: Iterable[logging.Handler] = (),
    log_path: Optional[str] = None,
) -> List[logging.Handler]:
    """
    Configure the root logger for the TUI.

    The terminal belongs to Textual, so records only go to the given handlers
    (usually the on-screen log) and, if set, to ``log_path``.

    Environment overrides:
      - PHONEDATA_LOG_LEVEL: explicit log level
      - PHONEDATA_DEBUG: truthy -> DEBUG

    Returns the handlers attached to the root logger, for ``release_handlers``.
    """
    fallback = (
        _coerce_level(default_level, logging.INFO)
        if isinstance(default_level, str)
        else int(default_level)
    )
    env_level = _resolve_env_level()
    effective = env_level if env_level is not None else fallback

    root = logging.getLogger()
    formatter = logging.Formatter(_DEFAULT_FORMAT, datefmt=_DEFAULT_DATEFMT)
    new_handlers = list(handlers)
    if log_path:
        new_handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
    for handler in new_handlers:
        if handler.formatter is None:
            handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(effective)
    return new_handlers


def release_handlers(handlers: Iterable[logging.Handler]) -> None:
    """Detach handlers from the root logger and close them."""
    root = logging.getLogger()
    for handler in handlers:
        root.removeHandler(handler)
        handler.close()
