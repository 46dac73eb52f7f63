"""
Logging configuration for processes that embed cvguard.

``setup_logging`` configures the root logger once with:
- Console output on stdout
- Optional file output to ``<log dir>/<service_name>.log``
- A fresh log file per start unless ``LOG_APPEND=1``
- User-friendly mode that shows bare warning messages only
"""

import logging
import logging.handlers
import sys
import threading
from pathlib import Path
from typing import Optional

from .config import ConfigurationError, env_bool, env_str

_config_lock = threading.Lock()
_MODULE_LOGGER = logging.getLogger(__name__)
_TECHNICAL_FORMAT = "%(asctime)s.%(msecs)03d - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_NOISY_LOGGERS = ("asyncio", "aiohttp", "redis", "redis.connection", "redis.asyncio", "urllib3")


def _resolve_log_directory(log_dir: Optional[Path]) -> Path:
    if log_dir is not None:
        return log_dir
    configured = env_str("CVGUARD_LOG_DIR")
    if configured:
        return Path(configured).expanduser()
    return Path.cwd() / "logs"


def _resolve_level() -> int:
    name = (env_str("CVGUARD_LOG_LEVEL") or "INFO").upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ConfigurationError.invalid_format("CVGUARD_LOG_LEVEL", name, "a logging level name")
    return level


def _should_skip_logging_configuration(root_logger: logging.Logger, service_name: Optional[str]) -> bool:
    if not root_logger.handlers:
        return False
    has_console = any(
        isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler) for handler in root_logger.handlers
    )
    if not service_name:
        return has_console
    has_file = any(
        isinstance(handler, logging.FileHandler) and Path(handler.baseFilename).name == f"{service_name}.log"
        for handler in root_logger.handlers
    )
    return has_console and has_file


def _reset_root_handlers(root_logger: logging.Logger) -> None:
    for handler in list(root_logger.handlers):
        try:
            handler.close()
        except OSError as exc:  # policy_guard: allow-silent-handler
            _MODULE_LOGGER.debug("Handler close failed: %s", exc)
        root_logger.removeHandler(handler)


def _build_console_handler(user_friendly: bool) -> logging.Handler:
    console_handler = logging.StreamHandler(sys.stdout)
    if user_friendly:
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        console_handler.setLevel(logging.WARNING)
    else:
        console_handler.setFormatter(logging.Formatter(_TECHNICAL_FORMAT, _DATE_FORMAT))
        console_handler.setLevel(logging.DEBUG)
    return console_handler


def _configure_file_handler(service_name: Optional[str], log_dir: Optional[Path]) -> Optional[logging.Handler]:
    if not service_name:
        return None

    logs_dir = _resolve_log_directory(log_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)
    file_mode = "a" if env_bool("LOG_APPEND", or_value=False) else "w"

    file_handler = logging.handlers.WatchedFileHandler(logs_dir / f"{service_name}.log", mode=file_mode)
    file_handler.setFormatter(logging.Formatter(_TECHNICAL_FORMAT, _DATE_FORMAT))
    file_handler.setLevel(logging.INFO)
    return file_handler


def _suppress_noisy_third_parties() -> None:
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_logging(service_name: Optional[str] = None, user_friendly: bool = False, *, log_dir: Optional[Path] = None) -> None:
    """Configure the root logger; repeated calls with the same target are no-ops."""

    with _config_lock:
        root_logger = logging.getLogger()
        if _should_skip_logging_configuration(root_logger, service_name):
            return

        _reset_root_handlers(root_logger)
        root_logger.addHandler(_build_console_handler(user_friendly))

        file_handler = _configure_file_handler(service_name, log_dir)
        if file_handler:
            root_logger.addHandler(file_handler)

        root_logger.setLevel(_resolve_level())
        _suppress_noisy_third_parties()


__all__ = ["setup_logging"]
