import logging
import os
from datetime import datetime
from typing import Optional

from .config import get_settings

DEFAULT_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


class Logger:
    """Console + daily-file logger with duplicate-handler protection.

    Handlers are named after the logger, so building a second ``Logger`` with the
    same name reuses the handlers that are already attached.

    Args:
        name: Logger name (used in log messages and handler identification)
        log_dir: Directory for daily log files; ``None`` disables the file handler
        console_level: Minimum level for console output
        file_level: Minimum level for file output
        fmt: Log message format string
        enable_console: Whether to enable console output
    """
    def __init__(
        self,
        name: str = "ham_relations",
        log_dir: Optional[str] = None,
        console_level: int = logging.WARNING,
        file_level: int = logging.DEBUG,
        fmt: str = DEFAULT_FORMAT,
        enable_console: bool = True
    ) -> None:
        self.logger = logging.getLogger(name)
        self.logger.propagate = False

        levels = [console_level] if enable_console else []
        if log_dir:
            levels.append(file_level)
        self.logger.setLevel(min(levels) if levels else logging.CRITICAL)

        if enable_console:
            console_handler_name = f"{name}-console"
            if not any(h.get_name() == console_handler_name for h in self.logger.handlers):
                ch = logging.StreamHandler()
                ch.set_name(console_handler_name)
                ch.setLevel(console_level)
                ch.setFormatter(logging.Formatter(fmt))
                self.logger.addHandler(ch)

        if log_dir:
            self._add_file_handler(name, log_dir, file_level, fmt)

    def _add_file_handler(self, name: str, log_dir: str, level: int, fmt: str) -> None:
        try:
            os.makedirs(log_dir, exist_ok=True)
        except (OSError, PermissionError) as e:
            raise RuntimeError(f"Failed to create log directory '{log_dir}': {e}")

        file_handler_name = f"{name}-file"
        if any(h.get_name() == file_handler_name for h in self.logger.handlers):
            return

        log_file = os.path.join(log_dir, f"{datetime.now().strftime('%Y-%m-%d')}.log")
        try:
            fh = logging.FileHandler(log_file, encoding="utf-8")
        except (OSError, PermissionError) as e:
            raise RuntimeError(f"Failed to create file handler for '{log_file}': {e}")
        fh.set_name(file_handler_name)
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(fmt))
        self.logger.addHandler(fh)

    # convenience passthroughs
    def debug(self, msg: str, *args, **kwargs) -> None:
        self.logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs) -> None:
        self.logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs) -> None:
        self.logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs) -> None:
        self.logger.error(msg, *args, **kwargs)

    def is_enabled_for(self, level: int) -> bool:
        return self.logger.isEnabledFor(level)

    def get_log_file_path(self) -> str:
        """Path of the current daily log file, or an empty string when file logging is off."""
        for handler in self.logger.handlers:
            if isinstance(handler, logging.FileHandler):
                return handler.baseFilename
        return ""

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)


def get_logger(name: str = "ham_relations") -> Logger:
    """Build a ``Logger`` configured from the ``HAM_RELATIONS_*`` settings."""
    settings = get_settings()
    return Logger(
        name=name,
        log_dir=settings.log_dir,
        console_level=settings.log_level,
        enable_console=settings.log_console,
    )
