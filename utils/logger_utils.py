from __future__ import annotations

import logging
import sys
import warnings
from logging import Formatter, NullHandler, StreamHandler
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING, ClassVar, Final, Literal, NamedTuple, Self, TextIO, TypeAlias

if TYPE_CHECKING:
    from pathlib import Path

__all__: list[str] = ["LoggerUtils"]

LevelType: TypeAlias = Literal[
    "NOTSET",
    "DEBUG",
    "INFO",
    "WARNING",
    "ERROR",
    "CRITICAL",
]

_LOG_FILE_SIZE: Final[int] = 2 * 1024 * 1024  # 2MB
_LOG_BACKUP_COUNT: Final[int] = 2

DEFAULT_LOG_LEVEL: Final[int] = logging.INFO
DEFAULT_NAMESPACE: Final[str] = "BatchTranslator"


class LogLevel(NamedTuple):
    """Logging level as both name and numeric value."""

    name: str
    value: int


class LoggerUtils:
    """Process-wide logging setup for the translator.

    All modules log through children of one namespaced logger so that the command-line driver
    (or a host application) decides once where records go: a terse console stream at WARNING
    and, optionally, a rotating UTF-8 file at DEBUG.

    Attributes:
        _LOGGER_NAMESPACE (str): Namespace prefixed to every logger name.
        _configured (bool): Set once handlers have been attached.
        _instance (LoggerUtils | None): Singleton instance.
    """

    _LOGGER_NAMESPACE: ClassVar[str] = DEFAULT_NAMESPACE
    _configured: ClassVar[bool] = False
    _instance: ClassVar[Self | None] = None

    def __new__(cls, *args, **kwargs) -> Self:
        _ = args, kwargs
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(
        self,
        filename: str | Path = "",
        *,
        console_level: int = logging.WARNING,
        use_null_console: bool = False,
    ) -> None:
        """Attach console and file handlers to the namespace logger.

        Does nothing when the logger has already been configured.

        Args:
            filename (str | Path): Log file path. An empty value disables file logging.
            console_level (int): Minimum level written to the console.
            use_null_console (bool): If True, suppress console output entirely.
        """
        if LoggerUtils._configured:
            return

        self.root_logger: logging.Logger = logging.getLogger(self._LOGGER_NAMESPACE)
        self._use_null_console: bool = bool(use_null_console) or sys.stderr is None
        # handlers filter on their own level; the logger itself must let everything through
        self.root_logger.setLevel(DEFAULT_LOG_LEVEL)

        self._console_logging(console_level)
        filename = str(filename)
        if filename.strip():
            self._file_logging(filename)

        warnings.showwarning = self.warning_to_log
        LoggerUtils._configured = True

    def warning_to_log(
        self,
        message: Warning | str,
        category: type[Warning],
        filename: str,
        lineno: int,
        file: TextIO | None = None,
        line: str | None = None,
    ) -> None:
        """Route `warnings.warn` output into the log (signature of `warnings.showwarning`)."""
        _ = file, line
        self.root_logger.warning("%s:%d: %s: %s", filename, lineno, category.__name__, message)

    @classmethod
    def initialize(cls, namespace: str) -> None:
        """Change the logger namespace before configuration.

        Args:
            namespace (str): New namespace.

        Raises:
            RuntimeError: If the logger is already configured.
        """
        if cls._configured:
            msg = "LoggerUtils is already configured. Reinitialization is not allowed."
            raise RuntimeError(msg)
        cls._LOGGER_NAMESPACE = namespace

    def _console_logging(self, console_level: int) -> None:
        if self._use_null_console:
            if not self._has_handler(NullHandler):
                self.root_logger.addHandler(NullHandler())
            return

        if self._has_handler(StreamHandler):
            self.root_logger.warning("Console logging is already configured.")
            return

        console_handler: StreamHandler[TextIO] = StreamHandler(sys.stderr)
        console_handler.setLevel(console_level)
        console_handler.setFormatter(Formatter("%(levelname)s: %(message)s"))
        self.root_logger.addHandler(console_handler)

    def _file_logging(self, filename: str) -> None:
        if self._has_handler(RotatingFileHandler):
            self.root_logger.warning("File logging is already configured.")
            return

        try:
            file_handler = RotatingFileHandler(
                filename=filename,
                maxBytes=_LOG_FILE_SIZE,
                backupCount=_LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
        except (FileNotFoundError, PermissionError):
            self.root_logger.error("Cannot open log file '%s'. Logging to the file is not performed.", filename)
            return

        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            Formatter("%(asctime)s %(levelname)-8s %(lineno)4d %(name)-40s\t%(funcName)s\t%(message)s")
        )
        self.root_logger.addHandler(file_handler)

    def _has_handler(self, handler_type: type) -> bool:
        # RotatingFileHandler is a StreamHandler subclass; compare exact types
        return any(type(h) is handler_type for h in self.root_logger.handlers)

    def set_level(self, level: LevelType | str) -> None:
        """Set the namespace logger level, falling back to INFO for unknown names.

        Args:
            level (LevelType | str): Logging level name.
        """
        level_map: dict[str, int] = logging.getLevelNamesMapping()
        try:
            self.root_logger.setLevel(level_map[level.upper()])
        except KeyError:
            self.root_logger.setLevel(DEFAULT_LOG_LEVEL)
            self.root_logger.warning("Unknown logging level '%s' specified. Logging level set to 'INFO'.", level)

    def get_level(self) -> LogLevel:
        """Get the effective level of the namespace logger.

        Returns:
            LogLevel: Level name and numeric value.
        """
        level_value: int = self.root_logger.getEffectiveLevel()
        return LogLevel(name=logging.getLevelName(level_value), value=level_value)

    @staticmethod
    def get_logger(name: str | None = None) -> logging.Logger:
        """Get a logger below the configured namespace.

        Args:
            name (str | None): Module name. None returns the namespace logger itself.

        Returns:
            logging.Logger: The logger instance.
        """
        full_name: str | None
        if LoggerUtils._LOGGER_NAMESPACE:
            full_name = f"{LoggerUtils._LOGGER_NAMESPACE}.{name}" if name else LoggerUtils._LOGGER_NAMESPACE
        else:
            full_name = name or None
        return logging.getLogger(full_name)
