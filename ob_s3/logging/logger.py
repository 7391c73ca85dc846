import logging
import sys
from typing import TextIO


class Log:
    """Pipeline logging.

    Keyword context is passed to the record as ``extra`` and appended to the
    message as ``key=value`` pairs.
    """

    _logger: logging.Logger = logging.getLogger("ob_s3")

    @classmethod
    def configure(cls, log_level: str, stream: TextIO | None = None) -> None:
        """Configure the logger with the specified level and a stream handler."""
        cls._logger.setLevel(log_level.upper())
        if not cls._logger.handlers:
            handler = logging.StreamHandler(stream or sys.stdout)
            handler.setFormatter(
                logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
            )
            cls._logger.addHandler(handler)

    @classmethod
    def info(cls, message: str, **context: object) -> None:
        cls._emit(logging.INFO, message, context)

    @classmethod
    def error(cls, message: str, **context: object) -> None:
        cls._emit(logging.ERROR, message, context)

    @classmethod
    def warning(cls, message: str, **context: object) -> None:
        cls._emit(logging.WARNING, message, context)

    @classmethod
    def debug(cls, message: str, **context: object) -> None:
        cls._emit(logging.DEBUG, message, context)

    @classmethod
    def _emit(cls, level: int, message: str, context: dict[str, object]) -> None:
        if not cls._logger.isEnabledFor(level):
            return
        if context:
            rendered = " ".join(f"{key}={value}" for key, value in context.items())
            message = f"{message} [{rendered}]"
        cls._logger.log(level, message, extra=context)
