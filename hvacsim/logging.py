import logging
from logging import StreamHandler, FileHandler, Logger
from pathlib import Path


PACKAGE_LOGGER_NAME = 'hvacsim'


class ModuleLogger:
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

    # specify the formatting of the log records
    FORMATTER = logging.Formatter(
        '[%(name)s | %(levelname)s] %(message)s'
    )

    @classmethod
    def create_console_handler(cls, log_level: int | None = None) -> StreamHandler:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(cls.FORMATTER)
        console_handler.setLevel(log_level or cls.DEBUG)
        return console_handler

    @classmethod
    def create_file_handler(cls, file_path: Path | str, log_level: int | None = None) -> FileHandler:
        # Simulation warnings of successive runs are appended to the same file.
        file_handler = logging.FileHandler(file_path, mode='a', encoding='utf-8')
        file_handler.setFormatter(cls.FORMATTER)
        file_handler.setLevel(log_level or cls.DEBUG)
        return file_handler

    @classmethod
    def get_logger(
        cls,
        logger_name: str,
        file_path: Path | str | None = None,
        log_level: int = logging.WARNING
    ) -> Logger:
        """Returns the logger with `logger_name`. A logger that is requested
        for the first time gets a console handler and, if `file_path` is not
        None, also a file handler. Only messages with a priority equal to or
        higher than `log_level` are passed on.

        Solver modules report their non-fatal problems (non-convergence,
        unbalanced air flows, unusual configurations) at WARNING level and
        their convergence diagnostics at INFO level.
        """
        logger = logging.getLogger(logger_name)
        if not logger.handlers:
            logger.addHandler(cls.create_console_handler(log_level))
            if file_path is not None:
                logger.addHandler(cls.create_file_handler(file_path, log_level))
            logger.setLevel(log_level)
        return logger

    @classmethod
    def set_package_level(cls, log_level: int) -> None:
        """Sets `log_level` on every logger that was created for a module of
        the package, and on their handlers.
        """
        manager = logging.Logger.manager
        for name, logger in list(manager.loggerDict.items()):
            if not name.startswith(PACKAGE_LOGGER_NAME):
                continue
            if isinstance(logger, logging.Logger):
                logger.setLevel(log_level)
                for handler in logger.handlers:
                    handler.setLevel(log_level)
