import logging.config
import sys

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-32s | %(message)s"
ERROR_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s\n%(pathname)s:%(lineno)d\n%(message)s"


def setup_logging(log_level: str = "INFO", sql_echo: bool = False):
    """
    콘솔 로깅 설정

    - stdout: 전체 로그 (원장 변경은 서비스 로거가 INFO 로 남긴다)
    - stderr: WARNING 이상만, 발생 위치 포함
    - sqlalchemy.engine: sql_echo 일 때만 INFO
    """
    log_level = log_level.upper()
    app_handlers = ["console", "error_console"]

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "detailed": {"format": ERROR_FORMAT},
                "simple": {"format": CONSOLE_FORMAT},
            },
            "handlers": {
                "console": {
                    "formatter": "simple",
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                },
                "error_console": {
                    "formatter": "detailed",
                    "class": "logging.StreamHandler",
                    "stream": sys.stderr,
                    "level": "WARNING",
                },
            },
            "root": {"handlers": app_handlers, "level": log_level},
            "loggers": {
                "ledgerapi": {
                    "handlers": app_handlers,
                    "level": log_level,
                    "propagate": False,
                },
                "uvicorn.error": {
                    "handlers": app_handlers,
                    "level": log_level,
                    "propagate": False,
                },
                "uvicorn.access": {
                    "handlers": ["console"],
                    "level": log_level,
                    "propagate": False,
                },
                "sqlalchemy.engine": {
                    "handlers": ["console"],
                    "level": "INFO" if sql_echo else "WARNING",
                    "propagate": False,
                },
            },
        }
    )
