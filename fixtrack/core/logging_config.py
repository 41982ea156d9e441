import logging
import logging.config

from fixtrack.core.config import Settings

DEVELOPMENT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s:%(lineno)d  %(message)s"
PRODUCTION_FORMAT = "time=%(asctime)s level=%(levelname)s logger=%(name)s msg=%(message)s"


def configure_logging(settings: Settings) -> None:
    """
    Configure the root logger from application settings.
    Production gets one key=value line per record; anything else gets the
    verbose developer format with module and line number.
    """
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    fmt = PRODUCTION_FORMAT if settings.ENVIRONMENT == "production" else DEVELOPMENT_FORMAT

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": {"format": fmt}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "stream": "ext://sys.stdout",
                }
            },
            "root": {"level": level, "handlers": ["console"]},
            "loggers": {
                # SQL echo is controlled by SQL_ECHO, keep the engine quiet otherwise
                "sqlalchemy.engine": {"level": logging.WARNING},
            },
        }
    )
