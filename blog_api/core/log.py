import logging
import logging.config
from os import environ

from yaml import safe_load

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def configure_logging() -> None:
    """Configure logging from environment variables.

    LOG_CONFIG points to a YAML dictConfig file and wins over everything else.
    Otherwise LOG_LEVEL, LOG_FORMAT and LOG_FILE drive a basicConfig setup.
    """
    log_config_path = environ.get("LOG_CONFIG", None)
    if log_config_path is not None:
        with open(log_config_path, "r") as f:
            logging_config = safe_load(f.read())
        logging.config.dictConfig(logging_config)
        return

    log_level = environ.get("LOG_LEVEL", "INFO").upper()
    if log_level not in LOG_LEVELS:
        raise ValueError(f"Invalid log level: {log_level}")
    log_format = environ.get("LOG_FORMAT", "%(asctime)s   %(name)-40s %(levelname)-8s %(message)s")
    log_file = environ.get("LOG_FILE", None)

    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(level=log_level, format=log_format, handlers=handlers, force=True)
