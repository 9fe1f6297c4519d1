import logging
import os


def get_logger(name: str) -> logging.Logger:
    """Application logger factory; LOG_LEVEL overrides the DEBUG default."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "[%(asctime)s] [%(levelname)s] [%(name)s]: %(message)s"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(os.getenv("LOG_LEVEL", "DEBUG").upper())
    return logger
