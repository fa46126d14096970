import logging
from typing import Union

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] - %(message)s"


def configure_logging(level: Union[int, str] = logging.INFO) -> logging.Logger:
    """Attach a single stream handler to the package logger."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger = logging.getLogger("contrast_scan")
    logger.setLevel(level)
    if not any(getattr(h, "_contrast_scan", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._contrast_scan = True
        logger.addHandler(handler)
    return logger
