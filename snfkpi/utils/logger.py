import logging
from typing import Optional

ROOT_LOGGER = "snfkpi"

LOG_FORMAT = "[%(asctime)s] %(levelname)s - %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Engine loggers live under the "snfkpi" namespace so one call to
    set_log_level() reaches all of them. Only the root engine logger owns
    a handler; children propagate to it.
    """
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"

    _ensure_root_handler()

    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    return logger


def set_log_level(level: int) -> None:
    _ensure_root_handler().setLevel(level)


def _ensure_root_handler() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER)
    if root.handlers:
        return root

    root.setLevel(logging.INFO)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)
    return root
