"""
Logging Configuration
Sets up the logger for the 'antipodal' namespace.

The terminal belongs to the Textual UI, so records never go to stdout.
They are routed to Textual's devtools console (run ``textual console`` in
another terminal) and, optionally, to a file.
"""
import logging
from typing import Optional, Union

from textual.logging import TextualHandler


FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Union[int, str] = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the 'antipodal' logger.

    Args:
        level: Logging level, as a number or a name such as "DEBUG".
        log_file: Optional path to also write logs to.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger("antipodal")
    logger.setLevel(level)
    logger.propagate = False

    # Avoid duplicate records when the app is restarted in-process
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(FORMAT, datefmt="%H:%M:%S")

    console_handler = TextualHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug("Logging initialized.")
    return logger
