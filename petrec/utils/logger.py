"""
Logging configuration for petrec.

All modules log through children of the "petrec" logger, which writes to
stdout at the level given by LOG_LEVEL.
"""
import logging
import os
import sys

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logger = logging.getLogger("petrec")
logger.setLevel(LOG_LEVEL)

if not logger.handlers:
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(LOG_LEVEL)

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    console_handler.setFormatter(formatter)

    logger.addHandler(console_handler)

# Keep records out of the root logger so uvicorn does not print them twice
logger.propagate = False


def get_logger(name: str = None) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Optional dotted suffix (e.g. "core.orchestrator")

    Returns:
        Logger named "petrec.<name>", or the package logger when name is empty
    """
    if name:
        return logging.getLogger(f"petrec.{name}")
    return logger
