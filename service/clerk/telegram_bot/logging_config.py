"""
Logging configuration for the clerk bot.
"""

import logging
import sys

LOGGER_NAME = "clerk_bot"

# httpx logs every request URL at INFO, and Telegram URLs carry the bot token
NOISY_LOGGERS = ("httpx", "httpcore")


def setup_logging(level: int = logging.DEBUG) -> logging.Logger:
    """Configure the clerk_bot logger: stdout, one line per record, no propagation."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(
        '[%(asctime)s] [%(name)s] [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    logger.addHandler(handler)
    logger.propagate = False

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


bot_logger = setup_logging()
