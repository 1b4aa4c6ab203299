import logging
import os
from logging.handlers import RotatingFileHandler
from config.config import Config

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logger(name='meetflow'):
    """Set up application logger with file and console handlers"""
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO))

    # Handlers are attached once even if the factory runs repeatedly (tests)
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    # File handler with rotation; an empty LOG_FILE logs to the console only
    if Config.LOG_FILE:
        log_dir = os.path.dirname(Config.LOG_FILE)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

        file_handler = RotatingFileHandler(
            Config.LOG_FILE,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=10
        )
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger


def get_logger(name=None):
    """Get logger instance

    Module loggers live under the ``meetflow`` namespace so they share the
    handlers configured by ``setup_logger``.
    """
    if not name:
        return logging.getLogger('meetflow')
    if name == 'meetflow' or name.startswith('meetflow.'):
        return logging.getLogger(name)
    return logging.getLogger(f'meetflow.{name}')


# Create default logger
logger = setup_logger()
