import logging
import sys
from logging.handlers import RotatingFileHandler

import bli_settings as S

FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logger(name=None, level=None, log_file=None):
    """
    Setup a logger with a console handler and, when a log file is configured,
    a rotating file handler (5MB, 3 backups).
    Defaults come from BLI_LOG_LEVEL / BLI_LOG_FILE.
    """
    level = level or S.LOG_LEVEL
    log_file = log_file or S.LOG_FILE
    formatter = logging.Formatter(FORMAT, datefmt=DATE_FORMAT)

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid adding handlers multiple times
    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        if log_file:
            try:
                file_handler = RotatingFileHandler(
                    log_file,
                    maxBytes=5 * 1024 * 1024,
                    backupCount=3,
                    encoding='utf-8',
                    delay=True,
                )
            except OSError as e:
                logger.warning("File logging disabled (%s): %s", log_file, e)
            else:
                file_handler.setFormatter(formatter)
                logger.addHandler(file_handler)

    return logger
