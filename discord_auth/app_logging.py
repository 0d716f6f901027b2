
import logging

from pythonjsonlogger import jsonlogger

PLAIN_FORMAT = '(%(levelname)s): (%(asctime)s) %(name)s %(message)s'


def setup_logger(level: str = 'INFO', json_logs: bool = True) -> None:
    logHandler = logging.StreamHandler()
    if json_logs:
        formatter = jsonlogger.JsonFormatter(
            '%(asctime)s %(levelname)s %(name)s %(message)s',
            rename_fields={'levelname': 'level', 'asctime': 'timestamp'})
    else:
        formatter = logging.Formatter(PLAIN_FORMAT)
    logHandler.setFormatter(formatter)
    logger = logging.getLogger()
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.addHandler(logHandler)
    logger.setLevel(level.upper())
