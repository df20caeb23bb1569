
import logging
from logging import Logger

DEFAULT_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
DEFAULT_DATEFMT = "%H:%M:%S"
ROOT_LOGGER = "contract_engine"


def setup_logging(level: int = logging.INFO) -> Logger:
    logging.basicConfig(level=level, format=DEFAULT_FORMAT, datefmt=DEFAULT_DATEFMT)
    for package in ("core", "rules", "session"):
        logging.getLogger(package).setLevel(level)
    logger = logging.getLogger(ROOT_LOGGER)
    logger.debug("Logging initialized.")
    return logger
