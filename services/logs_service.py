import logging

from config import LOG_LEVEL

# Config logging
logger = logging.getLogger("event_booking_api")
logger.setLevel(LOG_LEVEL.upper())

if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(name)s - %(message)s")

    handler.setFormatter(formatter)
    logger.addHandler(handler)
