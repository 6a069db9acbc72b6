import logging

LOG_FORMAT = "%(asctime)s.%(msecs)03d [%(name)s] %(levelname)s %(message)s"
DATE_FORMAT = "%H:%M:%S"


def configure_logging(level="INFO") -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=DATE_FORMAT)
    # urllib3 is chatty about every pooled connection at DEBUG.
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))
