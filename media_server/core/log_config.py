# File: media_server/core/log_config.py

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Installs the process-wide log format. Safe to call more than once."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, force=True)

    # uvicorn's own access log duplicates our request middleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
