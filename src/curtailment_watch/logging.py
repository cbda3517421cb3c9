from __future__ import annotations

import logging


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# httpx logs every request line at INFO, which would echo the webhook URL.
QUIET_LOGGERS = ("httpx", "httpcore")


def configure_logging(level: str = "INFO") -> None:
    resolved = level.upper()
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    if resolved != "DEBUG":
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
