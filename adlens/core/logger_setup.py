"""
Logging setup
"""
import logging

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s - %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging once at startup"""
    logging.basicConfig(
        level=level.upper(),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger().setLevel(level.upper())

    # httpx logs every request URL at INFO, and Graph URLs carry access tokens
    logging.getLogger("httpx").setLevel(logging.WARNING)
