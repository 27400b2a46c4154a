import logging
import sys

LOGGER_NAME = "ntgd-monitor"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Chatty per-connection loggers pulled in by requests
QUIET_LOGGERS = ("urllib3", "charset_normalizer")


def resolve_level(level: str) -> int:
    value = logging.getLevelName(str(level or "").strip().upper())
    return value if isinstance(value, int) else logging.INFO


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure the monitor logger from ``Settings.log_level``; unknown names mean INFO."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(resolve_level(level))

    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, logger.level))
    return logger
