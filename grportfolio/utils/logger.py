import logging
import os
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# ======================================================================================
#  Portfolio Logger
# ======================================================================================


def _resolve_level(level: int | str | None) -> int:
    """Turn an int, a level name, or the GRPORTFOLIO_LOG_LEVEL env var into a level."""
    if level is None:
        level = os.getenv("GRPORTFOLIO_LOG_LEVEL", "INFO")
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def get_logger(name: str, level: int | str | None = None) -> logging.Logger:
    """Return a logger that writes to stdout with the portfolio format.

    Args:
        name (str): The name of the logger, usually ``__name__``.
        level (int | str, optional): Level number or name. Falls back to the
            ``GRPORTFOLIO_LOG_LEVEL`` environment variable, then INFO.

    Returns:
        logging.Logger: The configured logger instance.
    """
    logger = logging.getLogger(name)
    logger.setLevel(_resolve_level(level))

    formatter = logging.Formatter(LOG_FORMAT)

    # Only a stdout handler counts as ours; stderr handlers added elsewhere are left alone
    handler = None
    for existing_handler in logger.handlers:
        if isinstance(existing_handler, logging.StreamHandler) and getattr(existing_handler, "stream", None) is sys.stdout:
            handler = existing_handler
            break

    if handler is None:
        handler = logging.StreamHandler(sys.stdout)
        logger.addHandler(handler)

    handler.setFormatter(formatter)

    return logger


def apply_log_level(level: int | str | None, prefix: str = "grportfolio") -> int:
    """Set ``level`` on every logger already created under ``prefix``."""
    resolved = _resolve_level(level)
    for name in list(logging.root.manager.loggerDict):
        if name == prefix or name.startswith(prefix + "."):
            logging.getLogger(name).setLevel(resolved)
    return resolved
