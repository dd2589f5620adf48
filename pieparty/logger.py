import logging
from datetime import datetime
from pathlib import Path

from pieparty import config

ROOT_NAME = "pieparty"

_LOGGERS = {}
_root_configured = False


def _configure_root() -> logging.Logger:
    """
    Attach the console handler, and the per-run file handler when
    PIEPARTY_LOG_DIR is set, to the ``pieparty`` parent logger. Runs once.
    """
    global _root_configured

    root = logging.getLogger(ROOT_NAME)
    if _root_configured:
        return root

    root.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))
    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    )

    # ------------------------------
    # Console handler
    # ------------------------------
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    # ------------------------------
    # File handler (one per run)
    # ------------------------------
    if config.LOG_DIR:
        log_dir = Path(config.LOG_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        file_handler = logging.FileHandler(log_dir / f"pieparty-{timestamp}.log", encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    root.propagate = False
    _root_configured = True
    return root


def get_logger(name: str) -> logging.Logger:
    """
    Create or retrieve a named logger under the ``pieparty`` namespace.

    Child loggers carry no handlers of their own; records propagate to the
    shared handlers on the parent.
    """
    if name in _LOGGERS:
        return _LOGGERS[name]

    _configure_root()
    logger = logging.getLogger(f"{ROOT_NAME}.{name}")
    logger.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))
    logger.propagate = True
    _LOGGERS[name] = logger

    return logger
