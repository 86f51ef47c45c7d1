"""Shared logging configuration for the unified data pipeline.

Call ``configure_logging()`` once at whatever entry point invokes the pipeline.
The function is idempotent: if the root logger already has handlers, it does nothing.
"""

import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE_NAME = "pipeline.log"


def configure_logging(level: int = logging.INFO, log_dir: Optional[str] = None) -> bool:
    """Configure root logger with console + optional file handler.

    Only configures if the root logger has no handlers (idempotent).

    Args:
        level: Root logger level
        log_dir: Directory for pipeline.log; no file handler when None

    Returns:
        True if handlers were installed, False if logging was already configured
    """
    root = logging.getLogger()
    if root.handlers:
        return False

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_dir is not None:
        try:
            os.makedirs(log_dir, exist_ok=True)
            fh = logging.FileHandler(os.path.join(log_dir, LOG_FILE_NAME), mode="a")
            fh.setFormatter(formatter)
            root.addHandler(fh)
        except OSError as e:
            logging.getLogger(__name__).warning(f"File logging disabled for {log_dir}: {e}")

    root.setLevel(level)
    return True
