"""Logging setup for applications embedding the client."""

import logging
import os
from typing import Optional, Union

from rich.logging import RichHandler

LOG_LEVEL_ENV = "OCI_LOG_LEVEL"


def setup_logging(level: Optional[Union[int, str]] = None) -> logging.Logger:
    """
    Send the client's log records to a rich console handler.

    Args:
        level: Log level; defaults to ``$OCI_LOG_LEVEL`` or INFO

    Returns:
        logging.Logger: The package logger
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "INFO")
    if isinstance(level, str):
        level = level.upper()

    package_logger = logging.getLogger("oci_ccm_client")
    package_logger.setLevel(level)
    if not any(isinstance(h, RichHandler) for h in package_logger.handlers):
        handler = RichHandler(rich_tracebacks=True)
        handler.setFormatter(logging.Formatter("%(message)s"))
        package_logger.addHandler(handler)
    return package_logger
