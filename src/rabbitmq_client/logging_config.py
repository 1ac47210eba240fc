"""
Logging setup for programs built on the RabbitMQ client.

The library itself only logs through module loggers; applications call
``setup_logging`` once at startup to get consistent console output.
"""

import logging
import sys
from typing import Optional

from rabbitmq_client.config import SERVICE_NAME


def setup_logging(
    level: int = logging.INFO,
    component_name: Optional[str] = None,
    force_setup: bool = False,
) -> None:
    """
    Setup console logging for the client and its caller.

    Args:
        level: Logging level (default: INFO)
        component_name: Name of the calling program, shown in every line
        force_setup: Whether to force reconfiguration even if already setup
    """
    # Check if logging has already been configured
    root_logger = logging.getLogger()
    if root_logger.handlers and not force_setup:
        root_logger.setLevel(level)
        return

    if force_setup:
        root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(create_formatter(component_name))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # amqpstorm logs every frame-level hiccup at INFO and below
    logging.getLogger("amqpstorm").setLevel(logging.WARNING)
    logging.getLogger(SERVICE_NAME).setLevel(level)


def create_formatter(component_name: Optional[str] = None) -> logging.Formatter:
    """
    Create the standard formatter.

    Args:
        component_name: Name of the calling program for log identification

    Returns:
        Configured logging formatter
    """
    if component_name:
        prefix = f"[{component_name}] "
    else:
        prefix = ""

    return logging.Formatter(
        f"%(asctime)s - {prefix}%(name)s - %(levelname)s - %(message)s"
    )
