"""
logging_config.py — Logging Setup for the P2P Order Service

All modules log through the standard logging tree; this module wires it up once,
when the FastAPI app is imported. Per-order messages carry an "[Order: <id>]" prefix,
so a single order can be followed through list queries, detail batches and payments
with a plain grep on the log file.

Settings (environment):
    ORDER_DASHBOARD_LOG_FILE   log file path (default: order_dashboard.log)
    ORDER_DASHBOARD_LOG_LEVEL  root level name (default: INFO)
"""

import logging
import os
import sys

LOG_FILE = os.environ.get("ORDER_DASHBOARD_LOG_FILE", "order_dashboard.log")
LOG_LEVEL = os.environ.get("ORDER_DASHBOARD_LOG_LEVEL", "INFO").upper()


def setup_logging():
    """
    Sends all log records to the log file and to stdout.

    httpx and httpcore log every single request at INFO; a detail batch over one
    order page would flood the log, so both are limited to WARNING. Failed detail
    requests are still visible through this service's own error messages.
    """
    log_format = '%(asctime)s - %(levelname)s - [PID:%(process)d] - %(message)s'
    level = getattr(logging, LOG_LEVEL, None)
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format=log_format,
        handlers=[
            logging.FileHandler(LOG_FILE),
            # stdout, damit Container-Logs alles enthalten
            logging.StreamHandler(sys.stdout)
        ]
    )

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name):
    """Logger for a module of this service (pass __name__)."""
    return logging.getLogger(name)
