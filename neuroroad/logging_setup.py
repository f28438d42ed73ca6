"""
logging_setup.py
================
Configures the root logger with a console handler and a rotating file
handler (``neuroroad.log``, 1 MB, 2 backups).

Call :func:`setup_logging` once at startup, before the simulation is built.
"""

import logging
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(level=logging.INFO, log_file="neuroroad.log"):
    """Apply a unified log format to both console and file output.

    Parameters
    ----------
    level : int
        Minimum severity level (e.g. ``logging.DEBUG``, ``logging.INFO``).
    log_file : str or None
        Path of the rotating log file. ``None`` logs to the console only.
    """
    root = logging.getLogger()
    root.setLevel(level)

    fmt = logging.Formatter(LOG_FORMAT)

    ch = logging.StreamHandler()
    ch.setFormatter(fmt)

    root.handlers.clear()
    root.addHandler(ch)

    if log_file:
        fh = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=2)
        fh.setFormatter(fmt)
        root.addHandler(fh)
