"""Centralized logging setup for the WFQ replay runner and tests.

Standard output carries the schedule itself, so every handler installed here writes to
standard error or to a log file.
"""
import datetime
import logging
import os
import sys
from typing import Optional

DEFAULT_DATEFMT = "%H:%M:%S"
DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(filename)s:%(lineno)d%(lineno_pad)s%(message)s"
PREFIX_WIDTH = 24

NOISY_LOGGERS = ('matplotlib', 'matplotlib.font_manager', 'PIL')


class AlignedPrefixFormatter(logging.Formatter):
    """Formatter that keeps log message bodies aligned by padding *after* the line number.

    Layout:
        time [LEVEL] filename.py:123<spaces> message
    """

    def __init__(self, prefix_width: int = PREFIX_WIDTH, fmt: str = DEFAULT_FORMAT,
                 datefmt: str = DEFAULT_DATEFMT):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._prefix_width = prefix_width

    def format(self, record: logging.LogRecord) -> str:
        file_line = f"{record.filename}:{record.lineno}"
        pad_len = max(1, self._prefix_width - len(file_line))
        record.lineno_pad = " " * pad_len
        return super().format(record)


def _quiet_third_party() -> None:
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def set_logger(console_level: int = logging.INFO, stream=None) -> None:
    """Install a single console handler on the root logger (stderr by default).

    Existing handlers are removed so repeated calls do not duplicate output.
    """
    logger = logging.getLogger()
    # root at DEBUG so handlers themselves decide what to record
    logger.setLevel(logging.DEBUG)
    for h in logger.handlers[:]:
        logger.removeHandler(h)

    console_handler = logging.StreamHandler(stream=stream if stream is not None else sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(AlignedPrefixFormatter())
    logger.addHandler(console_handler)
    _quiet_third_party()


def add_run_log_file(log_dir: str, tag: str = "wfq") -> str:
    """Add a per-run DEBUG file handler under `log_dir` and return the logfile path."""
    os.makedirs(log_dir, exist_ok=True)
    timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    safe_tag = "".join(c if c.isalnum() or c in '._-' else '_' for c in tag)
    logfile = os.path.join(log_dir, f"{safe_tag}_{timestamp}.log")

    file_handler = logging.FileHandler(logfile, mode='a', encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(AlignedPrefixFormatter())
    logging.getLogger().addHandler(file_handler)
    return os.path.abspath(logfile)


def remove_file_handlers(logfile: Optional[str] = None) -> None:
    """Close and detach file handlers (all of them, or only the one writing `logfile`)."""
    root = logging.getLogger()
    for h in root.handlers[:]:
        if not isinstance(h, logging.FileHandler):
            continue
        if logfile is None or os.path.abspath(h.baseFilename) == os.path.abspath(logfile):
            root.removeHandler(h)
            h.close()
