"""
Logging setup, frame-loop performance lines and timing helpers.

Records carry a `component` field: the logger name relative to the
bodytrack package, e.g. `core.pipeline`. Timestamps carry milliseconds.
"""

import os
import logging
import logging.handlers
import time
from functools import wraps

PACKAGE_PREFIX = "bodytrack."
PERF_LOGGER_NAME = "bodytrack.perf"

CONSOLE_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)-5s %(component)-16s %(message)s"
FILE_FORMAT = "%(asctime)s.%(msecs)03d [%(levelname)-7s] %(component)-28s | %(message)s"
CONSOLE_DATE_FORMAT = "%H:%M:%S"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ComponentFilter(logging.Filter):
    """Sets `record.component` to the logger name without the package prefix."""

    def filter(self, record):
        name = record.name
        if name.startswith(PACKAGE_PREFIX):
            name = name[len(PACKAGE_PREFIX):]
        record.component = name
        return True


def _level(value, default=logging.INFO):
    if isinstance(value, int):
        return value
    return getattr(logging, str(value).upper(), default)


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3,
                  component_levels=None):
    """Configure console (and optional rotating file) logging for the application.

    Args:
        level: root level
        log_file: rotating file path, or None for console only
        max_size_mb: rotation size of the file log
        backup_count: rotated files to keep
        component_levels: logger name -> level, e.g.
            {"bodytrack.detection": "WARNING", "bodytrack.perf": "DEBUG"}
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(_level(level))
    root_logger.handlers.clear()

    component = ComponentFilter()

    console = logging.StreamHandler()
    console.setLevel(logging.INFO)
    console.addFilter(component)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=CONSOLE_DATE_FORMAT))
    root_logger.addHandler(console)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.addFilter(component)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATE_FORMAT))
        root_logger.addHandler(file_handler)

    for name, component_level in (component_levels or {}).items():
        logging.getLogger(name).setLevel(_level(component_level))

    return root_logger


def format_stage_report(report: dict) -> str:
    """One-line summary of a PerformanceMonitor report.

    >>> format_stage_report({"fps": 29.8, "total_frames": 300, "skipped_frames": 2,
    ...                      "latencies_ms": {"pose": 8.1, "total": 14.0}})
    'fps 29.8 | frames 300 (2 skipped) | pose 8.10ms total 14.00ms'
    """
    line = "fps %.1f | frames %d (%d skipped)" % (
        report.get("fps", 0.0), report.get("total_frames", 0), report.get("skipped_frames", 0))
    stages = " ".join(f"{name} {ms:.2f}ms" for name, ms in report.get("latencies_ms", {}).items())
    if stages:
        line += " | " + stages
    return line


class StageReportLogger:
    """Writes the stage report to the perf logger at most every `interval_sec`.

    An interval of 0 or less disables it.
    """

    def __init__(self, monitor, interval_sec: float = 5.0, clock=time.perf_counter):
        self._monitor = monitor
        self._interval_sec = interval_sec
        self._clock = clock
        self._last = clock()
        self._logger = logging.getLogger(PERF_LOGGER_NAME)

    def maybe_log(self) -> bool:
        """Log a report line if the interval has passed. Returns True when it did."""
        if self._interval_sec <= 0:
            return False
        now = self._clock()
        if now - self._last < self._interval_sec:
            return False
        self._last = now
        self._logger.info("%s", format_stage_report(self._monitor.get_report()))
        return True


def log_timing(func):
    """Decorator to log function execution time at DEBUG."""
    logger = logging.getLogger(func.__module__)

    @wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = (time.perf_counter() - start) * 1000
        logger.debug("%s took %.2fms", func.__name__, elapsed)
        return result

    return wrapper
