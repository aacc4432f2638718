"""
Logging utilities for twolayer with step timing and error tracking.
"""

import logging
import sys
import time
import traceback
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any, List

PACKAGE_LOGGER = "twolayer"

# Global timing logger instance
_timing_logger: Optional["TimingLogger"] = None


class TimingLogger:
    """Tracks wall-clock durations of named execution steps."""

    def __init__(self):
        self.steps: List[Dict[str, Any]] = []
        self._open: List[Dict[str, Any]] = []
        self.start_time: float = time.perf_counter()

    @property
    def current_step(self) -> Optional[Dict[str, Any]]:
        return self._open[-1] if self._open else None

    def start_step(self, name: str) -> None:
        """Open a step; steps may nest."""
        self._open.append({
            "name": name,
            "depth": len(self._open),
            "start": time.perf_counter(),
            "duration": None,
            "success": None,
        })

    def end_step(self, success: bool = True) -> float:
        """Close the innermost open step and return its duration."""
        if not self._open:
            return 0.0

        step = self._open.pop()
        step["duration"] = time.perf_counter() - step["start"]
        step["success"] = success
        self.steps.append(step)
        return step["duration"]

    def get_summary(self) -> str:
        """Formatted timing table, one line per finished step."""
        total = time.perf_counter() - self.start_time

        lines = [
            "",
            "═" * 60,
            "  TIMING SUMMARY",
            "─" * 60,
        ]

        for step in sorted(self.steps, key=lambda s: s["start"]):
            status = "✓" if step["success"] else "✗"
            indent = "  " * step["depth"]
            lines.append(f"  {indent}{status} {step['name']}: {step['duration']:.3f}s")

        lines.extend([
            "─" * 60,
            f"  Total: {total:.3f}s",
            "═" * 60,
        ])

        return "\n".join(lines)


def get_timing_logger() -> Optional[TimingLogger]:
    """Get global timing logger instance."""
    return _timing_logger


def setup_logging(
    level: str = "INFO",
    log_dir: Optional[str] = None,
    experiment_name: Optional[str] = None,
    format_style: str = "detailed",
    always_save: bool = True,
    include_timestamp: bool = False,
) -> logging.Logger:
    """
    Configure the package logger.

    Parameters
    ----------
    level : str
        Log level (DEBUG, INFO, WARNING, ERROR).
    log_dir : str, optional
        Directory for log files. No file is written when omitted.
    experiment_name : str, optional
        Base name of the log file.
    format_style : str
        'detailed', 'simple' or 'minimal'.
    always_save : bool
        Write the log file even for successful runs.
    include_timestamp : bool
        Append a timestamp to the log filename.

    Returns
    -------
    logging.Logger
        The configured ``twolayer`` logger.
    """
    global _timing_logger
    _timing_logger = TimingLogger()

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if format_style == "detailed":
        fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        datefmt = "%Y-%m-%d %H:%M:%S"
    elif format_style == "simple":
        fmt = "%(levelname)s: %(message)s"
        datefmt = None
    else:  # minimal
        fmt = "%(message)s"
        datefmt = None

    formatter = logging.Formatter(fmt, datefmt=datefmt)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir and always_save:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        stem = experiment_name or PACKAGE_LOGGER
        if include_timestamp:
            stem = f"{stem}_{datetime.now().strftime('%Y%m%d_%H%M%S')}"

        file_handler = logging.FileHandler(log_path / f"{stem}.log", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def start_step(name: str) -> None:
    """Log and time the start of a step."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.info(f"Starting: {name}")

    if _timing_logger:
        _timing_logger.start_step(name)


def end_step(success: bool = True) -> float:
    """Log and time the end of the innermost step."""
    logger = logging.getLogger(PACKAGE_LOGGER)

    duration = 0.0
    if _timing_logger:
        duration = _timing_logger.end_step(success)

    status = "completed" if success else "FAILED"
    logger.info(f"Step {status} in {duration:.3f}s")

    return duration


def log_error(error: Exception, context: str = "") -> None:
    """Log an error, with the traceback at DEBUG level."""
    logger = logging.getLogger(PACKAGE_LOGGER)

    logger.error(f"ERROR in {context}: {type(error).__name__}: {error}")
    logger.debug(traceback.format_exc())


def log_calculation_issue(
    issue_type: str,
    description: str,
    details: Dict[str, Any],
) -> None:
    """Report a numerical issue (NaN, Inf, runaway temperatures...)."""
    logger = logging.getLogger(PACKAGE_LOGGER)

    logger.warning(f"Calculation issue [{issue_type}]: {description}")
    if details:
        logger.debug(f"  Details: {details}")
