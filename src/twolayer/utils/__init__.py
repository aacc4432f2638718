"""Utility functions for twolayer."""

from twolayer.utils.logging import (
    setup_logging,
    start_step,
    end_step,
    log_error,
    log_calculation_issue,
    get_timing_logger,
    TimingLogger,
)
from twolayer.utils.config import load_config, save_config, DEFAULT_CONFIG

__all__ = [
    "setup_logging",
    "start_step",
    "end_step",
    "log_error",
    "log_calculation_issue",
    "get_timing_logger",
    "TimingLogger",
    "load_config",
    "save_config",
    "DEFAULT_CONFIG",
]
