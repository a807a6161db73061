"""Utility functions for gitbridge."""

from .logging import (
    LogCapture,
    RedactingFilter,
    disable_logging,
    redact,
    setup_logging,
)

__all__ = [
    "LogCapture",
    "RedactingFilter",
    "disable_logging",
    "redact",
    "setup_logging",
]
