"""Timing instrumentation and log setup."""

from __future__ import annotations

from schema_engine.telemetry.log_setup import JSONFormatter, configure_logging
from schema_engine.telemetry.profiling import ProfileCollector, ProfileResult, profile_operation

__all__ = [
    "JSONFormatter",
    "ProfileCollector",
    "ProfileResult",
    "configure_logging",
    "profile_operation",
]
