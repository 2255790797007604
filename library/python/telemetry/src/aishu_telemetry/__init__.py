"""AI-Shu テレメトリーライブラリ"""

from .exceptions import TelemetryError, TelemetryErrorCodes
from .logger import configure_logging, new_logger
from .metrics import (
    csrf_validations_total,
    featureflag_analytics_dropped_total,
    featureflag_evaluations_total,
)

__all__ = [
    "configure_logging",
    "new_logger",
    "csrf_validations_total",
    "featureflag_evaluations_total",
    "featureflag_analytics_dropped_total",
    "TelemetryError",
    "TelemetryErrorCodes",
]
