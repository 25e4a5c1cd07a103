"""Validators: data quality gate and synchronization quota checks."""

from processing.validators.data_quality import (
    DataQualityValidator,
    RejectedRecord,
    ValidationResult,
    ValidationStats,
)
from processing.validators.sync_quota import (
    PlanMisconfiguredError,
    current_period_start,
    evaluate_sync_availability,
    plan_limits_from_row,
)

__all__ = [
    "DataQualityValidator",
    "PlanMisconfiguredError",
    "RejectedRecord",
    "ValidationResult",
    "ValidationStats",
    "current_period_start",
    "evaluate_sync_availability",
    "plan_limits_from_row",
]
