"""Synchronization quota: may this tenant trigger another external sync?

Usage is the number of sync-request rows plus ad-hoc API query rows recorded
since the start of the current UTC calendar month.  The evaluation is a pure
function of plan limits and usage; reading both and deciding is not atomic,
so two concurrent requests can both be allowed at the quota boundary.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Optional, Union

from pydantic import ValidationError

from models.plan import PlanLimits, SyncQuota, SyncUsage

from processing.normalize import parse_boolean_flag, parse_integer, parse_optional_integer

logger = logging.getLogger(__name__)

# planos column -> PlanLimits field
PLAN_COLUMNS: dict[str, str] = {
    "limite_usuarios": "user_limit",
    "limite_processos": "process_limit",
    "limite_propostas": "proposal_limit",
    "limite_clientes": "client_limit",
    "limite_advogados_processos": "process_lawyer_limit",
    "limite_advogados_intimacao": "monitored_lawyer_limit",
    "sincronizacao_processos_habilitada": "sync_enabled",
    "sincronizacao_processos_cota": "sync_quota",
}


class PlanMisconfiguredError(ValueError):
    """Plan limits that cannot be interpreted (e.g. a non-numeric quota)."""


def current_period_start(now: Optional[datetime] = None) -> datetime:
    """Midnight UTC on the first day of the month containing *now*."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    else:
        now = now.astimezone(timezone.utc)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _non_negative_limit(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    parsed = parse_optional_integer(value)
    if parsed is None:
        return None
    return max(parsed, 0)


def plan_limits_from_row(row: Mapping[str, Any]) -> PlanLimits:
    """Lenient :class:`PlanLimits` from a ``planos`` row.

    Unparseable limits become ``None`` (unlimited) and negative ones ``0``,
    which is how the host application has always read these columns.
    """
    values: dict[str, Any] = {}
    for column, field_name in PLAN_COLUMNS.items():
        raw = row.get(column)
        if field_name == "sync_enabled":
            values[field_name] = parse_boolean_flag(raw)
        else:
            values[field_name] = _non_negative_limit(raw)
    return PlanLimits(**values)


def _coerce_limits(plan_limits: Union[PlanLimits, Mapping[str, Any]]) -> PlanLimits:
    if isinstance(plan_limits, PlanLimits):
        return plan_limits
    if isinstance(plan_limits, Mapping):
        try:
            return PlanLimits.model_validate(dict(plan_limits))
        except ValidationError as exc:
            raise PlanMisconfiguredError(f"invalid plan limits: {exc}") from exc
    raise PlanMisconfiguredError(
        f"plan limits must be a mapping, got {type(plan_limits).__name__}"
    )


def _coerce_usage(current_usage: Any) -> int:
    if isinstance(current_usage, SyncUsage):
        return current_usage.total
    # count columns arrive as int, Decimal or text depending on the driver
    return max(parse_integer(current_usage), 0)


def evaluate_sync_availability(
    plan_limits: Union[PlanLimits, Mapping[str, Any]],
    current_usage: Union[int, SyncUsage],
) -> SyncQuota:
    """Decide whether a new synchronization is permitted.

    Args:
        plan_limits: The tenant's plan limits (or a mapping of their fields).
        current_usage: Syncs + API queries in the current period, as a
            :class:`SyncUsage` or a count (ints, ``Decimal`` and numeric text
            are truncated; negatives and garbage count as 0).

    Returns:
        :class:`SyncQuota`.  ``remaining_quota`` is ``None`` when the plan
        has no quota (unlimited).

    Raises:
        PlanMisconfiguredError: *plan_limits* cannot be interpreted.
    """
    limits = _coerce_limits(plan_limits)
    usage = _coerce_usage(current_usage)

    if limits.sync_enabled is not True:
        return SyncQuota(allowed=False, remaining_quota=None, reason="disabled")

    if limits.sync_quota is None:
        return SyncQuota(allowed=True, remaining_quota=None)

    remaining = max(0, limits.sync_quota - usage)
    if remaining <= 0:
        logger.info("Sync quota exhausted: quota=%d usage=%d", limits.sync_quota, usage)
        return SyncQuota(allowed=False, remaining_quota=0, reason="quota_exceeded")

    return SyncQuota(allowed=True, remaining_quota=remaining)
