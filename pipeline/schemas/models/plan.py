"""Subscription plan limits and synchronization quota schemas."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import Field

from models.base import BaseSchema

QuotaReason = Literal["disabled", "quota_exceeded"]


class PlanLimits(BaseSchema):
    """Per-tenant plan limits. ``None`` means unlimited (or unset)."""

    user_limit: Optional[int] = Field(default=None, ge=0)
    process_limit: Optional[int] = Field(default=None, ge=0)
    proposal_limit: Optional[int] = Field(default=None, ge=0)
    client_limit: Optional[int] = Field(default=None, ge=0)
    process_lawyer_limit: Optional[int] = Field(default=None, ge=0)
    monitored_lawyer_limit: Optional[int] = Field(default=None, ge=0)
    sync_enabled: Optional[bool] = None
    sync_quota: Optional[int] = Field(default=None, ge=0)


class SyncUsage(BaseSchema):
    """Synchronization usage for the current billing period."""

    sync_requests: int = Field(default=0, ge=0)
    api_queries: int = Field(default=0, ge=0)

    @property
    def total(self) -> int:
        return self.sync_requests + self.api_queries


class SyncQuota(BaseSchema):
    allowed: bool
    remaining_quota: Optional[int] = None
    reason: Optional[QuotaReason] = None
