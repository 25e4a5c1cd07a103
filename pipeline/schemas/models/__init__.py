"""jurisflow schemas: Pydantic models for the process aggregate and plan quotas."""

from models.base import BaseSchema
from models.movement import Attachment, Movement
from models.participant import Participant, PartyRepresentative
from models.plan import PlanLimits, SyncQuota, SyncUsage
from models.process import (
    ClientSummary,
    OpportunitySummary,
    ProcessAggregate,
    ProcessIndicators,
    ResponsibleLawyer,
)

__all__ = [
    "BaseSchema",
    "Attachment",
    "Movement",
    "Participant",
    "PartyRepresentative",
    "PlanLimits",
    "SyncQuota",
    "SyncUsage",
    "ClientSummary",
    "OpportunitySummary",
    "ProcessAggregate",
    "ProcessIndicators",
    "ResponsibleLawyer",
]
