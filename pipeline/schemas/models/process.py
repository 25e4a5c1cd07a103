"""ProcessAggregate: the canonical, read-time projection of a lawsuit."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional, Union

from models.base import BaseSchema
from models.movement import Attachment, Movement
from models.participant import Participant

# Shape-preserving fields: upstream sends either text or structured JSON and
# both forms are kept as received.
County = Union[str, dict[str, Any], None]
# numeric columns keep their exact Decimal value
Amount = Union[int, float, Decimal, str, None]
MixedItem = Union[str, dict[str, Any], None]
Tags = Union[list[Any], dict[str, Any], str, None]
TriState = Union[bool, str, None]


class ProcessIndicators(BaseSchema):
    """Legal indicators derived from the crawler's trigger-data blob."""

    tribunal_acronym: Optional[str] = None
    tribunal: Optional[str] = None
    tribunal_name: Optional[str] = None
    justice_description: Optional[str] = None
    county: County = None
    amount: Amount = None
    distribution_date: Optional[str] = None
    subjects: Optional[list[MixedItem]] = None
    classifications: Optional[list[MixedItem]] = None
    tags: Tags = None
    precatory: TriState = None
    free_justice: TriState = None
    secrecy_level: Optional[str] = None


class ClientSummary(BaseSchema):
    id: int
    name: Optional[str] = None
    document: Optional[str] = None
    kind: Optional[str] = None


class OpportunitySummary(BaseSchema):
    id: int
    company_sequence: Optional[int] = None
    created_at: Optional[str] = None
    case_number: Optional[str] = None
    protocol_number: Optional[str] = None
    requester_id: Optional[int] = None
    requester_name: Optional[str] = None


class ResponsibleLawyer(BaseSchema):
    id: int
    name: Optional[str] = None
    oab: Optional[str] = None


class ProcessAggregate(BaseSchema):
    id: Any = None
    client_id: Optional[int] = None
    company_id: Optional[int] = None
    number: Optional[str] = None
    degree: str = ""
    uf: Optional[str] = None
    municipality: Optional[str] = None
    court: Optional[str] = None
    kind: Optional[str] = None
    status: Optional[str] = None
    judicial_class: Optional[str] = None
    subject: Optional[str] = None
    jurisdiction: Optional[str] = None
    responsible_lawyer: Optional[str] = None
    distribution_date: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    last_movement_at: Optional[str] = None
    last_sync_at: Optional[str] = None
    situation_id: Optional[int] = None
    situation_name: Optional[str] = None
    process_kind_id: Optional[int] = None
    process_kind_name: Optional[str] = None
    practice_area_id: Optional[int] = None
    practice_area_name: Optional[str] = None
    instance: Optional[str] = None
    cnj_system_id: Optional[int] = None
    monitored: bool = False
    free_justice: Optional[bool] = None
    injunction: Optional[bool] = None
    secrecy_level: Optional[int] = None
    current_procedure: Optional[str] = None
    may_petition: bool = True
    parties_id: Optional[int] = None
    description: Optional[str] = None
    sector_id: Optional[int] = None
    sector_name: Optional[str] = None
    summons_date: Optional[str] = None
    receipt_date: Optional[str] = None
    archive_date: Optional[str] = None
    closing_date: Optional[str] = None

    client: Optional[ClientSummary] = None
    opportunity: Optional[OpportunitySummary] = None
    lawyers: list[ResponsibleLawyer] = []
    indicators: ProcessIndicators = ProcessIndicators()
    movements: list[Movement] = []
    attachments: list[Attachment] = []
    participants: list[Participant] = []
    movement_count: int = 0
    api_query_count: int = 0
