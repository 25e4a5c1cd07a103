"""Participant (party) schemas."""

from __future__ import annotations

from typing import Literal, Optional, Union

from models.base import BaseSchema

ParticipantSide = Literal["ativo", "passivo"]
ParticipantSource = Literal["crawler", "opportunity"]


class PartyRepresentative(BaseSchema):
    """Lawyer or legal representative, keyed by ``(name, document)``."""

    name: Optional[str] = None
    document: Optional[str] = None


class Participant(BaseSchema):
    id: Union[int, str, None] = None
    name: Optional[str] = None
    document: Optional[str] = None
    document_key: Optional[str] = None
    document_type: Optional[str] = None
    side: Optional[ParticipantSide] = None
    type: Optional[str] = None
    person_type: Optional[str] = None
    role: Optional[str] = None
    party_role: Optional[str] = None
    lawyers: Optional[list[PartyRepresentative]] = None
    representatives: Optional[list[PartyRepresentative]] = None
    registered_at: Optional[str] = None
    source: Optional[ParticipantSource] = None
