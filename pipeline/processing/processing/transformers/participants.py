"""Participant builders and merger.

Parties of a lawsuit reach us from two independent sources that disagree on
structure and completeness:

- the crawler's ``trigger_envolvidos_processo`` table, with a free-text
  ``polo`` (side) and the party's main document;
- the CRM's ``oportunidade_envolvidos`` table ("envolvidos" of an
  opportunity), with an explicit ``side``/``relacao``/``party_role``.

Both are built into :class:`Participant` candidates and folded into one
de-duplicated list keyed by the document key (see :func:`documents.document_key`).
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any, Iterable, Optional

from documents import document_key, document_type_for, strip_diacritics
from models.participant import Participant, PartyRepresentative

from processing.normalize import (
    normalize_string,
    normalize_timestamp,
    normalize_uppercase,
    parse_json_column,
)
from processing.transformers.base import BaseRowParser, iter_rows

logger = logging.getLogger(__name__)

_ACTIVE_SIDE_TOKENS = (
    "ativo",
    "ativa",
    "autor",
    "autora",
    "reclamante",
    "exequente",
    "agravante",
    "apelante",
    "impetrante",
    "embargante",
    "requerente",
    "demandante",
    "parte ativa",
    "polo ativo",
)
_PASSIVE_SIDE_TOKENS = (
    "passivo",
    "passiva",
    "reu",
    "reus",
    "re",
    "reclamado",
    "executado",
    "agravado",
    "apelado",
    "impetrado",
    "embargado",
    "requerido",
    "demandado",
    "parte passiva",
    "polo passivo",
)

_NON_LETTER_RE = re.compile(r"[^a-z\s]")
_WHITESPACE_RE = re.compile(r"\s+")

# Scalar fields merged first-non-null-wins, in declaration order.
_MERGE_FIELDS = (
    "name",
    "document",
    "document_type",
    "side",
    "type",
    "person_type",
    "role",
    "party_role",
    "registered_at",
    "source",
)


def normalize_participant_side(value: Any) -> Optional[str]:
    """Classify a free-text side label as ``"ativo"``, ``"passivo"`` or ``None``.

    Diacritics and punctuation are removed and the label is matched word by
    word, so ``"Polo Ativo"``, ``"AUTOR"`` and ``"Réu"`` classify while
    ``"Terceiro interessado"`` does not.
    """
    normalized = normalize_string(value)
    if not normalized:
        return None

    sanitized = _NON_LETTER_RE.sub(" ", strip_diacritics(normalized).lower())
    sanitized = _WHITESPACE_RE.sub(" ", sanitized).strip()
    if not sanitized:
        return None

    padded = f" {sanitized} "
    if any(f" {token} " in padded for token in _ACTIVE_SIDE_TOKENS):
        return "ativo"
    if any(f" {token} " in padded for token in _PASSIVE_SIDE_TOKENS):
        return "passivo"
    return None


def parse_representatives(value: Any) -> Optional[list[PartyRepresentative]]:
    """Lawyers/representatives from a list or JSON column; ``None`` if absent."""
    if value is None:
        return None

    parsed = parse_json_column(value)
    representatives: list[PartyRepresentative] = []
    for item in iter_rows(parsed if isinstance(parsed, (list, Mapping)) else None):
        name = normalize_string(item.get("nome", item.get("name")))
        document = normalize_string(
            item.get("documento", item.get("document", item.get("oab")))
        )
        if name or document:
            representatives.append(PartyRepresentative(name=name, document=document))
    return representatives or None


def _new_participant(document: Optional[str], **fields: Any) -> Participant:
    return Participant(
        document=document,
        document_key=document_key(document),
        **fields,
    )


class CrawlerParticipantBuilder(BaseRowParser[Participant]):
    """Rows of the crawler's parties table."""

    source_name: str = "crawler"

    def build(self, row: Mapping[str, Any]) -> Optional[Participant]:
        name = normalize_string(row.get("nome"))
        document = normalize_string(row.get("documento_principal"))
        if not name and not document:
            return None

        return _new_participant(
            document,
            name=name,
            document_type=(
                normalize_uppercase(row.get("tipo_documento_principal"))
                or document_type_for(document)
            ),
            side=normalize_participant_side(row.get("polo")),
            type=normalize_string(row.get("polo")),
            person_type=normalize_uppercase(row.get("tipo_pessoa")),
            role=normalize_string(row.get("tipo_parte")),
            lawyers=parse_representatives(row.get("advogados")),
            representatives=parse_representatives(row.get("representantes")),
            registered_at=normalize_timestamp(row.get("data_cadastro")),
            source="crawler",
        )


class OpportunityParticipantBuilder(BaseRowParser[Participant]):
    """Rows of the CRM's opportunity "envolvidos" table."""

    source_name: str = "opportunity"

    def build(self, row: Mapping[str, Any]) -> Optional[Participant]:
        name = normalize_string(row.get("nome"))
        document = normalize_string(row.get("documento"))
        if not name and not document:
            return None

        side_label = row.get("side")
        if side_label is None:
            side_label = row.get("polo")

        return _new_participant(
            document,
            id=self._parse_id(row.get("id")),
            name=name,
            document_type=document_type_for(document),
            side=(
                normalize_participant_side(row.get("side"))
                or normalize_participant_side(row.get("polo"))
                or normalize_participant_side(row.get("relacao"))
            ),
            type=normalize_string(side_label),
            person_type=normalize_uppercase(row.get("tipo_pessoa")),
            role=normalize_string(row.get("relacao")),
            party_role=normalize_string(row.get("party_role")),
            lawyers=parse_representatives(row.get("advogados")),
            representatives=parse_representatives(row.get("representantes")),
            source="opportunity",
        )

    @staticmethod
    def _parse_id(value: Any) -> int | str | None:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        text = normalize_string(value) if isinstance(value, str) else None
        if text is None:
            return None
        return int(text) if text.isdigit() else text


# -------------------------------------------------------------------- #
# Merging                                                                #
# -------------------------------------------------------------------- #


def merge_named_collections(
    target: Optional[list[PartyRepresentative]],
    source: Optional[list[PartyRepresentative]],
) -> Optional[list[PartyRepresentative]]:
    """Union two representative lists by ``(name, document)``."""
    if not source:
        return target

    merged = list(target or [])
    seen = {(item.name or "", item.document or "") for item in merged}

    for item in source:
        name = normalize_string(item.name)
        document = normalize_string(item.document)
        key = (name or "", document or "")
        if key in seen:
            continue
        merged.append(PartyRepresentative(name=name, document=document))
        seen.add(key)

    return merged


def merge_participant_data(target: Participant, source: Participant) -> None:
    """Fill empty fields of *target* from *source* (first non-null wins)."""
    for field_name in _MERGE_FIELDS:
        if not getattr(target, field_name) and getattr(source, field_name):
            setattr(target, field_name, getattr(source, field_name))

    if target.id is None and source.id is not None:
        target.id = source.id

    target.lawyers = merge_named_collections(target.lawyers, source.lawyers)
    target.representatives = merge_named_collections(
        target.representatives, source.representatives
    )


class ParticipantMerger:
    """Accumulates participant candidates into a de-duplicated list.

    Candidates sharing a document key collapse into the first one registered;
    candidates without a key are kept as distinct entries.  Registered
    candidates are copied, never mutated.
    """

    def __init__(self) -> None:
        self._participants: list[Participant] = []
        self._by_key: dict[str, Participant] = {}
        self.merged_count = 0

    def add(self, candidate: Participant) -> Participant:
        key = candidate.document_key
        existing = self._by_key.get(key) if key else None

        if existing is not None:
            merge_participant_data(existing, candidate)
            self.merged_count += 1
            logger.debug("participants: merged %s candidate into key %s", candidate.source, key)
            return existing

        registered = candidate.model_copy(deep=True)
        self._participants.append(registered)
        if key:
            self._by_key[key] = registered
        return registered

    def extend(self, candidates: Iterable[Participant]) -> None:
        for candidate in candidates:
            self.add(candidate)

    @property
    def participants(self) -> list[Participant]:
        return list(self._participants)


def merge_participants(crawler_rows: Any, opportunity_rows: Any) -> list[Participant]:
    """Build and merge both participant sources.

    Crawler rows are registered first, so crawler data wins ties on
    first-non-null fields.
    """
    crawler = CrawlerParticipantBuilder().parse(crawler_rows)
    opportunity = OpportunityParticipantBuilder().parse(opportunity_rows)

    merger = ParticipantMerger()
    merger.extend(crawler.items)
    merger.extend(opportunity.items)

    logger.info(
        "participants: %d crawler + %d opportunity -> %d merged (%d collapsed)",
        len(crawler.items),
        len(opportunity.items),
        len(merger.participants),
        merger.merged_count,
    )
    return merger.participants
