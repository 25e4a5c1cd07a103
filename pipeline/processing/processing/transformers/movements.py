"""Movement and attachment parsing, and attachment-to-movement association.

Attachments from the crawler do not always carry the id of the docket entry
they belong to.  :class:`MovementAttachmentAssociator` links them through an
ordered list of matching tiers (first match wins):

1. :class:`DirectIdMatch`: ``attachment.movement_id == movement.id``;
2. :class:`ExactTimestampMatch`: same UTC instant;
3. :class:`SameDayMatch`: same ``YYYY-MM-DD`` day.

Inside a tier, ties go to the first movement in input (store) order.  The
last two tiers are heuristics and can misattach when several movements land
on the same day; sources with reliable ids should use ``[DirectIdMatch()]``
only.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional

from models.movement import Attachment, Movement

from processing.normalize import (
    normalize_date,
    normalize_string,
    normalize_timestamp,
    parse_boolean_flag,
    parse_json_column,
)
from processing.transformers.base import BaseRowParser

logger = logging.getLogger(__name__)


def _first_present(row: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = row.get(key)
        if value is not None:
            return value
    return None


def _identifier(value: Any) -> Optional[str]:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, bool):
        return None
    return normalize_string(value)


# -------------------------------------------------------------------- #
# Parsers                                                                #
# -------------------------------------------------------------------- #


class MovementParser(BaseRowParser[Movement]):
    """Rows of ``trigger_movimentacao_processo`` (or manual movements)."""

    source_name: str = "movements"

    def build(self, row: Mapping[str, Any]) -> Optional[Movement]:
        movement_id = _identifier(_first_present(row, "id_andamento", "id"))
        if not movement_id:
            return None

        return Movement(
            id=movement_id,
            timestamp=normalize_timestamp(
                _first_present(row, "data_andamento", "data", "data_movimentacao")
            ),
            kind=normalize_string(_first_present(row, "tipo_andamento", "tipo")),
            kind_detail=normalize_string(row.get("tipo_andamento")),
            publication_kind=normalize_string(row.get("tipo_publicacao")),
            content=normalize_string(_first_present(row, "conteudo", "descricao")),
            category_text=normalize_string(row.get("texto_categoria")),
            predicted_classification=parse_json_column(row.get("classificacao_predita")),
            source=parse_json_column(row.get("fonte")),
            confidential=parse_boolean_flag(row.get("sigiloso")),
            crawl_id=_identifier(row.get("crawl_id")),
            registered_at=normalize_timestamp(row.get("data_cadastro")),
            created_at=normalize_timestamp(_first_present(row, "criado_em", "data_cadastro")),
            updated_at=normalize_timestamp(
                _first_present(row, "atualizado_em", "data_cadastro")
            ),
            case_number=normalize_string(row.get("numero_cnj")),
            instance=_identifier(row.get("instancia_processo")),
        )


class AttachmentParser(BaseRowParser[Attachment]):
    """Rows of ``trigger_anexos_processo``."""

    source_name: str = "attachments"

    def build(self, row: Mapping[str, Any]) -> Optional[Attachment]:
        attachment_id = _identifier(_first_present(row, "id", "id_anexo"))
        if not attachment_id:
            return None

        return Attachment(
            id=attachment_id,
            movement_id=_identifier(row.get("id_andamento")),
            attachment_id=_identifier(_first_present(row, "id_anexo", "id")),
            name=normalize_string(row.get("nome")),
            kind=normalize_string(row.get("tipo")),
            registered_at=(
                normalize_timestamp(row.get("movimentacao_criado_em"))
                or normalize_timestamp(_first_present(row, "data_cadastro", "criado_em"))
            ),
            movement_timestamp=(
                normalize_timestamp(row.get("movimentacao_data_andamento"))
                or normalize_timestamp(row.get("data_andamento"))
            ),
            venue_instance=_identifier(row.get("instancia_processo")),
            crawl_id=_identifier(row.get("crawl_id")),
        )


# -------------------------------------------------------------------- #
# Association tiers                                                      #
# -------------------------------------------------------------------- #


def _instant(value: Any) -> Optional[str]:
    """Canonical UTC timestamp, or ``None`` for opaque text that is not a date."""
    timestamp = normalize_timestamp(value)
    if timestamp is None or normalize_date(timestamp) is None:
        return None
    return timestamp


def attachment_timestamp(attachment: Attachment) -> Optional[str]:
    """The attachment's own instant: movement timestamp, else registration."""
    return _instant(attachment.movement_timestamp) or _instant(attachment.registered_at)


class AssociationStrategy(ABC):
    """One matching tier: a key derived from both sides of the association."""

    name: str

    @abstractmethod
    def movement_key(self, movement: Movement) -> Optional[str]:
        ...

    @abstractmethod
    def attachment_key(self, attachment: Attachment) -> Optional[str]:
        ...

    def build_index(self, movements: Sequence[Movement]) -> dict[str, Movement]:
        """Key -> first movement (in input order) carrying that key."""
        index: dict[str, Movement] = {}
        for movement in movements:
            key = self.movement_key(movement)
            if key:
                index.setdefault(key, movement)
        return index


class DirectIdMatch(AssociationStrategy):
    name = "id"

    def movement_key(self, movement: Movement) -> Optional[str]:
        return movement.id

    def attachment_key(self, attachment: Attachment) -> Optional[str]:
        return attachment.movement_id


class ExactTimestampMatch(AssociationStrategy):
    name = "timestamp"

    def movement_key(self, movement: Movement) -> Optional[str]:
        return _instant(movement.timestamp)

    def attachment_key(self, attachment: Attachment) -> Optional[str]:
        return attachment_timestamp(attachment)


class SameDayMatch(AssociationStrategy):
    name = "same_day"

    def movement_key(self, movement: Movement) -> Optional[str]:
        return normalize_date(_instant(movement.timestamp))

    def attachment_key(self, attachment: Attachment) -> Optional[str]:
        return normalize_date(attachment_timestamp(attachment))


def default_strategies() -> list[AssociationStrategy]:
    return [DirectIdMatch(), ExactTimestampMatch(), SameDayMatch()]


@dataclass
class AssociationResult:
    """Movements carrying their attachments, plus what could not be placed."""

    movements: list[Movement] = field(default_factory=list)
    unmatched: list[Attachment] = field(default_factory=list)
    matches_by_tier: dict[str, int] = field(default_factory=dict)


class MovementAttachmentAssociator:
    """Nest attachments under the movements they document.

    Args:
        strategies: Matching tiers in priority order.  Defaults to
            id -> exact timestamp -> same day.
    """

    def __init__(self, strategies: Optional[Sequence[AssociationStrategy]] = None) -> None:
        self.strategies = list(strategies) if strategies is not None else default_strategies()

    def associate(
        self,
        movements: Sequence[Movement],
        attachments: Sequence[Attachment],
    ) -> AssociationResult:
        linked = [movement.model_copy(deep=True) for movement in movements]
        result = AssociationResult(movements=linked)

        if not linked or not attachments:
            result.unmatched = list(attachments)
            return result

        indexes = [(strategy, strategy.build_index(linked)) for strategy in self.strategies]

        for attachment in attachments:
            target = None
            for strategy, index in indexes:
                key = strategy.attachment_key(attachment)
                target = index.get(key) if key else None
                if target is not None:
                    result.matches_by_tier[strategy.name] = (
                        result.matches_by_tier.get(strategy.name, 0) + 1
                    )
                    break

            if target is None:
                result.unmatched.append(attachment)
                continue

            target.attachments.append(attachment.model_copy())

        if result.unmatched:
            logger.debug(
                "movements: %d attachment(s) not linked to any movement",
                len(result.unmatched),
            )
        return result


def merge_movements_with_attachments(
    movements: Sequence[Movement],
    attachments: Sequence[Attachment],
) -> list[Movement]:
    """Copy of *movements* with attachments nested by the default tiers."""
    return MovementAttachmentAssociator().associate(movements, attachments).movements


# -------------------------------------------------------------------- #
# Manual entry                                                           #
# -------------------------------------------------------------------- #


def _json_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    try:
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        logger.error("movements: could not serialize JSON field: %s", exc)
        return None


def prepare_movement_record(item: Any) -> Optional[dict[str, Optional[str]]]:
    """Sanitize a user-entered movement into column values for insertion.

    Returns ``None`` when *item* is not an object.
    """
    if not isinstance(item, Mapping):
        return None

    return {
        "data": normalize_date(item.get("data")) or normalize_string(item.get("data")),
        "tipo": normalize_string(item.get("tipo")),
        "tipo_publicacao": normalize_string(item.get("tipo_publicacao")),
        "classificacao_predita": _json_or_none(item.get("classificacao_predita")),
        "conteudo": normalize_string(item.get("conteudo")),
        "texto_categoria": normalize_string(item.get("texto_categoria")),
        "fonte": _json_or_none(item.get("fonte")),
    }
