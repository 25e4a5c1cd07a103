"""Process aggregator: one canonical :class:`ProcessAggregate` per lawsuit.

The aggregate is a read-time projection.  It is rebuilt from scratch on every
call from the joined ``processos`` row, the trigger-data blob and the
side-loaded collections; nothing here is persisted and no input is mutated.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from models.process import (
    ClientSummary,
    OpportunitySummary,
    ProcessAggregate,
    ResponsibleLawyer,
)

from processing.normalize import (
    normalize_date,
    normalize_string,
    normalize_timestamp,
    parse_boolean_flag,
    parse_integer,
    parse_json_column,
    parse_optional_integer,
)
from processing.transformers.base import iter_rows
from processing.transformers.indicators import extract_indicators
from processing.transformers.movements import (
    AttachmentParser,
    MovementAttachmentAssociator,
    MovementParser,
)
from processing.transformers.participants import merge_participants
from processing.validators.data_quality import DataQualityValidator

logger = logging.getLogger(__name__)


def parse_responsible_lawyers(value: Any) -> list[ResponsibleLawyer]:
    """Lawyers assigned to the process (``processos.advogados`` JSON).

    Entries without a positive integer ``id`` are dropped.
    """
    parsed = parse_json_column(value)
    lawyers: list[ResponsibleLawyer] = []

    for item in iter_rows(parsed if isinstance(parsed, (list, Mapping)) else None):
        raw_id = item.get("id")
        if isinstance(raw_id, bool) or (isinstance(raw_id, float) and not raw_id.is_integer()):
            continue
        lawyer_id = parse_optional_integer(raw_id)
        if lawyer_id is None or lawyer_id <= 0:
            continue

        name = item.get("nome", item.get("name"))
        lawyers.append(
            ResponsibleLawyer(
                id=lawyer_id,
                name=name if isinstance(name, str) else None,
                oab=normalize_string(item.get("oab")),
            )
        )

    return lawyers


def _client_summary(row: Mapping[str, Any]) -> Optional[ClientSummary]:
    client_id = parse_optional_integer(row.get("cliente_id"))
    if not client_id:
        return None
    return ClientSummary(
        id=client_id,
        name=normalize_string(row.get("cliente_nome")),
        document=normalize_string(row.get("cliente_documento")),
        kind=normalize_string(row.get("cliente_tipo")),
    )


def _opportunity_summary(row: Mapping[str, Any]) -> Optional[OpportunitySummary]:
    opportunity_id = parse_optional_integer(row.get("oportunidade_id"))
    if not opportunity_id or opportunity_id <= 0:
        return None
    return OpportunitySummary(
        id=opportunity_id,
        company_sequence=parse_optional_integer(row.get("oportunidade_sequencial_empresa")),
        created_at=normalize_timestamp(row.get("oportunidade_data_criacao")),
        case_number=normalize_string(row.get("oportunidade_numero_processo_cnj")),
        protocol_number=normalize_string(row.get("oportunidade_numero_protocolo")),
        requester_id=parse_optional_integer(row.get("oportunidade_solicitante_id")),
        requester_name=normalize_string(row.get("oportunidade_solicitante_nome")),
    )


def _base_fields(row: Mapping[str, Any]) -> dict[str, Any]:
    degree = row.get("grau")
    return {
        "id": row.get("id"),
        "client_id": parse_optional_integer(row.get("cliente_id")),
        "company_id": parse_optional_integer(row.get("idempresa")),
        "number": normalize_string(row.get("numero")),
        "degree": degree if isinstance(degree, str) else "",
        "uf": normalize_string(row.get("uf")),
        "municipality": normalize_string(row.get("municipio")),
        "court": normalize_string(row.get("orgao_julgador")),
        "kind": normalize_string(row.get("tipo")),
        "status": normalize_string(row.get("status")),
        "judicial_class": normalize_string(row.get("classe_judicial")),
        "subject": normalize_string(row.get("assunto")),
        "jurisdiction": normalize_string(row.get("jurisdicao")),
        "responsible_lawyer": normalize_string(row.get("advogado_responsavel")),
        "distribution_date": normalize_date(row.get("data_distribuicao")),
        "created_at": normalize_timestamp(row.get("criado_em")),
        "updated_at": normalize_timestamp(row.get("atualizado_em")),
        "last_movement_at": normalize_timestamp(row.get("ultima_movimentacao")),
        "last_sync_at": normalize_timestamp(row.get("ultima_sincronizacao")),
        "situation_id": parse_optional_integer(row.get("situacao_processo_id")),
        "situation_name": normalize_string(row.get("situacao_processo_nome")),
        "process_kind_id": parse_optional_integer(row.get("tipo_processo_id")),
        "process_kind_name": normalize_string(row.get("tipo_processo_nome")),
        "practice_area_id": parse_optional_integer(row.get("area_atuacao_id")),
        "practice_area_name": normalize_string(row.get("area_atuacao_nome")),
        "instance": normalize_string(row.get("instancia")),
        "cnj_system_id": parse_optional_integer(row.get("sistema_cnj_id")),
        "monitored": bool(parse_boolean_flag(row.get("monitorar_processo"))),
        "free_justice": parse_boolean_flag(row.get("justica_gratuita")),
        "injunction": parse_boolean_flag(row.get("liminar")),
        "secrecy_level": parse_optional_integer(row.get("nivel_sigilo")),
        "current_procedure": normalize_string(row.get("tramitacaoatual")),
        "may_petition": parse_boolean_flag(row.get("permite_peticionar")) is not False,
        "parties_id": parse_optional_integer(row.get("envolvidos_id")),
        "description": normalize_string(row.get("descricao")),
        "sector_id": parse_optional_integer(row.get("setor_id")),
        "sector_name": normalize_string(row.get("setor_nome")),
        "summons_date": normalize_date(row.get("data_citacao")),
        "receipt_date": normalize_date(row.get("data_recebimento")),
        "archive_date": normalize_date(row.get("data_arquivamento")),
        "closing_date": normalize_date(row.get("data_encerramento")),
        "api_query_count": parse_integer(row.get("consultas_api_count")),
    }


def build_process_aggregate(
    base_row: Any,
    trigger_blob: Any = None,
    movements: Any = None,
    attachments: Any = None,
    crawler_participants: Any = None,
    opportunity_participants: Any = None,
) -> ProcessAggregate:
    """Fold a process row and its side-loads into one :class:`ProcessAggregate`.

    Args:
        base_row: The joined ``processos`` row (client, opportunity and
            counters included).  Anything that is not a mapping is treated
            as an empty row.
        trigger_blob: The ``trigger_dados_processo`` blob.  Defaults to the
            row's own ``trigger_dados_processo`` column.
        movements: Raw movement rows.  Defaults to the row's ``movimentacoes``.
        attachments: Raw attachment rows.  Defaults to the row's ``attachments``.
        crawler_participants: Raw ``trigger_envolvidos_processo`` rows.
        opportunity_participants: Raw ``oportunidade_envolvidos`` rows.

    Returns:
        The aggregate.  Malformed inputs degrade to ``None``/empty fields;
        this function does not raise on bad upstream data.
    """
    row: Mapping[str, Any] = base_row if isinstance(base_row, Mapping) else {}

    if trigger_blob is None:
        trigger_blob = row.get("trigger_dados_processo")
    if movements is None:
        movements = row.get("movimentacoes")
    if attachments is None:
        attachments = row.get("attachments")

    validator = DataQualityValidator()
    parsed_movements = validator.validate_batch(MovementParser().parse(movements).items).valid
    parsed_attachments = validator.validate_batch(
        AttachmentParser().parse(attachments).items
    ).valid

    association = MovementAttachmentAssociator().associate(parsed_movements, parsed_attachments)

    stored_count = parse_optional_integer(row.get("movimentacoes_count"))

    aggregate = ProcessAggregate(
        **_base_fields(row),
        client=_client_summary(row),
        opportunity=_opportunity_summary(row),
        lawyers=parse_responsible_lawyers(row.get("advogados")),
        indicators=extract_indicators(trigger_blob, row.get("data_distribuicao")),
        movements=association.movements,
        attachments=parsed_attachments,
        participants=merge_participants(crawler_participants, opportunity_participants),
        movement_count=(
            stored_count if stored_count is not None else len(association.movements)
        ),
    )

    logger.debug(
        "process %s: %d movements, %d attachments (%d unlinked), %d participants",
        aggregate.id,
        len(aggregate.movements),
        len(aggregate.attachments),
        len(association.unmatched),
        len(aggregate.participants),
    )
    return aggregate


@dataclass
class ProcessBundle:
    """Everything :func:`build_process_aggregate` needs for one process."""

    base_row: dict[str, Any]
    trigger_blob: Any = None
    movements: list[dict[str, Any]] = field(default_factory=list)
    attachments: list[dict[str, Any]] = field(default_factory=list)
    crawler_participants: list[dict[str, Any]] = field(default_factory=list)
    opportunity_participants: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ProcessBundle:
        """Bundle from a JSON document (``{"base_row": {...}, "movements": [...]}``)."""
        base_row = data.get("base_row")
        if not isinstance(base_row, Mapping):
            raise ValueError("bundle requires a 'base_row' object")
        return cls(
            base_row=dict(base_row),
            trigger_blob=data.get("trigger_blob"),
            movements=list(iter_rows(data.get("movements"))),
            attachments=list(iter_rows(data.get("attachments"))),
            crawler_participants=list(iter_rows(data.get("crawler_participants"))),
            opportunity_participants=list(iter_rows(data.get("opportunity_participants"))),
        )

    def to_aggregate(self) -> ProcessAggregate:
        return build_process_aggregate(
            self.base_row,
            self.trigger_blob,
            self.movements,
            self.attachments,
            self.crawler_participants,
            self.opportunity_participants,
        )
