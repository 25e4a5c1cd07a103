"""Tests for the process aggregator."""

from __future__ import annotations

import copy
import json
import logging

import pytest

from models.process import ResponsibleLawyer
from processing.transformers.process import (
    ProcessBundle,
    build_process_aggregate,
    parse_responsible_lawyers,
)


@pytest.fixture
def process_row() -> dict:
    """A joined processos row as the host application returns it."""
    return {
        "id": 1,
        "cliente_id": 2,
        "idempresa": "3",
        "numero": "000123",
        "grau": "1",
        "uf": "sp",
        "municipio": "São Paulo",
        "orgao_julgador": "Orgão",
        "tipo": "Tipo",
        "status": "Ativo",
        "classe_judicial": "Classe",
        "assunto": "Assunto",
        "jurisdicao": "Jurisdicao",
        "advogado_responsavel": "Dr. A",
        "data_distribuicao": "2024-01-01",
        "criado_em": "2024-01-01T00:00:00.000Z",
        "atualizado_em": "2024-01-02T00:00:00.000Z",
        "ultima_movimentacao": "2024-01-03T00:00:00.000Z",
        "ultima_sincronizacao": "2024-01-04T00:00:00.000Z",
        "consultas_api_count": "3",
        "situacao_processo_id": "5",
        "situacao_processo_nome": "Nome",
        "tipo_processo_id": "6",
        "tipo_processo_nome": "Tipo Processo",
        "area_atuacao_id": "7",
        "area_atuacao_nome": "Área",
        "instancia": "2",
        "sistema_cnj_id": "8",
        "monitorar_processo": "true",
        "justica_gratuita": "1",
        "liminar": "0",
        "nivel_sigilo": "2",
        "tramitacaoatual": "  Em andamento  ",
        "permite_peticionar": None,
        "envolvidos_id": "9",
        "descricao": " Descrição ",
        "setor_id": "10",
        "setor_nome": "Setor",
        "data_citacao": "2024-02-01",
        "data_recebimento": "01/03/2024",
        "data_arquivamento": None,
        "data_encerramento": None,
        "movimentacoes_count": "4",
        "cliente_nome": "Cliente X",
        "cliente_documento": "12345678900",
        "cliente_tipo": 1,
        "oportunidade_id": "11",
        "oportunidade_sequencial_empresa": "12",
        "oportunidade_solicitante_id": "13",
        "oportunidade_solicitante_nome": " Solicitante ",
        "oportunidade_data_criacao": "2024-01-05T00:00:00.000Z",
        "oportunidade_numero_processo_cnj": "CNJ",
        "oportunidade_numero_protocolo": "PROTO",
        "advogados": [{"id": 1, "nome": "Ana", "oab": "123"}],
        "movimentacoes": [
            {
                "id": "mov-1",
                "data_movimentacao": "2024-01-10T00:00:00.000Z",
                "tipo": "Publicação",
                "descricao": "Texto",
            }
        ],
        "attachments": [{"id": "att-1", "id_andamento": "mov-1", "nome": "Documento"}],
        "trigger_dados_processo": json.dumps(
            {
                "tribunal_sigla": "TJSP",
                "tribunal_nome": "Tribunal SP",
                "county": "São Paulo",
                "amount": 1500,
                "tags": ["Urgente"],
                "indicadores": {
                    "precatory": True,
                    "free_justice": True,
                    "secrecy_level": "ALTO",
                },
            }
        ),
    }


class TestParseResponsibleLawyers:
    def test_valid_entries(self):
        value = '[{"id": "4", "name": "Bia"}, {"id": 5, "nome": "Caio", "oab": " SP9 "}]'
        assert parse_responsible_lawyers(value) == [
            ResponsibleLawyer(id=4, name="Bia", oab=None),
            ResponsibleLawyer(id=5, name="Caio", oab="SP9"),
        ]

    def test_invalid_ids_dropped(self):
        value = [{"id": 0}, {"id": -1}, {"id": "abc"}, {"id": 1.5}, {"id": True}, {"nome": "x"}]
        assert parse_responsible_lawyers(value) == []

    def test_single_object_and_garbage(self):
        assert [lawyer.id for lawyer in parse_responsible_lawyers('{"id": 3}')] == [3]
        assert parse_responsible_lawyers("not json") == []
        assert parse_responsible_lawyers(None) == []


class TestBuildProcessAggregate:
    def test_base_fields(self, process_row):
        agg = build_process_aggregate(process_row)

        assert agg.number == "000123"
        assert agg.uf == "sp"
        assert agg.degree == "1"
        assert agg.company_id == 3
        assert agg.current_procedure == "Em andamento"
        assert agg.description == "Descrição"
        assert agg.may_petition is True
        assert agg.monitored is True
        assert agg.free_justice is True
        assert agg.injunction is False
        assert agg.secrecy_level == 2
        assert agg.situation_id == 5
        assert agg.api_query_count == 3
        assert agg.movement_count == 4
        assert agg.distribution_date == "2024-01-01"
        assert agg.summons_date == "2024-02-01"
        assert agg.receipt_date == "2024-03-01"
        assert agg.archive_date is None

    def test_summaries(self, process_row):
        agg = build_process_aggregate(process_row)

        assert agg.client.id == 2
        assert agg.client.kind == "1"
        assert agg.opportunity.id == 11
        assert agg.opportunity.company_sequence == 12
        assert agg.opportunity.requester_name == "Solicitante"
        assert agg.lawyers == [ResponsibleLawyer(id=1, name="Ana", oab="123")]

    def test_indicators_from_row_blob(self, process_row):
        agg = build_process_aggregate(process_row)

        assert agg.indicators.tribunal_acronym == "TJSP"
        assert agg.indicators.tags == ["Urgente"]
        assert agg.indicators.precatory is True
        assert agg.indicators.secrecy_level == "ALTO"
        assert agg.indicators.distribution_date == "2024-01-01T00:00:00.000Z"

    def test_movements_carry_attachments(self, process_row):
        agg = build_process_aggregate(process_row)

        assert [m.id for m in agg.movements] == ["mov-1"]
        assert [a.id for a in agg.movements[0].attachments] == ["att-1"]
        assert [a.id for a in agg.attachments] == ["att-1"]

    def test_explicit_side_loads_override_row(self, process_row):
        agg = build_process_aggregate(
            process_row,
            trigger_blob={"tribunal_acronym": "TRF3"},
            movements=[{"id": "m9"}],
            attachments=[],
            crawler_participants=[{"nome": "Ana", "documento_principal": "123.456.789-00"}],
            opportunity_participants=[{"documento": "12345678900", "side": "ativo"}],
        )

        assert agg.indicators.tribunal_acronym == "TRF3"
        assert [m.id for m in agg.movements] == ["m9"]
        assert agg.attachments == []
        assert len(agg.participants) == 1
        assert agg.participants[0].side == "ativo"

    def test_movement_count_defaults_to_parsed_movements(self, process_row):
        del process_row["movimentacoes_count"]
        assert build_process_aggregate(process_row).movement_count == 1

    def test_duplicate_movement_ids_rejected(self, process_row, caplog):
        movements = [{"id": "m1", "conteudo": "first"}, {"id": "m1", "conteudo": "second"}]

        with caplog.at_level(logging.WARNING):
            agg = build_process_aggregate(process_row, movements=movements)

        assert [m.content for m in agg.movements] == ["first"]
        assert "Duplicate Movement" in caplog.text

    def test_idempotent(self, process_row):
        """Same inputs, same aggregate; inputs untouched."""
        snapshot = copy.deepcopy(process_row)

        first = build_process_aggregate(process_row)
        second = build_process_aggregate(process_row)

        assert first == second
        assert first.model_dump() == second.model_dump()
        assert process_row == snapshot

    def test_malformed_row_degrades(self):
        agg = build_process_aggregate("not a row", trigger_blob="{broken")

        assert agg.id is None
        assert agg.degree == ""
        assert agg.may_petition is True
        assert agg.monitored is False
        assert agg.client is None
        assert agg.movements == []
        assert agg.indicators.tribunal is None


class TestProcessBundle:
    def test_from_dict_round_trip(self, process_row):
        bundle = ProcessBundle.from_dict(
            {"base_row": process_row, "crawler_participants": [{"nome": "Ana"}]}
        )

        agg = bundle.to_aggregate()

        assert agg.number == "000123"
        assert [p.name for p in agg.participants] == ["Ana"]

    def test_base_row_required(self):
        with pytest.raises(ValueError):
            ProcessBundle.from_dict({"movements": []})
