"""Tests for movement/attachment parsing and association."""

from __future__ import annotations

import json

from models.movement import Attachment, Movement
from processing.transformers.movements import (
    AttachmentParser,
    DirectIdMatch,
    ExactTimestampMatch,
    MovementAttachmentAssociator,
    MovementParser,
    SameDayMatch,
    merge_movements_with_attachments,
    prepare_movement_record,
)


def _ids(movement: Movement) -> list[str]:
    return [a.id for a in movement.attachments]


class TestMovementParser:
    def test_crawler_row(self):
        row = {
            "id": 10,
            "numero_cnj": "0001234-56.2024.8.26.0100",
            "instancia_processo": 1,
            "tipo_andamento": "Juntada",
            "conteudo": " Juntada de petição ",
            "sigiloso": "false",
            "data_movimentacao": "2024-01-10T13:00:00Z",
            "classificacao_predita": '{"label": "peticao", "score": 0.9}',
            "crawl_id": "c-1",
        }

        m = MovementParser().build(row)

        assert m.id == "10"
        assert m.timestamp == "2024-01-10T13:00:00.000Z"
        assert m.kind == "Juntada"
        assert m.kind_detail == "Juntada"
        assert m.content == "Juntada de petição"
        assert m.confidential is False
        assert m.predicted_classification == {"label": "peticao", "score": 0.9}
        assert m.case_number == "0001234-56.2024.8.26.0100"
        assert m.instance == "1"
        assert m.crawl_id == "c-1"

    def test_fallback_fields(self):
        """id_andamento beats id, data_andamento beats data_movimentacao."""
        m = MovementParser().build(
            {
                "id": "x",
                "id_andamento": "and-1",
                "data_andamento": "2024-02-01",
                "data_movimentacao": "2024-03-01",
                "tipo": "Publicação",
                "descricao": "Texto",
                "data_cadastro": "2024-02-02T00:00:00Z",
            }
        )
        assert m.id == "and-1"
        assert m.timestamp == "2024-02-01T00:00:00.000Z"
        assert m.kind == "Publicação"
        assert m.kind_detail is None
        assert m.content == "Texto"
        assert m.created_at == "2024-02-02T00:00:00.000Z"
        assert m.updated_at == "2024-02-02T00:00:00.000Z"

    def test_rows_without_id_skipped(self):
        result = MovementParser().parse([{"conteudo": "sem id"}, {"id": "m1"}, "junk"])
        assert [m.id for m in result.items] == ["m1"]
        assert result.skipped == 1

    def test_json_encoded_collection(self):
        rows = json.dumps([{"id": "m1"}, {"id": "m2"}])
        assert [m.id for m in MovementParser().parse(rows).items] == ["m1", "m2"]


class TestAttachmentParser:
    def test_crawler_row(self):
        a = AttachmentParser().build(
            {
                "id": 5,
                "id_andamento": 10,
                "id_anexo": "anx-9",
                "nome": "Petição inicial.pdf",
                "tipo": "pdf",
                "criado_em": "2024-01-10T13:05:00Z",
                "movimentacao_data_andamento": "2024-01-10T13:00:00Z",
                "instancia_processo": 1,
            }
        )
        assert a.id == "5"
        assert a.movement_id == "10"
        assert a.attachment_id == "anx-9"
        assert a.registered_at == "2024-01-10T13:05:00.000Z"
        assert a.movement_timestamp == "2024-01-10T13:00:00.000Z"
        assert a.venue_instance == "1"

    def test_id_falls_back_to_attachment_id(self):
        a = AttachmentParser().build({"id_anexo": "anx-1"})
        assert a.id == "anx-1"
        assert a.attachment_id == "anx-1"


class TestAssociator:
    def test_direct_id_match(self):
        movements = [Movement(id="m1"), Movement(id="m2")]
        attachments = [Attachment(id="a1", movement_id="m2")]

        result = MovementAttachmentAssociator().associate(movements, attachments)

        assert _ids(result.movements[1]) == ["a1"]
        assert result.matches_by_tier == {"id": 1}

    def test_exact_timestamp_match(self):
        movements = [
            Movement(id="m1", timestamp="2024-01-10T09:00:00.000Z"),
            Movement(id="m2", timestamp="2024-01-10T13:00:00.000Z"),
        ]
        attachments = [
            Attachment(id="a1", movement_id="unknown", movement_timestamp="2024-01-10T10:00:00-03:00")
        ]

        result = MovementAttachmentAssociator().associate(movements, attachments)

        assert _ids(result.movements[1]) == ["a1"]
        assert result.matches_by_tier == {"timestamp": 1}

    def test_registration_time_used_when_movement_time_missing(self):
        movements = [Movement(id="m1", timestamp="2024-01-10T13:00:00.000Z")]
        attachments = [Attachment(id="a1", registered_at="2024-01-10T13:00:00Z")]

        result = MovementAttachmentAssociator().associate(movements, attachments)

        assert _ids(result.movements[0]) == ["a1"]

    def test_same_day_goes_to_first_movement(self):
        """Two movements on the same day: the first one in input order wins."""
        movements = [
            Movement(id="m1", timestamp="2024-01-10T09:00:00.000Z"),
            Movement(id="m2", timestamp="2024-01-10T15:00:00.000Z"),
        ]
        attachments = [Attachment(id="a1", movement_timestamp="2024-01-10T12:00:00.000Z")]

        result = MovementAttachmentAssociator().associate(movements, attachments)

        assert _ids(result.movements[0]) == ["a1"]
        assert _ids(result.movements[1]) == []
        assert result.matches_by_tier == {"same_day": 1}

    def test_identical_timestamps_go_to_first_movement(self):
        movements = [
            Movement(id="m1", timestamp="2024-01-10T09:00:00.000Z"),
            Movement(id="m2", timestamp="2024-01-10T09:00:00.000Z"),
        ]
        attachments = [Attachment(id="a1", movement_timestamp="2024-01-10T09:00:00.000Z")]

        result = MovementAttachmentAssociator().associate(movements, attachments)

        assert _ids(result.movements[0]) == ["a1"]

    def test_each_attachment_lands_on_at_most_one_movement(self):
        movements = [
            Movement(id="m1", timestamp="2024-01-10T09:00:00.000Z"),
            Movement(id="m2", timestamp="2024-01-10T09:00:00.000Z"),
            Movement(id="m3", timestamp="2024-01-11T09:00:00.000Z"),
        ]
        attachments = [
            Attachment(id="a1", movement_id="m3"),
            Attachment(id="a2", movement_timestamp="2024-01-10T09:00:00.000Z"),
            Attachment(id="a3", registered_at="2024-01-11"),
            Attachment(id="a4", registered_at="2024-02-01"),
            Attachment(id="a5"),
        ]

        result = MovementAttachmentAssociator().associate(movements, attachments)

        placed = [a.id for m in result.movements for a in m.attachments]
        assert sorted(placed) == ["a1", "a2", "a3"]
        assert len(placed) == len(set(placed))
        assert [a.id for a in result.unmatched] == ["a4", "a5"]

    def test_opaque_timestamps_never_match(self):
        """Unparseable text sharing a prefix is not the same day."""
        movements = [Movement(id="m1", timestamp="aguardando publicacao")]
        attachments = [
            Attachment(id="a1", registered_at="aguardando julgamento"),
            Attachment(id="a2", movement_timestamp="aguardando publicacao"),
        ]

        result = MovementAttachmentAssociator().associate(movements, attachments)

        assert _ids(result.movements[0]) == []
        assert [a.id for a in result.unmatched] == ["a1", "a2"]
        assert result.matches_by_tier == {}

    def test_opaque_movement_time_falls_back_to_registration(self):
        movements = [Movement(id="m1", timestamp="2024-01-10T09:00:00.000Z")]
        attachments = [
            Attachment(id="a1", movement_timestamp="pendente", registered_at="2024-01-10")
        ]

        result = MovementAttachmentAssociator().associate(movements, attachments)

        assert _ids(result.movements[0]) == ["a1"]
        assert result.matches_by_tier == {"same_day": 1}

    def test_strict_id_only_strategy(self):
        movements = [Movement(id="m1", timestamp="2024-01-10T09:00:00.000Z")]
        attachments = [Attachment(id="a1", movement_timestamp="2024-01-10T09:00:00.000Z")]

        result = MovementAttachmentAssociator([DirectIdMatch()]).associate(movements, attachments)

        assert _ids(result.movements[0]) == []
        assert len(result.unmatched) == 1

    def test_custom_tier_order(self):
        """Same-day before exact timestamp changes the winner."""
        movements = [
            Movement(id="m1", timestamp="2024-01-10T09:00:00.000Z"),
            Movement(id="m2", timestamp="2024-01-10T15:00:00.000Z"),
        ]
        attachments = [Attachment(id="a1", movement_timestamp="2024-01-10T15:00:00.000Z")]

        default = MovementAttachmentAssociator().associate(movements, attachments)
        reordered = MovementAttachmentAssociator(
            [SameDayMatch(), ExactTimestampMatch()]
        ).associate(movements, attachments)

        assert _ids(default.movements[1]) == ["a1"]
        assert _ids(reordered.movements[0]) == ["a1"]

    def test_inputs_not_mutated(self):
        movements = [Movement(id="m1")]
        attachments = [Attachment(id="a1", movement_id="m1")]

        linked = merge_movements_with_attachments(movements, attachments)

        assert _ids(linked[0]) == ["a1"]
        assert movements[0].attachments == []

    def test_empty_inputs(self):
        assert merge_movements_with_attachments([], [Attachment(id="a1")]) == []
        linked = merge_movements_with_attachments([Movement(id="m1")], [])
        assert linked == [Movement(id="m1")]


class TestPrepareMovementRecord:
    def test_sanitizes_fields(self):
        record = prepare_movement_record(
            {
                "data": "10/01/2024",
                "tipo": " Despacho ",
                "tipo_publicacao": "",
                "classificacao_predita": {"label": "despacho", "score": 0.8},
                "conteudo": " Vistos. ",
                "fonte": ["manual"],
            }
        )
        assert record == {
            "data": "2024-01-10",
            "tipo": "Despacho",
            "tipo_publicacao": None,
            "classificacao_predita": '{"label":"despacho","score":0.8}',
            "conteudo": "Vistos.",
            "texto_categoria": None,
            "fonte": '["manual"]',
        }

    def test_unparseable_date_kept_as_text(self):
        assert prepare_movement_record({"data": "amanhã"})["data"] == "amanhã"

    def test_non_object(self):
        assert prepare_movement_record("texto") is None
        assert prepare_movement_record(None) is None
