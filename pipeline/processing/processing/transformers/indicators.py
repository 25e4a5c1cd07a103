"""Legal indicators from the crawler's trigger-data blob.

The blob is the ``trigger_dados_processo`` row of a case, or the payload the
case-tracking API returned for it.  Field names drifted over time (English
and Portuguese, camelCase and snake_case, legacy column names), so every
logical field is looked up through an ordered list of alternate keys.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Optional

from models.process import ProcessIndicators

from processing.normalize import (
    as_plain_object,
    normalize_mixed_collection,
    normalize_string,
    normalize_timestamp,
    parse_boolean_flag,
    parse_json_column,
    to_array_or_null,
)

logger = logging.getLogger(__name__)

_MISSING = object()

INDICATOR_CONTAINER_KEYS = ("indicadores", "indicators")

TRIBUNAL_ACRONYM_KEYS = (
    "tribunal_acronym",
    "tribunal_sigla",
    "tribunalAcronym",
    "tribunalSigla",
    "sigla_tribunal",
)
TRIBUNAL_NAME_KEYS = ("tribunal_name", "tribunal_nome", "tribunalName", "nome_tribunal")
TRIBUNAL_DESCRIPTION_KEYS = ("tribunal", "tribunal_descricao", "nome_tribunal")
JUSTICE_DESCRIPTION_KEYS = (
    "justice_description",
    "justica_descricao",
    "descricao_justica",
    "justica",
)
COUNTY_KEYS = ("county", "comarca", "localidade", "cidade")
AMOUNT_KEYS = ("amount", "valor_causa", "valor_da_causa", "valor")
DISTRIBUTION_DATE_KEYS = ("distribution_date", "data_distribuicao")
SUBJECT_KEYS = ("subjects", "assuntos", "assunto")
CLASSIFICATION_KEYS = ("classifications", "classificacoes", "classificacao_principal_nome")
TAG_KEYS = ("tags",)
PRECATORY_KEYS = ("precatory", "precatorio")
FREE_JUSTICE_KEYS = ("free_justice", "justica_gratuita", "gratuidade_justica")
SECRECY_LEVEL_KEYS = ("secrecy_level", "nivel_sigilo", "nivel_de_sigilo")
SECRECY_KEYS = ("secrecy", "sigilo")


def _pick(source: Optional[Mapping[str, Any]], keys: tuple[str, ...]) -> Any:
    """Value of the first key present in *source*, even when it is ``None``."""
    if source is None:
        return _MISSING
    for key in keys:
        if key in source:
            return source[key]
    return _MISSING


class TriggerData:
    """Alternate-key lookup over a trigger blob and its nested indicators.

    Presence, not truthiness, decides: the first key of the list that exists
    on the root object wins even if its value is ``None``.  Only when none of
    the keys exists on the root is the same list tried on the nested
    ``indicadores`` object.
    """

    def __init__(self, blob: Any) -> None:
        self.root = as_plain_object(parse_json_column(blob))
        nested = _pick(self.root, INDICATOR_CONTAINER_KEYS)
        self.indicators = (
            None if nested is _MISSING else as_plain_object(parse_json_column(nested))
        )

    @property
    def is_empty(self) -> bool:
        return self.root is None

    def lookup(self, keys: tuple[str, ...]) -> Any:
        value = _pick(self.root, keys)
        if value is _MISSING:
            value = _pick(self.indicators, keys)
        return None if value is _MISSING else value

    # ------------------------------------------------------------------ #
    # Typed accessors                                                      #
    # ------------------------------------------------------------------ #

    def text(self, keys: tuple[str, ...]) -> Optional[str]:
        return _scalar_text(self.lookup(keys))

    def json_text(self, keys: tuple[str, ...]) -> Optional[str]:
        return _scalar_text(parse_json_column(self.lookup(keys)))

    def timestamp(self, keys: tuple[str, ...]) -> Optional[str]:
        return normalize_timestamp(self.lookup(keys))

    def flag(self, keys: tuple[str, ...]) -> bool | str | None:
        """Boolean when recognizable, otherwise the textual value."""
        parsed = parse_json_column(self.lookup(keys))
        as_bool = parse_boolean_flag(parsed)
        if as_bool is not None:
            return as_bool
        if isinstance(parsed, str):
            return normalize_string(parsed)
        return None

    def collection(self, keys: tuple[str, ...]) -> Optional[list[Any]]:
        parsed = parse_json_column(self.lookup(keys))
        normalized = normalize_mixed_collection(to_array_or_null(parsed))
        if normalized is None and isinstance(parsed, Mapping):
            return [dict(parsed)]
        return normalized


def _scalar_text(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return "true" if value else "false"
    return normalize_string(value)


def _county(raw: Any) -> str | dict[str, Any] | None:
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, str):
        decoded = parse_json_column(raw)
        if isinstance(decoded, Mapping):
            return dict(decoded)
        return normalize_string(raw)
    return None


def _amount(raw: Any) -> int | float | Decimal | str | None:
    # Numbers stay numbers and text stays text; "1.500,00" is not ours to parse.
    if isinstance(raw, bool):
        return None
    if isinstance(raw, Decimal):
        return raw if raw.is_finite() else None
    if isinstance(raw, (int, float)):
        return raw if math.isfinite(raw) else None
    if isinstance(raw, str):
        return raw.strip() or None
    return None


def _tags(raw: Any) -> list[Any] | dict[str, Any] | str | None:
    parsed = parse_json_column(raw)
    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, Mapping):
        return dict(parsed)
    if isinstance(parsed, str):
        return normalize_string(parsed)
    return None


def extract_indicators(
    trigger_blob: Any,
    fallback_distribution_date: Any = None,
) -> ProcessIndicators:
    """Derive the legal indicators of a process from its trigger blob.

    Args:
        trigger_blob: JSON object, JSON-encoded string/bytes, or ``None``.
        fallback_distribution_date: Used when the blob has no distribution
            date (usually the process row's own ``data_distribuicao``).

    Returns:
        :class:`ProcessIndicators`.  A blob that is missing or is not a JSON
        object yields all-``None`` indicators (except the fallback date).
    """
    data = TriggerData(trigger_blob)

    if data.is_empty:
        if trigger_blob not in (None, ""):
            logger.debug("indicators: trigger blob is not a JSON object, ignoring")
        return ProcessIndicators(
            distribution_date=normalize_timestamp(fallback_distribution_date),
        )

    tribunal_acronym = data.text(TRIBUNAL_ACRONYM_KEYS)
    tribunal_name = data.text(TRIBUNAL_NAME_KEYS)
    tribunal_description = data.text(TRIBUNAL_DESCRIPTION_KEYS) or tribunal_name

    return ProcessIndicators(
        tribunal_acronym=tribunal_acronym,
        tribunal=tribunal_description or tribunal_acronym,
        tribunal_name=tribunal_name or tribunal_description or tribunal_acronym,
        justice_description=data.text(JUSTICE_DESCRIPTION_KEYS),
        county=_county(data.lookup(COUNTY_KEYS)),
        amount=_amount(data.lookup(AMOUNT_KEYS)),
        distribution_date=(
            data.timestamp(DISTRIBUTION_DATE_KEYS)
            or normalize_timestamp(fallback_distribution_date)
        ),
        subjects=data.collection(SUBJECT_KEYS),
        classifications=data.collection(CLASSIFICATION_KEYS),
        tags=_tags(data.lookup(TAG_KEYS)),
        precatory=data.flag(PRECATORY_KEYS),
        free_justice=data.flag(FREE_JUSTICE_KEYS),
        secrecy_level=data.json_text(SECRECY_LEVEL_KEYS) or data.text(SECRECY_KEYS),
    )
