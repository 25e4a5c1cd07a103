"""Base row parser: abstract class and shared result structures."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, Iterator, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def iter_rows(value: Any) -> Iterator[Mapping[str, Any]]:
    """Yield mapping rows from a list, a JSON-encoded list/object, or a
    ``{"rows": [...]}`` wrapper (raw driver results).

    Non-mapping items are skipped; malformed JSON yields nothing.
    """
    if value is None:
        return

    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("utf-8", errors="replace")

    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError as exc:
            logger.warning("invalid JSON row collection, skipping: %s", exc)
            return

    if isinstance(value, Mapping):
        rows = value.get("rows")
        value = rows if isinstance(rows, list) else [value]

    if not isinstance(value, Iterable):
        return

    for item in value:
        if isinstance(item, Mapping):
            yield item


# -------------------------------------------------------------------- #
# Error / result data-classes                                           #
# -------------------------------------------------------------------- #


@dataclass
class ParseError:
    """A single row that could not be parsed."""

    record: Mapping[str, Any]
    error: str
    source: str


@dataclass
class ParseResult(Generic[T]):
    """Parsed items in input order, plus the rows that failed."""

    items: list[T] = field(default_factory=list)
    errors: list[ParseError] = field(default_factory=list)
    skipped: int = 0

    def add_error(self, record: Mapping[str, Any], error: str, source: str) -> None:
        self.errors.append(ParseError(record=record, error=error, source=source))


class BaseRowParser(ABC, Generic[T]):
    """Abstract base for parsers of one upstream row shape.

    Subclasses implement :meth:`build` for a single row.  :meth:`parse`
    drives it over a collection and is resilient: per-row errors are logged
    and collected, and the remaining rows are still processed.
    """

    source_name: str  # e.g. "movements", "crawler"

    @abstractmethod
    def build(self, row: Mapping[str, Any]) -> Optional[T]:
        """Build one item from a raw row, or ``None`` to skip the row."""

    def parse(self, rows: Any) -> ParseResult[T]:
        result: ParseResult[T] = ParseResult()

        for row in iter_rows(rows):
            try:
                item = self.build(row)
            except Exception as exc:
                logger.warning("%s: error parsing row: %s", self.source_name, exc)
                result.add_error(row, str(exc), self.source_name)
                continue

            if item is None:
                logger.debug("%s: row without usable data, skipping", self.source_name)
                result.skipped += 1
                continue

            result.items.append(item)

        logger.info(
            "%s: %d parsed, %d skipped, %d errors",
            self.source_name,
            len(result.items),
            result.skipped,
            len(result.errors),
        )
        return result
