"""Data quality gate for parsed movement and attachment sets."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from typing import Generic, Optional, Sequence, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class RejectedRecord:
    """A record that failed validation, with the reason for rejection."""

    record: BaseModel
    reason: str


@dataclass
class ValidationStats:
    """Summary statistics from a validation pass."""

    total_input: int = 0
    valid_count: int = 0
    duplicate_count: int = 0


@dataclass
class ValidationResult(Generic[ModelT]):
    """Result of validating a batch of records."""

    valid: list[ModelT] = field(default_factory=list)
    rejected: list[RejectedRecord] = field(default_factory=list)
    stats: ValidationStats = field(default_factory=ValidationStats)


class DataQualityValidator:
    """De-duplicates parsed records before aggregation.

    The row parsers already drop rows without an id; this layer rejects
    repeated ids, keeping the first occurrence in store order.
    """

    def validate_batch(
        self,
        records: Sequence[ModelT],
        dedup_key: Optional[str] = "id",
    ) -> ValidationResult[ModelT]:
        """Validate a batch of Pydantic models.

        Args:
            records: Pydantic model instances, in store order.
            dedup_key: Field used for de-duplication.  If ``None`` (or the
                       field is empty on a record), the full model JSON hash
                       is used instead.

        Returns:
            ValidationResult with valid records, rejected records, and stats.
        """
        stats = ValidationStats(total_input=len(records))
        valid: list[ModelT] = []
        rejected: list[RejectedRecord] = []
        seen: set[str] = set()

        for record in records:
            fingerprint = self._dedup_fingerprint(record, dedup_key)
            if fingerprint in seen:
                stats.duplicate_count += 1
                rejected.append(RejectedRecord(record=record, reason="duplicate"))
                logger.warning(
                    "Duplicate %s rejected: %s", record.__class__.__name__, fingerprint
                )
                continue
            seen.add(fingerprint)
            valid.append(record)

        stats.valid_count = len(valid)

        if rejected:
            logger.info(
                "Validation complete: %d input, %d valid, %d duplicates",
                stats.total_input,
                stats.valid_count,
                stats.duplicate_count,
            )

        return ValidationResult(valid=valid, rejected=rejected, stats=stats)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _dedup_fingerprint(record: BaseModel, dedup_key: Optional[str]) -> str:
        """``<model_class>:<field_value>``, or a SHA-256 of the model JSON."""
        if dedup_key is not None:
            value = getattr(record, dedup_key, None)
            if value is not None and value != "":
                return f"{record.__class__.__name__}:{value}"

        json_bytes = record.model_dump_json().encode("utf-8")
        return hashlib.sha256(json_bytes).hexdigest()
