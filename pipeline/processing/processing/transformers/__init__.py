"""Transformers: turn loosely typed upstream rows into canonical schemas."""

from processing.transformers.base import (
    BaseRowParser,
    ParseError,
    ParseResult,
    iter_rows,
)
from processing.transformers.indicators import TriggerData, extract_indicators
from processing.transformers.movements import (
    AssociationResult,
    AssociationStrategy,
    AttachmentParser,
    DirectIdMatch,
    ExactTimestampMatch,
    MovementAttachmentAssociator,
    MovementParser,
    SameDayMatch,
    merge_movements_with_attachments,
    prepare_movement_record,
)
from processing.transformers.participants import (
    CrawlerParticipantBuilder,
    OpportunityParticipantBuilder,
    ParticipantMerger,
    merge_participants,
    normalize_participant_side,
)
from processing.transformers.process import (
    build_process_aggregate,
    parse_responsible_lawyers,
)

__all__ = [
    # Base
    "BaseRowParser",
    "ParseError",
    "ParseResult",
    "iter_rows",
    # Indicators
    "TriggerData",
    "extract_indicators",
    # Movements
    "AssociationResult",
    "AssociationStrategy",
    "AttachmentParser",
    "DirectIdMatch",
    "ExactTimestampMatch",
    "MovementAttachmentAssociator",
    "MovementParser",
    "SameDayMatch",
    "merge_movements_with_attachments",
    "prepare_movement_record",
    # Participants
    "CrawlerParticipantBuilder",
    "OpportunityParticipantBuilder",
    "ParticipantMerger",
    "merge_participants",
    "normalize_participant_side",
    # Process
    "build_process_aggregate",
    "parse_responsible_lawyers",
]
