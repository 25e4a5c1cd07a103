"""Movement (docket entry) and Attachment schemas."""

from __future__ import annotations

from typing import Any, Optional

from models.base import BaseSchema


class Attachment(BaseSchema):
    """A document filed alongside a movement.

    ``movement_id`` comes from the crawler when it knows the docket entry;
    otherwise the association is inferred from timestamps.
    """

    id: str
    movement_id: Optional[str] = None
    attachment_id: Optional[str] = None
    name: Optional[str] = None
    kind: Optional[str] = None
    registered_at: Optional[str] = None
    movement_timestamp: Optional[str] = None
    venue_instance: Optional[str] = None
    crawl_id: Optional[str] = None


class Movement(BaseSchema):
    id: str
    timestamp: Optional[str] = None
    kind: Optional[str] = None
    kind_detail: Optional[str] = None
    publication_kind: Optional[str] = None
    content: Optional[str] = None
    category_text: Optional[str] = None
    predicted_classification: Any = None
    source: Any = None
    confidential: Optional[bool] = None
    crawl_id: Optional[str] = None
    registered_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    case_number: Optional[str] = None
    instance: Optional[str] = None
    attachments: list[Attachment] = []
