"""Base class for jurisflow Pydantic schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Pydantic base schema with common configuration."""

    model_config = ConfigDict(from_attributes=True)
