"""Shared configuration for API schemas."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class APIModel(BaseModel):
    """Base model exchanging camelCase JSON while using snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
