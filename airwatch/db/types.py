"""Custom database column types for cross-database compatibility."""
from __future__ import annotations

import json
from typing import Any, Iterable

from sqlalchemy.dialects.postgresql import ARRAY as PG_ARRAY
from sqlalchemy.types import Text, TypeDecorator


def _clean(values: Iterable[Any]) -> list[str]:
    """Drop blanks and surrounding whitespace from comma-split form input."""

    return [str(item).strip() for item in values if item is not None and str(item).strip()]


class StringList(TypeDecorator):
    """Persist a list of strings as a native array on PostgreSQL and JSON text elsewhere."""

    impl = Text
    cache_ok = True

    def load_dialect_impl(self, dialect):  # type: ignore[override]
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PG_ARRAY(Text))
        return dialect.type_descriptor(Text())

    def process_bind_param(self, value: Any, dialect):  # type: ignore[override]
        if value is None:
            return None
        cleaned = _clean(value)
        if dialect.name == "postgresql":
            return cleaned
        return json.dumps(cleaned)

    def process_result_value(self, value: Any, dialect):  # type: ignore[override]
        if value is None:
            return []
        if dialect.name == "postgresql":
            return list(value)
        return json.loads(value)
