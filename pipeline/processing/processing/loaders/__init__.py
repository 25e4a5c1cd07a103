"""jurisflow loaders: read process side-loads and plan usage from PostgreSQL."""

from processing.loaders.postgres_reader import PostgresProcessReader

__all__ = [
    "PostgresProcessReader",
]
