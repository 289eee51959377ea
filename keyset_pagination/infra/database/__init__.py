"""SQLAlchemy-backed record store."""

from keyset_pagination.infra.database.store import SQLAlchemyStore, StatementBuilder, convert_value

__all__ = ["SQLAlchemyStore", "StatementBuilder", "convert_value"]
