"""Record store implementations that need no database."""

from keyset_pagination.infra.stores.memory import InMemoryStore, matches, sort_rows

__all__ = ["InMemoryStore", "matches", "sort_rows"]
