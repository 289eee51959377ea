"""LRU-cached settings loaders.

Settings are loaded and validated once, then cached for the lifetime of the
process.

Testing:
    In tests, clear the cache to force reload:
    get_pagination_settings.cache_clear()

    Or override with custom values:
    settings = PaginationSettings(max_page_size=10)
"""

from __future__ import annotations

from functools import lru_cache

from .pagination import PaginationSettings


@lru_cache(maxsize=1)
def get_pagination_settings() -> PaginationSettings:
    """Get cached pagination settings.

    Returns:
        Validated and frozen PaginationSettings instance.
    """
    return PaginationSettings()


def clear_all_caches() -> None:
    """Clear every settings cache (used by tests)."""
    get_pagination_settings.cache_clear()
