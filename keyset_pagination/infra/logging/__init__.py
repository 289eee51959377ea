"""Logging infrastructure.

Pagination uses standard library logging. Debug records go through a lazy
adapter so they cost nothing while DEBUG is disabled:

    from keyset_pagination.infra.logging import get_lazy_logger

    lazy_logger = get_lazy_logger(__name__)
    lazy_logger.debug(lambda: f"Expensive: {describe(page)}")
"""

from keyset_pagination.infra.logging.lazy import LazyLoggerAdapter, get_lazy_logger

__all__ = ["LazyLoggerAdapter", "get_lazy_logger"]
