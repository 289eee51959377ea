"""Pagination settings.

Environment variables use PAGINATION_ prefix.
Example: PAGINATION_DEFAULT_PAGE_SIZE=25, PAGINATION_MAX_PAGE_SIZE=100
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PaginationSettings(BaseSettings):
    """Pagination configuration settings.

    Attributes:
        default_page_size: Page size the HTTP dependency uses when the client
            sends neither ``first`` nor ``last``.
        max_page_size: Upper bound for ``first``/``last``. None disables it.
        urlsafe_tokens: Encode cursor tokens with the URL-safe base64 alphabet.

    Example:
        settings = PaginationSettings(max_page_size=100)
        page = await paginate(store, "users", args, settings=settings)
    """

    default_page_size: int = Field(
        default=50,
        ge=1,
        le=10000,
        description="Default page size when none is requested",
    )
    max_page_size: int | None = Field(
        default=None,
        ge=1,
        description="Maximum allowed page size (None for unbounded)",
    )
    urlsafe_tokens: bool = Field(
        default=False,
        description="Use URL-safe base64 for cursor tokens",
    )

    model_config = SettingsConfigDict(
        env_prefix="PAGINATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
    )
