"""Test fixtures for pytest.

This module re-exports commonly used test fixtures for easier importing.
"""

from .models import Base, User

__all__ = ["Base", "User"]
