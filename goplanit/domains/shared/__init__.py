"""Shared domain components - Generic patterns and utilities."""

from goplanit.domains.shared.repository import GenericRepository

__all__ = ["GenericRepository"]
