"""Utility helpers for template cache."""

from .coercion import TRUTHY_LITERALS, parse_size, truthy

__all__ = [
    "TRUTHY_LITERALS",
    "parse_size",
    "truthy",
]
