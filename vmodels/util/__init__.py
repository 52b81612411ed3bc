"""
vmodels utilities
=================

Helpers shared by the persistence and query paths.

Functions:
- to_plain: deep unwrap of reactive structures into JSON-safe plain data
"""

from .plain import DROP, to_plain

__all__ = [
    "DROP",
    "to_plain",
]
