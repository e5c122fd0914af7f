"""Utility functions and helpers for stablesnap."""

from stablesnap.utils.decorators import traced

__all__ = [
    "traced",
]
