"""Utility helpers for the card battle ledger."""

from .addresses import ZERO_ADDRESS, is_zero_address, normalize_address

__all__ = ["ZERO_ADDRESS", "is_zero_address", "normalize_address"]
