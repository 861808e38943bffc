"""Booking gate errors mapped onto HTTP responses."""
from .exceptions import FeatureGateError

__all__ = ["FeatureGateError"]
