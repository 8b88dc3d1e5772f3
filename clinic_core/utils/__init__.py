"""Utility functions."""

from clinic_core.utils.time import at_hour, day_bounds, ensure_aware, utc_now

__all__ = ["utc_now", "ensure_aware", "at_hour", "day_bounds"]
