"""
accountsync Utilities

- date_utils: UTC timestamps and epoch conversions
"""

from .date_utils import from_epoch_ms, to_epoch_ms, utc_now

__all__ = ["utc_now", "from_epoch_ms", "to_epoch_ms"]
