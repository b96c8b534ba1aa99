"""Sample-rate monitoring for orientation fusion."""

from .metrics import ChannelRateMonitor, ChannelRateStats

__all__ = ["ChannelRateMonitor", "ChannelRateStats"]
