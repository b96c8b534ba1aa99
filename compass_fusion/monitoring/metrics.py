"""Per-channel sample-rate monitoring."""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Optional
import numpy as np

from ..core.config import Config
from ..core.types import SensorChannel, SensorSample

logger = logging.getLogger(__name__)


@dataclass
class ChannelRateStats:
    """Aggregated timing statistics for one sensor channel."""
    channel: SensorChannel
    sample_count: int
    mean_dt_ms: float
    std_dt_ms: float
    max_dt_ms: float
    min_dt_ms: float
    effective_rate_hz: float
    expected_rate_hz: float
    dropped_samples: int

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "channel": self.channel.value,
            "samples": self.sample_count,
            "mean_dt_ms": self.mean_dt_ms,
            "std_dt_ms": self.std_dt_ms,
            "rate_hz": self.effective_rate_hz,
            "expected_hz": self.expected_rate_hz,
            "dropped": self.dropped_samples,
        }


class ChannelRateMonitor:
    """Tracks the arrival rate of each sensor channel.

    Each channel has its own timer, so gaps are measured per channel from
    sample timestamps. A gap spanning several expected periods counts the
    missing periods as dropped samples.
    """

    def __init__(self, config: Config):
        """Initialize rate monitor.

        Args:
            config: System configuration with expected rates and window.
        """
        self._mon_cfg = config.monitoring
        sensor = config.sensor
        self._expected_hz: Dict[SensorChannel, float] = {
            SensorChannel.ACCELEROMETER: sensor.accelerometer_rate_hz,
            SensorChannel.GYROSCOPE: sensor.gyroscope_rate_hz,
            SensorChannel.MAGNETOMETER: sensor.magnetometer_rate_hz,
        }

        window = self._mon_cfg.window_size
        self._dt_history: Dict[SensorChannel, Deque[float]] = {
            ch: deque(maxlen=window) for ch in SensorChannel
        }
        self._counts: Dict[SensorChannel, int] = {ch: 0 for ch in SensorChannel}
        self._dropped: Dict[SensorChannel, int] = {ch: 0 for ch in SensorChannel}
        self._last_timestamp: Dict[SensorChannel, int] = {}
        self._last_log_us: Optional[int] = None

    def record(self, sample: SensorSample) -> float:
        """Record a sample arrival.

        Args:
            sample: Accepted sensor sample.

        Returns:
            Time since the previous sample of the same channel in ms
            (0 for the first one).
        """
        channel = sample.channel
        self._counts[channel] += 1

        dt_ms = 0.0
        last = self._last_timestamp.get(channel)
        if last is not None:
            dt_ms = (sample.timestamp_us - last) / 1000.0
            self._dt_history[channel].append(dt_ms)

            target_dt_ms = 1000.0 / self._expected_hz[channel]
            expected_samples = int(dt_ms / target_dt_ms + 0.5)
            if expected_samples > 1:
                self._dropped[channel] += expected_samples - 1
                logger.debug(
                    "%s gap: dt=%.2f ms (target=%.2f ms)",
                    channel.value, dt_ms, target_dt_ms
                )

        self._last_timestamp[channel] = sample.timestamp_us
        self._maybe_log_stats(sample.timestamp_us)

        return dt_ms

    def _maybe_log_stats(self, timestamp_us: int) -> None:
        """Log statistics periodically, measured in sample time."""
        if self._last_log_us is None:
            self._last_log_us = timestamp_us
            return

        interval_us = self._mon_cfg.log_interval_s * 1e6
        if timestamp_us - self._last_log_us >= interval_us:
            for channel in SensorChannel:
                stats = self.get_stats(channel)
                if stats.sample_count == 0:
                    continue
                logger.info(
                    "Rate %s: %.1f Hz (expected %.1f), dt=%.2f+/-%.2f ms, dropped=%d",
                    channel.value,
                    stats.effective_rate_hz,
                    stats.expected_rate_hz,
                    stats.mean_dt_ms,
                    stats.std_dt_ms,
                    stats.dropped_samples,
                )
            self._last_log_us = timestamp_us

    def get_stats(self, channel: SensorChannel) -> ChannelRateStats:
        """Get aggregated statistics for one channel."""
        history = self._dt_history[channel]
        if history:
            dt = np.array(history)
            mean_dt = float(np.mean(dt))
            std_dt = float(np.std(dt))
            max_dt = float(np.max(dt))
            min_dt = float(np.min(dt))
        else:
            mean_dt = std_dt = max_dt = min_dt = 0.0

        return ChannelRateStats(
            channel=channel,
            sample_count=self._counts[channel],
            mean_dt_ms=mean_dt,
            std_dt_ms=std_dt,
            max_dt_ms=max_dt,
            min_dt_ms=min_dt,
            effective_rate_hz=1000.0 / mean_dt if mean_dt > 0 else 0.0,
            expected_rate_hz=self._expected_hz[channel],
            dropped_samples=self._dropped[channel],
        )

    def summary(self) -> Dict[str, dict]:
        """Statistics of every channel that has delivered samples."""
        return {
            ch.value: self.get_stats(ch).to_dict()
            for ch in SensorChannel
            if self._counts[ch] > 0
        }

    def reset(self) -> None:
        """Reset all statistics."""
        for channel in SensorChannel:
            self._dt_history[channel].clear()
            self._counts[channel] = 0
            self._dropped[channel] = 0
        self._last_timestamp.clear()
        self._last_log_us = None
