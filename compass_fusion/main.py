#!/usr/bin/env python3
"""Main entry point for compass orientation fusion.

Feeds samples from a recorded log or the built-in simulator through the
orientation estimator and writes JSON-formatted orientation snapshots to
stdout. Logs go to stderr.
"""

import argparse
import json
import logging
import signal
import sys
from typing import Iterable, List, Optional

from .core import Config, ConfigurationError, SensorSample, load_config, parse_filter_option
from .fusion import OrientationEstimator
from .sources import ReplaySource, SampleRecorder, SimulatedSensors, SourceError

logger = logging.getLogger(__name__)

SHUTDOWN_REQUESTED = False


def signal_handler(signum, frame):
    """Handle shutdown signals gracefully."""
    global SHUTDOWN_REQUESTED
    SHUTDOWN_REQUESTED = True
    logger.info("Shutdown requested")


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application.

    Args:
        verbose: If True, set DEBUG level; otherwise INFO.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def run_fusion_loop(
    config: Config,
    samples: Iterable[SensorSample],
    recorder: Optional[SampleRecorder] = None,
) -> int:
    """Run samples through the estimator, emitting snapshots.

    Snapshots are emitted at ``display.emit_rate_hz`` measured in sample
    time, so a replay produces the same output at any speed.

    Args:
        config: System configuration.
        samples: Time-ordered samples from any channel.
        recorder: If given, every sample is also written to it.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    estimator = OrientationEstimator(config)
    emit_interval_us = 1e6 / config.display.emit_rate_hz
    last_emit_us: Optional[int] = None
    emitted = 0

    try:
        for sample in samples:
            if SHUTDOWN_REQUESTED:
                break

            if recorder is not None:
                recorder.write(sample)

            snapshot = estimator.update(sample)
            if snapshot is None:
                continue

            if last_emit_us is None or sample.timestamp_us - last_emit_us >= emit_interval_us:
                print(json.dumps(snapshot.to_dict()), flush=True)
                last_emit_us = sample.timestamp_us
                emitted += 1

    except SourceError as e:
        logger.error("Source error: %s", e)
        return 1

    except KeyboardInterrupt:
        logger.info("Interrupted by user")

    finally:
        stats = estimator.stats

        logger.info("Final statistics:")
        logger.info("  Samples: %d total, %d rejected (%.1f%%)",
                    stats.total_samples, stats.rejected_samples,
                    stats.rejection_rate * 100)
        logger.info("  Estimator updates: %d", stats.driver_updates)
        logger.info("  Degenerate updates: %d", stats.degenerate_updates)
        logger.info("  Snapshots emitted: %d", emitted)
        logger.info("  Final heading: %d deg", estimator.heading)
        if estimator.monitor is not None:
            for channel, channel_stats in estimator.monitor.summary().items():
                logger.info("  %s: %.1f Hz, dropped=%d",
                            channel, channel_stats["rate_hz"], channel_stats["dropped"])

    return 0


def build_parser() -> argparse.ArgumentParser:
    """Create the command-line parser."""
    parser = argparse.ArgumentParser(
        description="Compass orientation fusion from accelerometer, gyroscope and magnetometer"
    )
    parser.add_argument(
        "-c", "--config",
        type=str,
        default=None,
        help="Path to configuration file",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "-f", "--filter",
        type=str,
        default=None,
        help="Filter code: m, k, a/0, g/1, c, or a complementary weight in [0, 1]",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--replay",
        type=str,
        metavar="FILE",
        help="Replay samples from a CSV log",
    )
    source.add_argument(
        "--simulate",
        type=float,
        metavar="SECONDS",
        help="Run the sensor simulator for the given duration",
    )
    parser.add_argument(
        "--yaw-rate",
        type=float,
        default=10.0,
        help="Simulated turn rate in deg/s",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Simulator random seed",
    )
    parser.add_argument(
        "--record",
        type=str,
        metavar="FILE",
        default=None,
        help="Record every input sample to a CSV log",
    )
    parser.add_argument(
        "--screen-orientation",
        type=float,
        default=None,
        help="Screen orientation angle in degrees",
    )
    return parser


def apply_overrides(config: Config, args: argparse.Namespace) -> None:
    """Apply command-line overrides to the loaded configuration.

    Raises:
        ConfigurationError: If the filter code is invalid.
    """
    if args.filter is not None:
        mode, weight = parse_filter_option(args.filter)
        config.fusion.mode = mode
        config.fusion.weight = weight
    if args.screen_orientation is not None:
        config.display.screen_orientation_deg = args.screen_orientation


def main(argv: Optional[List[str]] = None) -> int:
    """Application entry point.

    Returns:
        Exit code.
    """
    args = build_parser().parse_args(argv)

    setup_logging(verbose=args.verbose)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        config = load_config(args.config)
        apply_overrides(config, args)
    except FileNotFoundError as e:
        logger.error("Configuration error: %s", e)
        return 1
    except ConfigurationError as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    recorder = SampleRecorder(args.record) if args.record else None

    try:
        if recorder is not None:
            recorder.open()

        if args.replay:
            with ReplaySource(args.replay) as replay:
                return run_fusion_loop(config, replay, recorder)

        simulator = SimulatedSensors(config, yaw_rate_dps=args.yaw_rate, seed=args.seed)
        return run_fusion_loop(config, simulator.samples(args.simulate), recorder)

    except SourceError as e:
        logger.error("Source error: %s", e)
        return 1

    finally:
        if recorder is not None:
            recorder.close()


if __name__ == "__main__":
    sys.exit(main())
