"""Replay of recorded sensor samples from CSV logs.

Log format, one sample per line::

    # comment lines are ignored
    timestamp_us,channel,x,y,z
    1000000,accelerometer,0.012,-0.034,9.807
    1020000,gyroscope,0.0001,0.0002,-0.0001
"""

import logging
from pathlib import Path
from typing import IO, Iterator, Optional, Union

from ..core.types import SensorChannel, SensorSample

logger = logging.getLogger(__name__)

CSV_HEADER = "timestamp_us,channel,x,y,z"


class SourceError(Exception):
    """Base exception for sample source errors."""
    pass


def parse_sample_line(line: str) -> SensorSample:
    """Parse one CSV data line.

    Raises:
        SourceError: If the line does not hold a valid sample.
    """
    fields = [f.strip() for f in line.split(",")]
    if len(fields) != 5:
        raise SourceError(f"Expected 5 fields, got {len(fields)}: {line!r}")

    try:
        channel = SensorChannel(fields[1].lower())
    except ValueError:
        raise SourceError(f"Unknown channel '{fields[1]}'") from None

    try:
        timestamp_us = int(fields[0])
        x, y, z = (float(v) for v in fields[2:])
    except ValueError as e:
        raise SourceError(f"Bad number in {line!r}: {e}") from e

    return SensorSample(channel, x, y, z, timestamp_us)


class ReplaySource:
    """Reads samples back from a CSV log in file order.

    Malformed lines are skipped and counted unless ``strict`` is set, in
    which case they raise SourceError.
    """

    def __init__(self, path: Union[str, Path], strict: bool = False):
        """Initialize replay source.

        Args:
            path: CSV log file.
            strict: Raise on malformed lines instead of skipping them.
        """
        self._path = Path(path)
        self._strict = strict
        self._file: Optional[IO[str]] = None
        self._line_no = 0
        self.samples_read = 0
        self.malformed_lines = 0

    def open(self) -> None:
        """Open the log file.

        Raises:
            SourceError: If the file cannot be opened.
        """
        if self._file is not None:
            return
        try:
            self._file = open(self._path, "r", encoding="utf-8")
        except OSError as e:
            raise SourceError(f"Failed to open {self._path}: {e}") from e
        self._line_no = 0
        logger.info("Replay opened: %s", self._path)

    def close(self) -> None:
        """Close the log file."""
        if self._file is not None:
            self._file.close()
            self._file = None
            logger.info("Replay closed: %d samples, %d malformed lines",
                        self.samples_read, self.malformed_lines)

    def read_sample(self) -> Optional[SensorSample]:
        """Read the next sample.

        Returns:
            SensorSample, or None at end of file.

        Raises:
            SourceError: If the source is not open, or on a malformed line
                in strict mode.
        """
        if self._file is None:
            raise SourceError("Replay source not open")

        for line in self._file:
            self._line_no += 1
            text = line.strip()
            if not text or text.startswith("#") or text.lower() == CSV_HEADER:
                continue
            try:
                sample = parse_sample_line(text)
            except SourceError as e:
                if self._strict:
                    raise SourceError(f"{self._path}:{self._line_no}: {e}") from e
                self.malformed_lines += 1
                logger.warning("Skipping %s:%d: %s", self._path, self._line_no, e)
                continue
            self.samples_read += 1
            return sample

        return None

    def __iter__(self) -> Iterator[SensorSample]:
        while True:
            sample = self.read_sample()
            if sample is None:
                return
            yield sample

    @property
    def is_open(self) -> bool:
        """Check if the log file is open."""
        return self._file is not None

    def __enter__(self) -> "ReplaySource":
        """Context manager entry."""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
