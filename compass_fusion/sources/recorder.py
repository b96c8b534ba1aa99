"""CSV recorder for sensor samples, readable by ReplaySource."""

import logging
from datetime import datetime
from pathlib import Path
from typing import IO, Optional, Union

from ..core.types import SensorSample
from .replay import CSV_HEADER, SourceError

logger = logging.getLogger(__name__)


class SampleRecorder:
    """Writes samples to a CSV log with a dated comment header."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)
        self._file: Optional[IO[str]] = None
        self.sample_count = 0

    def open(self) -> None:
        """Create the log file and write its header.

        Raises:
            SourceError: If the file cannot be created.
        """
        if self._file is not None:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self._path, "w", encoding="utf-8")
        except OSError as e:
            raise SourceError(f"Failed to create {self._path}: {e}") from e

        self._file.write("# Sensor sample log\n")
        self._file.write(f"# Date: {datetime.now().isoformat()}\n")
        self._file.write(CSV_HEADER + "\n")
        logger.info("Recording to %s", self._path)

    def write(self, sample: SensorSample) -> None:
        """Append one sample.

        Raises:
            SourceError: If the recorder is not open.
        """
        if self._file is None:
            raise SourceError("Recorder not open")
        self._file.write(
            f"{sample.timestamp_us},{sample.channel.value},"
            f"{sample.x:.6f},{sample.y:.6f},{sample.z:.6f}\n"
        )
        self.sample_count += 1

    def close(self) -> None:
        """Flush and close the log file."""
        if self._file is not None:
            self._file.close()
            self._file = None
            logger.info("Recorded %d samples to %s", self.sample_count, self._path)

    @property
    def path(self) -> Path:
        return self._path

    def __enter__(self) -> "SampleRecorder":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
