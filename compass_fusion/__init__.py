"""Orientation fusion for a compass from accelerometer, gyroscope and magnetometer samples."""

__version__ = "1.0.0"
