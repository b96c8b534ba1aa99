"""Exceptions raised by the orientation-fusion engine."""


class FusionError(Exception):
    """Base exception for orientation-fusion errors."""
    pass


class DegenerateInputError(FusionError, ValueError):
    """Input cannot produce a finite rotation.

    Raised for zero-length or parallel gravity/magnetic vectors and for
    matrices whose determinant is near zero or not finite.
    """
    pass


class ConfigurationError(FusionError, ValueError):
    """Invalid configuration, rejected before any sample is processed."""
    pass
