from typing import Optional


class TorchVOError(Exception):
    """Base class for all errors raised by torchvo."""


class ConfigurationError(TorchVOError, ValueError):
    """Invalid or incomplete configuration."""


class MisconfiguredTransformError(ConfigurationError):
    """
    The base-to-camera transform was used before being set.

    Falling back to an identity transform would silently corrupt every
    subsequent pose, so estimation refuses to run instead.
    """


class EstimationFailure(TorchVOError):
    """The motion estimation algorithm could not produce a valid motion."""

    def __init__(self, message: str, timestamp: Optional[float] = None):
        super().__init__(message)
        self.timestamp = timestamp
