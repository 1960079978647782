"""Exception types raised by the ft-player pipeline."""

from __future__ import annotations


class FlaschenTaschenError(Exception):
    """Base class for every error raised by ft-player."""


class InvalidDimensions(FlaschenTaschenError, ValueError):
    """A raster was requested with a zero or negative width or height."""


class EmptyAnimation(FlaschenTaschenError):
    """An animation decoded to zero frames."""


class CompositionError(FlaschenTaschenError):
    """Decoding or compositing a frame failed; no partial animation is kept."""


class SourceUnavailable(FlaschenTaschenError):
    """The image location could not be fetched or read."""


class StorageError(FlaschenTaschenError):
    """Writing a raster buffer to disk failed."""
