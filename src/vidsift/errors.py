"""Exception types raised inside the detection engine."""


class VidsiftError(Exception):
    """Base class for all vidsift errors."""


class DecoderError(VidsiftError):
    """The external decoder could not complete a request."""


class DecoderNotFound(DecoderError):
    """The decoder executable is not installed or not on PATH."""


class DecoderTimeout(DecoderError):
    """A decoder call exceeded its time budget and was killed."""


class ProbeError(VidsiftError):
    """Duration metadata could not be obtained for a file."""


class ProbeTimeout(ProbeError, DecoderTimeout):
    """The metadata query timed out."""


class DecodeFailure(VidsiftError):
    """The decoder produced no usable frame or audio output."""


class CacheCorrupt(VidsiftError):
    """The persisted feature store could not be read or parsed."""


class HashLengthMismatch(VidsiftError, ValueError):
    """Two hashes of different length were compared."""
