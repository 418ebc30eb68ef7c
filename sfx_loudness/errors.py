"""
Exception types raised by the loudness engine.

Every decode, encode and filter-design failure surfaces as one of these,
synchronously, to the immediate caller. Degenerate but valid input (silence,
clips shorter than one analysis block) is not an error.
"""


class LoudnessEngineError(ValueError):
    """Base class for all loudness engine failures."""
    pass


class TruncatedInputError(LoudnessEngineError):
    """Payload is too short to hold a header, or a chunk runs past its end."""
    pass


class MalformedContainerError(LoudnessEngineError):
    """Missing or incorrect RIFF/WAVE tags, or an unreadable chunk."""
    pass


class MissingChunkError(LoudnessEngineError):
    """The 'fmt ' or 'data' chunk is absent."""
    pass


class UnsupportedFormatError(LoudnessEngineError):
    """Non-PCM encoding, a bit depth other than 16, or mismatched channels."""
    pass


class InvalidFilterDesignError(LoudnessEngineError):
    """Biquad derivation produced a zero normalizing coefficient."""
    pass


class ZeroChannelAudioError(LoudnessEngineError):
    """Encoding was requested for audio with no channels."""
    pass
