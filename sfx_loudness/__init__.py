"""
SFX Loudness Engine

Decodes 16-bit PCM WAV clips, measures gated K-weighted loudness and
sample peak, and normalizes clips to a loudness target under a peak
ceiling.
"""

__version__ = "0.1.0"
__author__ = "SFX Loudness Team"

from .errors import (
    LoudnessEngineError,
    TruncatedInputError,
    MalformedContainerError,
    MissingChunkError,
    UnsupportedFormatError,
    InvalidFilterDesignError,
    ZeroChannelAudioError,
)
from .wav_codec import (
    DecodedAudio,
    decode_wav,
    encode_wav,
    encode_wav_to_base64,
    decode_base64_to_bytes,
    decode_wav_from_base64,
    make_audio,
)
from .k_weighting import (
    BiquadCoefficients,
    FilterState,
    PRE_FILTER_48K,
    RLB_FILTER_48K,
    bilinear_biquad,
    design_k_weighting_filters,
    apply_biquad,
    apply_k_weighting,
)
from .loudness_meter import (
    LoudnessStats,
    LoudnessMeter,
    block_mean_squares,
    integrated_loudness,
    mean_square_to_lufs,
    compute_loudness,
    measure_audio,
)
from .normalization import (
    NormalizationResult,
    recommended_gain,
    apply_gain,
    normalize_to_target,
)
from .config_loader import (
    ConfigLoader,
    ConfigLoadError,
    LoudnessTargets,
)
from .utils import (
    SAMPLE_RATE,
    TARGET_LUFS,
    LOUDNESS_TOLERANCE,
    PEAK_HEADROOM_DB,
    linear_to_db,
    db_to_linear,
)

__all__ = [
    # Errors
    "LoudnessEngineError",
    "TruncatedInputError",
    "MalformedContainerError",
    "MissingChunkError",
    "UnsupportedFormatError",
    "InvalidFilterDesignError",
    "ZeroChannelAudioError",
    # Codec
    "DecodedAudio",
    "decode_wav",
    "encode_wav",
    "encode_wav_to_base64",
    "decode_base64_to_bytes",
    "decode_wav_from_base64",
    "make_audio",
    # K-weighting
    "BiquadCoefficients",
    "FilterState",
    "PRE_FILTER_48K",
    "RLB_FILTER_48K",
    "bilinear_biquad",
    "design_k_weighting_filters",
    "apply_biquad",
    "apply_k_weighting",
    # Measurement
    "LoudnessStats",
    "LoudnessMeter",
    "block_mean_squares",
    "integrated_loudness",
    "mean_square_to_lufs",
    "compute_loudness",
    "measure_audio",
    # Normalization
    "NormalizationResult",
    "recommended_gain",
    "apply_gain",
    "normalize_to_target",
    # Configuration
    "ConfigLoader",
    "ConfigLoadError",
    "LoudnessTargets",
    # Utils
    "SAMPLE_RATE",
    "TARGET_LUFS",
    "LOUDNESS_TOLERANCE",
    "PEAK_HEADROOM_DB",
    "linear_to_db",
    "db_to_linear",
]
