"""
Loudness Normalization Module

Resolves the linear gain that brings a clip to a target loudness without
pushing its sample peak over a ceiling, applies it, and re-measures.

The peak ceiling always wins: when the loudness target would need more
gain than the ceiling allows, the clip lands under target instead of over
the ceiling. Silence is never boosted.

Usage:
    >>> result = normalize_to_target(audio, target_lufs=-16.0, peak_ceiling_db=-1.0)
    >>> print(result.applied_gain, result.after.lufs)
"""

import logging
import math
from dataclasses import dataclass

import numpy as np

from .loudness_meter import LoudnessStats, measure_audio
from .utils import PEAK_HEADROOM_DB, TARGET_LUFS, db_to_linear
from .wav_codec import DecodedAudio

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NormalizationResult:
    """
    Outcome of normalize_to_target.

    Attributes:
        updated: Gain-scaled audio (the input itself when nothing was applied)
        applied_gain: Linear gain that was applied
        before: Measurement of the input
        after: Measurement of the scaled audio
    """
    updated: DecodedAudio
    applied_gain: float
    before: LoudnessStats
    after: LoudnessStats


def recommended_gain(
    stats: LoudnessStats,
    target_lufs: float = TARGET_LUFS,
    peak_ceiling_db: float = PEAK_HEADROOM_DB,
) -> float:
    """
    Linear gain reconciling a loudness target with a peak ceiling.

    Args:
        stats: Measurement of the clip
        target_lufs: Target integrated loudness
        peak_ceiling_db: Maximum sample peak in dBFS after gain

    Returns:
        Linear gain; 1.0 when the clip has no finite loudness
    """
    if not math.isfinite(stats.lufs):
        return 1.0

    gain_for_target = db_to_linear(target_lufs - stats.lufs)
    if stats.peak > 0:
        peak_limit_gain = db_to_linear(peak_ceiling_db - stats.peak_db)
        return min(gain_for_target, peak_limit_gain)
    return gain_for_target


def apply_gain(audio: DecodedAudio, gain: float) -> DecodedAudio:
    """
    Scale every sample by a linear gain.

    No clipping or limiting; the input is left untouched.

    Args:
        audio: Source audio
        gain: Linear gain

    Returns:
        New DecodedAudio with freshly allocated channel arrays
    """
    channel_data = tuple(
        (np.asarray(channel, dtype=np.float64) * gain).astype(np.float32)
        for channel in audio.channel_data
    )
    return DecodedAudio(
        sample_rate=audio.sample_rate,
        channel_data=channel_data,
        bits_per_sample=audio.bits_per_sample,
    )


def normalize_to_target(
    audio: DecodedAudio,
    target_lufs: float = TARGET_LUFS,
    peak_ceiling_db: float = PEAK_HEADROOM_DB,
) -> NormalizationResult:
    """
    Measure, resolve gain, scale and re-measure.

    Args:
        audio: Source audio
        target_lufs: Target integrated loudness
        peak_ceiling_db: Maximum sample peak in dBFS after gain

    Returns:
        NormalizationResult. For silent or sub-gate input the audio is
        returned unchanged with applied_gain 1.0 and after == before.
    """
    before = measure_audio(audio)
    if not math.isfinite(before.lufs):
        logger.debug("No finite loudness, leaving clip unchanged")
        return NormalizationResult(updated=audio, applied_gain=1.0, before=before, after=before)

    gain = recommended_gain(before, target_lufs, peak_ceiling_db)
    updated = apply_gain(audio, gain)
    after = measure_audio(updated)

    logger.debug(
        f"Normalized {before.lufs:.2f} -> {after.lufs:.2f} LUFS "
        f"with gain {gain:.4f} (peak {after.peak_db:.2f} dBFS)"
    )
    return NormalizationResult(updated=updated, applied_gain=gain, before=before, after=after)
