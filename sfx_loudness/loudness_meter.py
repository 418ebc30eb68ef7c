"""
Loudness Meter Module

Gated integrated loudness (ITU-R BS.1770 style) plus RMS and sample peak
for whole, already-decoded clips.

Process:
1. K-weight every channel (see k_weighting)
2. Slice into 400 ms blocks with a 100 ms step
3. Mean square per block across all channels
4. Absolute gate at -70 LUFS
5. Relative gate 10 LU below the absolute-gated loudness
6. Loudness of the mean of the surviving blocks

Clips shorter than one block skip gating and use the mean square of the
whole weighted signal.

Usage:
    >>> meter = LoudnessMeter(sample_rate=48000)
    >>> stats = meter.measure(audio.channel_data)
    >>> print(f"{stats.lufs:.2f} LUFS, peak {stats.peak_db:.2f} dBFS")
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from .errors import UnsupportedFormatError
from .k_weighting import apply_biquad, design_k_weighting_filters
from .utils import SAMPLE_RATE, linear_to_db, round_half_up
from .wav_codec import DecodedAudio

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

GATE_BLOCK_SECONDS = 0.4        # Gating block duration
GATE_STEP_SECONDS = 0.1         # 75% overlap between gating blocks

ABSOLUTE_GATE_LUFS = -70.0      # Absolute threshold (silence gate)
RELATIVE_GATE_LU = -10.0        # Relative threshold below absolute-gated loudness

LUFS_OFFSET = -0.691


# =============================================================================
# RESULT TYPE
# =============================================================================

@dataclass(frozen=True)
class LoudnessStats:
    """
    Immutable loudness measurement.

    Attributes:
        rms: RMS amplitude over all raw samples and channels
        lufs: Gated integrated loudness, -inf for silence
        peak: Maximum absolute raw sample value
        peak_db: Peak in dBFS, -inf when peak is 0
    """
    rms: float
    lufs: float
    peak: float
    peak_db: float


SILENT_STATS = LoudnessStats(rms=0.0, lufs=-math.inf, peak=0.0, peak_db=-math.inf)


# =============================================================================
# BLOCK ENERGY
# =============================================================================

def mean_square_to_lufs(mean_square: float) -> float:
    """
    Convert mean square to LUFS.

    Formula: LUFS = -0.691 + 10 * log10(mean_square)
    """
    if mean_square <= 0:
        return -math.inf
    return LUFS_OFFSET + 10.0 * math.log10(mean_square)


def gating_block_sizes(sample_rate: float) -> Tuple[int, int]:
    """Return (block_length, step) in samples, each at least 1."""
    block_length = max(1, round_half_up(sample_rate * GATE_BLOCK_SECONDS))
    step = max(1, round_half_up(sample_rate * GATE_STEP_SECONDS))
    return block_length, step


def block_mean_squares(weighted: Sequence[np.ndarray], sample_rate: float) -> List[float]:
    """
    Mean square of each overlapping gating block.

    Each value is the sum of squares over every channel and sample in the
    block divided by (block_length * channel_count).

    Args:
        weighted: K-weighted channels of equal length
        sample_rate: Sample rate in Hz

    Returns:
        One mean square per full block; empty if the signal is shorter
        than one block
    """
    if not weighted:
        return []

    block_length, step = gating_block_sizes(sample_rate)
    total_length = len(weighted[0])
    denominator = block_length * len(weighted)

    # Per-sample energy summed across channels
    energy = np.zeros(total_length, dtype=np.float64)
    for channel in weighted:
        energy += np.square(channel, dtype=np.float64)

    blocks = []
    start = 0
    while start + block_length <= total_length:
        blocks.append(float(np.sum(energy[start:start + block_length])) / denominator)
        start += step

    return blocks


# =============================================================================
# GATING
# =============================================================================

def integrated_loudness(block_energies: Sequence[float]) -> float:
    """
    Two-stage gated loudness over block mean squares.

    Args:
        block_energies: Mean square per gating block

    Returns:
        Integrated LUFS, -inf if no block passes the absolute gate
    """
    absolute_gated = [
        ms for ms in block_energies
        if mean_square_to_lufs(ms) >= ABSOLUTE_GATE_LUFS
    ]
    if not absolute_gated:
        logger.debug(f"All {len(block_energies)} blocks below absolute gate")
        return -math.inf

    initial_lufs = mean_square_to_lufs(float(np.mean(absolute_gated)))
    relative_threshold = initial_lufs + RELATIVE_GATE_LU

    relative_gated = [
        ms for ms in absolute_gated
        if mean_square_to_lufs(ms) >= ABSOLUTE_GATE_LUFS
        and mean_square_to_lufs(ms) >= relative_threshold
    ]
    if not relative_gated:
        logger.debug("Relative gate removed every block, keeping absolute-gated set")
        relative_gated = absolute_gated

    logger.debug(
        f"Gating kept {len(relative_gated)}/{len(block_energies)} blocks "
        f"(relative threshold {relative_threshold:.2f} LUFS)"
    )
    return mean_square_to_lufs(float(np.mean(relative_gated)))


# =============================================================================
# LOUDNESS METER
# =============================================================================

class LoudnessMeter:
    """
    Integrated loudness, RMS and sample peak for one sample rate.

    The meter only holds immutable filter coefficients; filter state is
    created per channel inside every measurement.
    """

    def __init__(self, sample_rate: int = SAMPLE_RATE):
        """
        Initialize loudness meter.

        Args:
            sample_rate: Audio sample rate in Hz

        Raises:
            InvalidFilterDesignError: If no K-weighting filter exists for
                the rate
        """
        self.sample_rate = sample_rate
        self.pre_filter, self.rlb_filter = design_k_weighting_filters(sample_rate)

    def measure(self, channel_data: Sequence[np.ndarray]) -> LoudnessStats:
        """
        Measure a clip.

        Args:
            channel_data: Per-channel raw samples of equal length

        Returns:
            LoudnessStats

        Raises:
            UnsupportedFormatError: If channel lengths differ
        """
        if len(channel_data) == 0:
            return SILENT_STATS

        frame_count = len(channel_data[0])
        for channel in channel_data:
            if len(channel) != frame_count:
                raise UnsupportedFormatError("Channel length mismatch when measuring loudness")

        sum_squares = 0.0
        count = 0
        peak = 0.0
        for channel in channel_data:
            samples = np.asarray(channel, dtype=np.float64)
            if samples.size == 0:
                continue
            sum_squares += float(np.dot(samples, samples))
            count += samples.size
            peak = max(peak, float(np.max(np.abs(samples))))

        rms = math.sqrt(sum_squares / count) if count > 0 else 0.0

        weighted = [
            apply_biquad(apply_biquad(channel, self.pre_filter), self.rlb_filter)
            for channel in channel_data
        ]
        blocks = block_mean_squares(weighted, self.sample_rate)

        if blocks:
            lufs = integrated_loudness(blocks)
        else:
            lufs = self._ungated_loudness(weighted)

        return LoudnessStats(rms=rms, lufs=lufs, peak=peak, peak_db=linear_to_db(peak))

    def measure_audio(self, audio: DecodedAudio) -> LoudnessStats:
        """Measure DecodedAudio (its sample rate must match the meter's)."""
        if audio.sample_rate != self.sample_rate:
            raise ValueError(
                f"Meter built for {self.sample_rate} Hz, audio is {audio.sample_rate} Hz"
            )
        return self.measure(audio.channel_data)

    def _ungated_loudness(self, weighted: List[np.ndarray]) -> float:
        """Loudness of the whole weighted signal, for clips under one block."""
        total = sum(channel.size for channel in weighted)
        if total == 0:
            return -math.inf
        sum_squares = sum(float(np.dot(channel, channel)) for channel in weighted)
        logger.debug(f"Clip shorter than one gating block ({total} samples), skipping gates")
        return mean_square_to_lufs(sum_squares / total)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def compute_loudness(channel_data: Sequence[np.ndarray], sample_rate: int = SAMPLE_RATE) -> LoudnessStats:
    """
    Quick loudness measurement.

    Args:
        channel_data: Per-channel raw samples
        sample_rate: Audio sample rate

    Returns:
        LoudnessStats

    Example:
        >>> stats = compute_loudness([samples], 48000)
        >>> print(f"Loudness: {stats.lufs:.1f} LUFS")
    """
    if len(channel_data) == 0:
        return SILENT_STATS
    return LoudnessMeter(sample_rate).measure(channel_data)


def measure_audio(audio: DecodedAudio) -> LoudnessStats:
    """Measure DecodedAudio at its own sample rate."""
    return compute_loudness(audio.channel_data, audio.sample_rate)
