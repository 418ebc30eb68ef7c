"""
Constants and small numeric helpers shared by the loudness engine.

Provides:
- Default audio format values (48 kHz, 16-bit PCM)
- Default loudness targets used by the SFX content pipeline
- dB/linear conversions and half-up rounding
"""

import math

import numpy as np


# =============================================================================
# AUDIO CONSTANTS
# =============================================================================

SAMPLE_RATE = 48000  # Hz - rate the procedural SFX are rendered at
BIT_DEPTH = 16       # bits - only PCM depth the codec supports

# Loudness targets (caller configuration, see configs/loudness.yaml)
TARGET_LUFS = -16.0          # Integrated loudness target
LOUDNESS_TOLERANCE = 1.5     # ± dB window around the target
PEAK_HEADROOM_DB = -1.0      # Sample peak ceiling in dBFS


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def linear_to_db(linear: float) -> float:
    """Convert linear amplitude to decibels (dBFS)."""
    if linear <= 0:
        return -math.inf
    return 20.0 * math.log10(linear)


def db_to_linear(db: float) -> float:
    """Convert decibels to linear amplitude."""
    return 10.0 ** (db / 20.0)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties toward positive infinity."""
    return int(math.floor(value + 0.5))


def round_half_up_array(values: np.ndarray) -> np.ndarray:
    """Vectorized round_half_up (np.round would round ties to even)."""
    return np.floor(values + 0.5)
