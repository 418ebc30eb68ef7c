"""
K-Weighting Filter Module

Frequency weighting applied before loudness measurement (ITU-R BS.1770).
Two cascaded biquad stages per channel:
1. Pre-filter (high shelf, about +4 dB above ~1.7 kHz)
   - Accounts for acoustic effects of the head
2. RLB high-pass (~38 Hz)
   - Reflects reduced loudness perception at low frequencies

At 48 kHz the literal coefficients from the standard are used. Any other
rate derives both stages from their analog prototypes with the bilinear
transform.

References:
- ITU-R BS.1770-4: Algorithms to measure audio programme loudness
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np
from scipy import signal

from .errors import InvalidFilterDesignError

logger = logging.getLogger(__name__)


# =============================================================================
# DATA TYPES
# =============================================================================

@dataclass(frozen=True)
class BiquadCoefficients:
    """Normalized second-order IIR section (a0 == 1)."""
    b0: float
    b1: float
    b2: float
    a1: float
    a2: float

    @property
    def b(self) -> np.ndarray:
        return np.array([self.b0, self.b1, self.b2], dtype=np.float64)

    @property
    def a(self) -> np.ndarray:
        return np.array([1.0, self.a1, self.a2], dtype=np.float64)


@dataclass
class FilterState:
    """Previous two inputs and outputs of one biquad stage on one channel."""
    x1: float = 0.0
    x2: float = 0.0
    y1: float = 0.0
    y2: float = 0.0

    def initial_conditions(self, coefficients: BiquadCoefficients) -> np.ndarray:
        """Express the registers as lfilter's transposed-form state."""
        return signal.lfiltic(
            coefficients.b,
            coefficients.a,
            y=[self.y1, self.y2],
            x=[self.x1, self.x2],
        )


# =============================================================================
# CONSTANTS
# =============================================================================

K_WEIGHTING_REFERENCE_RATE = 48000
SAMPLE_RATE_TOLERANCE_HZ = 1.0

# ITU-R BS.1770-4 Table 1: pre-filter at 48 kHz
PRE_FILTER_48K = BiquadCoefficients(
    b0=1.53512485958697,
    b1=-2.69169618940638,
    b2=1.19839281085285,
    a1=-1.69065929318241,
    a2=0.73248077421585,
)

# ITU-R BS.1770-4 Table 2: RLB weighting at 48 kHz
RLB_FILTER_48K = BiquadCoefficients(
    b0=1.0,
    b1=-2.0,
    b2=1.0,
    a1=-1.99004745483398,
    a2=0.99007225036621,
)

# Analog prototype parameters (frequencies in Hz, converted to rad/s below)
PRE_FILTER_FREQUENCY = 1681.974450955533
PRE_FILTER_Q = 0.7071752369554196
PRE_FILTER_GAIN_DB = 3.99984385397
PRE_FILTER_SHELF_EXPONENT = 0.4996667741545416

RLB_FREQUENCY = 38.13547087602444
RLB_Q = 0.5003270373238773

AnalogPolynomial = Tuple[float, float, float]


# =============================================================================
# FILTER DESIGN
# =============================================================================

def pre_filter_prototype() -> Tuple[AnalogPolynomial, AnalogPolynomial]:
    """
    Analog high shelf: (Vh s^2 + Vb (w0/Q) s + w0^2) / (s^2 + (w0/Q) s + w0^2).

    Returns:
        (numerator, denominator) as (s^2, s, 1) coefficients
    """
    w0 = 2.0 * math.pi * PRE_FILTER_FREQUENCY
    vh = 10.0 ** (PRE_FILTER_GAIN_DB / 20.0)
    vb = vh ** PRE_FILTER_SHELF_EXPONENT
    numerator = (vh, vb * w0 / PRE_FILTER_Q, w0 * w0)
    denominator = (1.0, w0 / PRE_FILTER_Q, w0 * w0)
    return numerator, denominator


def rlb_prototype() -> Tuple[AnalogPolynomial, AnalogPolynomial]:
    """
    Analog second-order high-pass: s^2 / (s^2 + (w1/Q) s + w1^2).

    Returns:
        (numerator, denominator) as (s^2, s, 1) coefficients
    """
    w1 = 2.0 * math.pi * RLB_FREQUENCY
    numerator = (1.0, 0.0, 0.0)
    denominator = (1.0, w1 / RLB_Q, w1 * w1)
    return numerator, denominator


def bilinear_biquad(
    numerator: AnalogPolynomial,
    denominator: AnalogPolynomial,
    sample_rate: float,
) -> BiquadCoefficients:
    """
    Map an analog second-order section to a digital biquad.

    Substitutes s = k (1 - z^-1) / (1 + z^-1) with k = 2 * sample_rate and
    normalizes by the z^0 denominator term.

    Args:
        numerator: (B0, B1, B2) for B0 s^2 + B1 s + B2
        denominator: (A0, A1, A2) for A0 s^2 + A1 s + A2
        sample_rate: Sample rate in Hz

    Returns:
        Normalized BiquadCoefficients

    Raises:
        InvalidFilterDesignError: If the normalizing term is zero
    """
    B0, B1, B2 = numerator
    A0, A1, A2 = denominator
    k = 2.0 * sample_rate
    k2 = k * k

    norm = A0 * k2 + A1 * k + A2
    if norm == 0:
        raise InvalidFilterDesignError(
            f"Bilinear transform has zero normalizing term at {sample_rate} Hz"
        )

    return BiquadCoefficients(
        b0=(B0 * k2 + B1 * k + B2) / norm,
        b1=2.0 * (B2 - B0 * k2) / norm,
        b2=(B0 * k2 - B1 * k + B2) / norm,
        a1=2.0 * (A2 - A0 * k2) / norm,
        a2=(A0 * k2 - A1 * k + A2) / norm,
    )


def design_k_weighting_filters(sample_rate: float) -> Tuple[BiquadCoefficients, BiquadCoefficients]:
    """
    Get K-weighting coefficients for a sample rate.

    Args:
        sample_rate: Audio sample rate in Hz

    Returns:
        (pre_filter, rlb_filter)

    Raises:
        InvalidFilterDesignError: For non-positive rates or a degenerate
            bilinear transform
    """
    if abs(sample_rate - K_WEIGHTING_REFERENCE_RATE) < SAMPLE_RATE_TOLERANCE_HZ:
        return PRE_FILTER_48K, RLB_FILTER_48K

    if sample_rate <= 0:
        raise InvalidFilterDesignError(f"Sample rate must be positive (got {sample_rate})")

    logger.debug(f"Deriving K-weighting biquads for {sample_rate} Hz")
    pre = bilinear_biquad(*pre_filter_prototype(), sample_rate)
    rlb = bilinear_biquad(*rlb_prototype(), sample_rate)
    return pre, rlb


# =============================================================================
# FILTERING
# =============================================================================

def apply_biquad(samples: np.ndarray, coefficients: BiquadCoefficients) -> np.ndarray:
    """
    Run one biquad over one channel.

    y[n] = b0 x[n] + b1 x[n-1] + b2 x[n-2] - a1 y[n-1] - a2 y[n-2]

    Each call starts from a zeroed FilterState, so nothing carries over
    between channels or calls.

    Args:
        samples: Single-channel input
        coefficients: Stage coefficients

    Returns:
        New float64 array of the same length
    """
    x = np.asarray(samples, dtype=np.float64)
    if x.size == 0:
        return np.zeros(0, dtype=np.float64)

    state = FilterState()
    y, _ = signal.lfilter(
        coefficients.b,
        coefficients.a,
        x,
        zi=state.initial_conditions(coefficients),
    )
    return y


def apply_k_weighting(channel_data: Sequence[np.ndarray], sample_rate: float) -> List[np.ndarray]:
    """
    Apply the K-weighting cascade to every channel independently.

    Args:
        channel_data: Per-channel sample arrays
        sample_rate: Sample rate in Hz

    Returns:
        List of K-weighted float64 arrays
    """
    pre, rlb = design_k_weighting_filters(sample_rate)
    return [
        apply_biquad(apply_biquad(channel, pre), rlb)
        for channel in channel_data
    ]
