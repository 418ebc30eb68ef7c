"""
Pytest fixtures for sfx_loudness tests.
"""
import pytest
import sys
from pathlib import Path
import tempfile
import shutil

import numpy as np

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


def sine_wave(frequency, amplitude, duration, sample_rate=48000):
    """Float32 sine starting at phase 0."""
    t = np.arange(int(round(duration * sample_rate))) / sample_rate
    return (amplitude * np.sin(2 * np.pi * frequency * t)).astype(np.float32)


@pytest.fixture
def sample_rate():
    """Standard sample rate for tests."""
    return 48000


@pytest.fixture
def temp_dir():
    """Create temporary directory for test outputs."""
    tmp = tempfile.mkdtemp()
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def project_config_dir():
    """Get the configs directory."""
    return PROJECT_ROOT / 'configs'


@pytest.fixture
def sine_1k(sample_rate):
    """One second of 1 kHz sine at amplitude 0.5."""
    return sine_wave(1000.0, 0.5, 1.0, sample_rate)


@pytest.fixture
def quiet_sine(sample_rate):
    """One second of 1 kHz sine at amplitude 0.05."""
    return sine_wave(1000.0, 0.05, 1.0, sample_rate)


@pytest.fixture
def silence(sample_rate):
    """One second of digital silence."""
    return np.zeros(sample_rate, dtype=np.float32)


@pytest.fixture
def make_sine():
    """Factory: make_sine(frequency, amplitude, duration, sample_rate=48000)."""
    return sine_wave
