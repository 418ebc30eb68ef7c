"""
PCM WAV Codec Module

Lossless round-trip between 16-bit PCM RIFF/WAVE payloads and per-channel
float sample arrays, plus a base64 text transport for embedding clips in
source and config files.

Container layout:
- 'RIFF' <u32 size> 'WAVE'
- Chunks of <4-byte id> <u32 LE length> <body, padded to even length>
- 'fmt ' (16 bytes for PCM) must precede 'data'

Scaling convention:
- Decode divides by 32768 (two's-complement range, -1.0 .. 0.99997)
- Encode clamps to [-1, 1] and multiplies by 32767
"""

import base64
import binascii
import logging
import struct
from dataclasses import dataclass
from typing import NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np

from .errors import (
    MalformedContainerError,
    MissingChunkError,
    TruncatedInputError,
    UnsupportedFormatError,
    ZeroChannelAudioError,
)
from .utils import BIT_DEPTH, round_half_up_array

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

WAV_HEADER_SIZE = 44            # RIFF header + 16-byte fmt chunk + data header
CHUNK_HEADER_SIZE = 8           # 4-byte id + u32 length
FIRST_CHUNK_OFFSET = 12         # after 'RIFF' <size> 'WAVE'
FMT_CHUNK_SIZE = 16

WAVE_FORMAT_PCM = 1
BYTES_PER_SAMPLE = BIT_DEPTH // 8

PCM16_DECODE_SCALE = 32768.0
PCM16_ENCODE_SCALE = 32767.0

BytesLike = Union[bytes, bytearray, memoryview]


# =============================================================================
# DATA TYPES
# =============================================================================

@dataclass(frozen=True, eq=False)
class DecodedAudio:
    """
    Decoded PCM audio, one float32 array per channel.

    All channels share the sample rate and must have the same length.
    The encoder rejects audio that breaks this; nothing here repairs it.
    """
    sample_rate: int
    channel_data: Tuple[np.ndarray, ...]
    bits_per_sample: int = BIT_DEPTH

    @property
    def num_channels(self) -> int:
        return len(self.channel_data)

    @property
    def num_frames(self) -> int:
        if not self.channel_data:
            return 0
        return len(self.channel_data[0])

    @property
    def duration_seconds(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return self.num_frames / self.sample_rate


class FormatChunk(NamedTuple):
    """Fields of a PCM 'fmt ' chunk."""
    audio_format: int
    num_channels: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bits_per_sample: int


# =============================================================================
# DECODING
# =============================================================================

def decode_wav(data: BytesLike) -> DecodedAudio:
    """
    Decode a 16-bit PCM WAV payload.

    Args:
        data: Complete RIFF/WAVE payload

    Returns:
        DecodedAudio with one float32 array per channel

    Raises:
        TruncatedInputError: Payload shorter than a WAV header, or the data
            chunk runs past the end of the payload
        MalformedContainerError: Missing RIFF/WAVE tags or short 'fmt ' chunk
        MissingChunkError: No 'fmt ' or no 'data' chunk
        UnsupportedFormatError: Non-PCM encoding or bit depth other than 16,
            zero sample rate, or an invalid channel layout
    """
    data = bytes(data)
    if len(data) < WAV_HEADER_SIZE:
        raise TruncatedInputError(
            f"WAV payload too small to contain header ({len(data)} bytes)"
        )

    riff_id, _riff_size, wave_id = struct.unpack_from('<4sI4s', data, 0)
    if riff_id != b'RIFF' or wave_id != b'WAVE':
        raise MalformedContainerError("Unsupported WAV payload (missing RIFF/WAVE header)")

    fmt, data_offset, data_size = _scan_chunks(data)

    if fmt is None:
        raise MissingChunkError("WAV payload missing fmt chunk")
    if data_offset < 0:
        raise MissingChunkError("WAV payload missing data chunk")
    if fmt.audio_format != WAVE_FORMAT_PCM:
        raise UnsupportedFormatError(f"Unsupported WAV encoding: format {fmt.audio_format}")
    if fmt.bits_per_sample != BIT_DEPTH:
        raise UnsupportedFormatError(
            f"Only 16-bit PCM WAV payloads are supported (found {fmt.bits_per_sample})"
        )
    if fmt.sample_rate == 0:
        raise UnsupportedFormatError("WAV payload declares a sample rate of 0 Hz")
    if fmt.num_channels == 0 or fmt.block_align < fmt.num_channels * BYTES_PER_SAMPLE:
        raise UnsupportedFormatError(
            f"Invalid channel layout: {fmt.num_channels} channels, block align {fmt.block_align}"
        )
    if data_offset + data_size > len(data):
        raise TruncatedInputError(
            f"data chunk declares {data_size} bytes but only "
            f"{len(data) - data_offset} are present"
        )

    frame_count = data_size // fmt.block_align
    logger.debug(
        f"Decoding {frame_count} frames x {fmt.num_channels} channels "
        f"at {fmt.sample_rate} Hz"
    )

    if frame_count == 0:
        channel_data = tuple(np.zeros(0, dtype=np.float32) for _ in range(fmt.num_channels))
    else:
        # Strided view: one row per frame, one column per channel
        frames = np.ndarray(
            shape=(frame_count, fmt.num_channels),
            dtype='<i2',
            buffer=data,
            offset=data_offset,
            strides=(fmt.block_align, BYTES_PER_SAMPLE),
        )
        channel_data = tuple(
            frames[:, ch].astype(np.float32) / np.float32(PCM16_DECODE_SCALE)
            for ch in range(fmt.num_channels)
        )

    return DecodedAudio(
        sample_rate=fmt.sample_rate,
        channel_data=channel_data,
        bits_per_sample=fmt.bits_per_sample,
    )


def _scan_chunks(data: bytes) -> Tuple[Optional[FormatChunk], int, int]:
    """
    Walk the chunk list, stopping at the first 'data' chunk.

    Returns:
        (fmt chunk or None, data offset or -1, data size)
    """
    fmt = None
    data_offset = -1
    data_size = 0

    offset = FIRST_CHUNK_OFFSET
    while offset + CHUNK_HEADER_SIZE <= len(data):
        chunk_id, chunk_size = struct.unpack_from('<4sI', data, offset)
        body_offset = offset + CHUNK_HEADER_SIZE

        if chunk_id == b'fmt ':
            if chunk_size < FMT_CHUNK_SIZE or body_offset + FMT_CHUNK_SIZE > len(data):
                raise MalformedContainerError(
                    f"fmt chunk too short ({chunk_size} bytes)"
                )
            fmt = FormatChunk(*struct.unpack_from('<HHIIHH', data, body_offset))
        elif chunk_id == b'data':
            data_offset = body_offset
            data_size = chunk_size
            break
        else:
            logger.debug(f"Skipping chunk {chunk_id!r} ({chunk_size} bytes)")

        # Two-byte chunk alignment
        offset = body_offset + chunk_size + (chunk_size % 2)

    return fmt, data_offset, data_size


def decode_base64_to_bytes(text: Union[str, bytes]) -> bytes:
    """
    Decode the base64 text transport back into raw bytes.

    Accepts the text as str or as undecoded file bytes.

    Raises:
        MalformedContainerError: If the text is not valid base64
    """
    try:
        return base64.b64decode(text.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedContainerError(f"Invalid base64 WAV payload: {e}")


def decode_wav_from_base64(text: Union[str, bytes]) -> DecodedAudio:
    """Decode a base64-embedded WAV payload."""
    return decode_wav(decode_base64_to_bytes(text))


# =============================================================================
# ENCODING
# =============================================================================

def encode_wav(audio: DecodedAudio) -> bytes:
    """
    Encode audio as a 16-bit PCM WAV payload.

    Samples are clamped to [-1, 1], scaled by 32767 and rounded to the
    nearest integer (ties upward).

    Args:
        audio: Audio to encode

    Returns:
        Complete RIFF/WAVE payload

    Raises:
        UnsupportedFormatError: bits_per_sample is not 16, or channel
            lengths differ
        ZeroChannelAudioError: audio has no channels
    """
    if audio.bits_per_sample != BIT_DEPTH:
        raise UnsupportedFormatError("Only 16-bit PCM encoding is supported")

    num_channels = len(audio.channel_data)
    if num_channels == 0:
        raise ZeroChannelAudioError("Cannot encode WAV with zero channels")

    frame_count = len(audio.channel_data[0])
    for channel in audio.channel_data:
        if len(channel) != frame_count:
            raise UnsupportedFormatError("Channel length mismatch when encoding WAV")

    block_align = BYTES_PER_SAMPLE * num_channels
    byte_rate = audio.sample_rate * block_align
    data_size = frame_count * block_align

    # (frames, channels) so row-major bytes come out interleaved
    frames = np.stack(
        [np.asarray(channel, dtype=np.float64) for channel in audio.channel_data],
        axis=1,
    )
    frames = np.nan_to_num(frames, nan=0.0)
    clamped = np.clip(frames, -1.0, 1.0)
    pcm = round_half_up_array(clamped * PCM16_ENCODE_SCALE).astype('<i2')

    header = struct.pack('<4sI4s', b'RIFF', 36 + data_size, b'WAVE')
    header += struct.pack(
        '<4sIHHIIHH',
        b'fmt ',
        FMT_CHUNK_SIZE,
        WAVE_FORMAT_PCM,
        num_channels,
        audio.sample_rate,
        byte_rate,
        block_align,
        BIT_DEPTH,
    )
    header += struct.pack('<4sI', b'data', data_size)

    logger.debug(f"Encoded {frame_count} frames x {num_channels} channels ({data_size} bytes)")
    return header + pcm.tobytes()


def encode_wav_to_base64(audio: DecodedAudio) -> str:
    """Encode audio as WAV and return it as base64 text."""
    return base64.b64encode(encode_wav(audio)).decode('ascii')


def make_audio(
    channels: Sequence[Sequence[float]],
    sample_rate: int,
    bits_per_sample: int = BIT_DEPTH,
) -> DecodedAudio:
    """
    Build DecodedAudio from plain sample sequences.

    Convenience for callers holding lists or float64 buffers (e.g. output
    of a procedural synth); each channel is copied into a float32 array.
    """
    return DecodedAudio(
        sample_rate=sample_rate,
        channel_data=tuple(np.asarray(ch, dtype=np.float32).copy() for ch in channels),
        bits_per_sample=bits_per_sample,
    )
