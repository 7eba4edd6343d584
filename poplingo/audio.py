"""
PCM audio helpers.

The speech model returns base64-encoded 16-bit signed little-endian PCM at
24 kHz, mono. This module turns that payload into normalised float samples
and can export them as a WAV file for pygame to play.
"""

import base64
import binascii
import os
import tempfile
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np
import soundfile as sf

from .logger import logger

SAMPLE_RATE = 24000
CHANNELS = 1
SAMPLE_WIDTH = 2                     # bytes per int16 sample
INT16_SCALE = 32768.0


class AudioDecodeError(ValueError):
    """Raised when an encoded audio payload is not valid base64."""


@dataclass
class PcmAudio:
    """Decoded audio: float32 samples in [-1.0, 1.0), shaped (frames, channels)."""
    samples: np.ndarray
    sample_rate: int = SAMPLE_RATE
    channels: int = CHANNELS

    @property
    def frame_count(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration_seconds(self) -> float:
        return self.frame_count / self.sample_rate

    def channel_data(self, channel: int) -> np.ndarray:
        """Samples of a single channel, in playback order."""
        if not 0 <= channel < self.channels:
            raise IndexError(f"Channel {channel} out of range for {self.channels}-channel audio")
        return self.samples[:, channel]


def decode_audio_data(
    raw: bytes,
    sample_rate: int = SAMPLE_RATE,
    channels: int = CHANNELS,
) -> PcmAudio:
    """
    Convert raw little-endian int16 PCM bytes into a PcmAudio buffer.

    Samples are interleaved by channel. Trailing bytes that do not make up a
    whole frame (an odd byte, or a partial multi-channel frame) are dropped
    with a warning.
    """
    if channels < 1:
        raise ValueError(f"channels must be >= 1, got {channels}")
    if sample_rate < 1:
        raise ValueError(f"sample_rate must be >= 1, got {sample_rate}")

    frame_width = SAMPLE_WIDTH * channels
    usable = len(raw) - len(raw) % frame_width
    if usable != len(raw):
        logger.warning(
            f"Discarding {len(raw) - usable} trailing byte(s) that do not form a complete "
            f"{channels}-channel frame"
        )

    if usable:
        ints = np.frombuffer(raw, dtype="<i2", count=usable // SAMPLE_WIDTH)
    else:
        ints = np.zeros(0, dtype="<i2")

    samples = (ints.astype(np.float32) / INT16_SCALE).reshape(-1, channels)
    return PcmAudio(samples=samples, sample_rate=sample_rate, channels=channels)


def decode_base64_audio(
    encoded: Union[str, bytes],
    sample_rate: int = SAMPLE_RATE,
    channels: int = CHANNELS,
) -> PcmAudio:
    """Decode a base64 PCM payload as returned by the speech model."""
    # Line-wrapped payloads are valid; strict validation rejects the breaks
    if isinstance(encoded, str):
        encoded = "".join(encoded.split())
    else:
        encoded = b"".join(bytes(encoded).split())
    try:
        raw = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise AudioDecodeError(f"Audio payload is not valid base64: {e}") from e

    audio = decode_audio_data(raw, sample_rate=sample_rate, channels=channels)
    logger.aud(f"Decoded {len(raw)} bytes → {audio.frame_count} frames "
               f"({audio.duration_seconds:.2f}s @ {sample_rate} Hz)")
    return audio


def write_wav(audio: PcmAudio, path: Optional[str] = None) -> str:
    """
    Write audio to a 16-bit PCM WAV file and return its path.

    Without an explicit path a temporary file is created; the caller owns it.
    """
    if path is None:
        fd, path = tempfile.mkstemp(suffix=".wav", prefix="poplingo_speech_")
        os.close(fd)

    # Back to the original int16 values so the export is lossless
    ints = np.clip(np.round(audio.samples * INT16_SCALE), -32768, 32767).astype(np.int16)
    sf.write(path, ints, audio.sample_rate, subtype="PCM_16")
    logger.aud(f"WAV written: {path} ({audio.frame_count} frames)")
    return path
