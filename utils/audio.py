"""Helpers for the raw PCM audio clients stream to the relay."""

import base64
import binascii
import struct

SAMPLE_RATE = 24000
CHANNELS = 1
BITS_PER_SAMPLE = 16
WAV_HEADER_SIZE = 44


class InvalidAudioError(ValueError):
    """Raised when an audio_chunk payload is not valid base64."""


def decode_audio_chunk(data: str) -> bytes:
    """Decode one base64 audio chunk, rejecting malformed payloads."""
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidAudioError("Audio data is not valid base64.") from exc


def encode_audio(audio_bytes: bytes) -> str:
    return base64.b64encode(audio_bytes).decode("ascii")


def pcm_to_wav(
    pcm: bytes,
    *,
    sample_rate: int = SAMPLE_RATE,
    channels: int = CHANNELS,
    bits_per_sample: int = BITS_PER_SAMPLE,
) -> bytes:
    """Wrap raw little-endian PCM frames in a 44-byte RIFF/WAVE header."""
    block_align = channels * bits_per_sample // 8
    byte_rate = sample_rate * block_align
    header = struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        36 + len(pcm),
        b"WAVE",
        b"fmt ",
        16,
        1,
        channels,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
        b"data",
        len(pcm),
    )
    return header + pcm
