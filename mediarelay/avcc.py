"""AVCC (length-prefixed) framing of H264 NAL units."""

from __future__ import annotations

import struct
from collections.abc import Iterable

_LENGTH = struct.Struct(">I")


def decode_avcc(byts: bytes) -> list[bytes]:
    """Split an AVCC byte stream into NAL units."""
    data = memoryview(bytes(byts))
    nalus: list[bytes] = []

    while data:
        if len(data) < _LENGTH.size:
            raise ValueError("invalid length")
        (length,) = _LENGTH.unpack_from(data)
        data = data[_LENGTH.size:]
        if len(data) < length:
            raise ValueError("invalid length")
        nalus.append(bytes(data[:length]))
        data = data[length:]

    if not nalus:
        raise ValueError("no NALUs decoded")

    return nalus


def encode_avcc(nalus: Iterable[bytes]) -> bytes:
    """Join NAL units into an AVCC byte stream."""
    return b"".join(_LENGTH.pack(len(nalu)) + bytes(nalu) for nalu in nalus)