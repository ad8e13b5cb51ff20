"""Annex-B byte stream framing of H264 NAL units."""

from __future__ import annotations

from collections.abc import Iterable

_DELIMITER = b"\x00\x00\x00\x01"


def decode_annexb(byts: bytes) -> list[bytes]:
    """Split an Annex-B byte stream into NAL units."""
    data = bytes(byts)

    if data.startswith(b"\x00\x00\x01"):
        offset = 3
    elif data.startswith(b"\x00\x00\x00\x01"):
        offset = 4
    else:
        raise ValueError("input doesn't start with a delimiter")

    nalus: list[bytes] = []
    zeros = 0
    start = offset
    delim_start = 0

    for pos, byte in enumerate(data[offset:], start=offset):
        if byte == 0:
            if zeros == 0:
                delim_start = pos
            zeros += 1
        elif byte == 1:
            if zeros in (2, 3):
                nalu = data[start:delim_start]
                if not nalu:
                    raise ValueError("empty NALU")
                nalus.append(nalu)
                start = pos + 1
            zeros = 0
        else:
            zeros = 0

    nalu = data[start:]
    if not nalu:
        raise ValueError("empty NALU")
    nalus.append(nalu)

    return nalus


def encode_annexb(nalus: Iterable[bytes]) -> bytes:
    """Join NAL units into an Annex-B byte stream."""
    return b"".join(_DELIMITER + bytes(nalu) for nalu in nalus)