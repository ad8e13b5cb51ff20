"""Emulation prevention ("anti-competition") bytes of H264 NAL units."""

from __future__ import annotations


def anti_competition_add(nalu: bytes) -> bytes:
    """Insert emulation prevention bytes into a NAL unit."""
    out = bytearray()
    step = 0
    start = 0

    for pos, byte in enumerate(nalu):
        if step == 0:
            if byte == 0:
                step = 1
        elif step == 1:
            step = 2 if byte == 0 else 0
        else:
            if byte <= 3:
                out += nalu[start:pos - 2]
                out += bytes([0x00, 0x00, 0x03, byte])
                start = pos + 1
            step = 0

    out += nalu[start:]
    return bytes(out)


def anti_competition_remove(nalu: bytes) -> bytes:
    """Strip emulation prevention bytes from a NAL unit."""
    out = bytearray()
    step = 0
    start = 0

    for pos, byte in enumerate(nalu):
        if step == 0:
            if byte == 0:
                step = 1
        elif step == 1:
            step = 2 if byte == 0 else 0
        elif step == 2:
            step = 3 if byte == 3 else 0
        else:
            if byte <= 3:
                out += nalu[start:pos - 3]
                out += bytes([0x00, 0x00, byte])
                start = pos + 1
            step = 0

    out += nalu[start:]
    return bytes(out)