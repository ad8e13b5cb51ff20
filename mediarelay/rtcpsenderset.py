"""Periodic RTCP sender reports for a set of outgoing tracks."""

from __future__ import annotations

import struct
import threading
import time
from collections.abc import Callable, Sequence
from enum import IntEnum

_REPORT_PERIOD = 10.0
_NTP_EPOCH_OFFSET = 2208988800


class StreamType(IntEnum):
    """Kind of stream a frame belongs to."""

    RTP = 0
    RTCP = 1


def _parse_rtp(packet: bytes) -> tuple[int, int, int]:
    """Return SSRC, timestamp and payload size of an RTP packet."""
    if len(packet) < 12:
        raise ValueError("RTP packet too short")
    first = packet[0]
    if first >> 6 != 2:
        raise ValueError("unsupported RTP version")
    timestamp, ssrc = struct.unpack_from(">II", packet, 4)
    offset = 12 + 4 * (first & 0x0F)
    if first & 0x10:
        if len(packet) < offset + 4:
            raise ValueError("RTP extension truncated")
        (words,) = struct.unpack_from(">H", packet, offset + 2)
        offset += 4 + 4 * words
    padding = packet[-1] if first & 0x20 else 0
    size = len(packet) - offset - padding
    if size < 0:
        raise ValueError("RTP packet truncated")
    return ssrc, timestamp, size


class _RTCPSender:
    """Tracks an outgoing RTP stream and builds sender reports for it."""

    def __init__(self, clock_rate: int) -> None:
        self._clock_rate = clock_rate
        self._lock = threading.Lock()
        self._initialized = False
        self._ssrc = 0
        self._last_rtp_time = 0
        self._last_wall_time = 0.0
        self._packet_count = 0
        self._octet_count = 0

    def process_frame(self, now: float, stream_type: StreamType, payload: bytes) -> None:
        if stream_type != StreamType.RTP:
            return
        try:
            ssrc, timestamp, size = _parse_rtp(payload)
        except ValueError:
            return
        with self._lock:
            self._initialized = True
            self._ssrc = ssrc
            self._last_rtp_time = timestamp
            self._last_wall_time = now
            self._packet_count = (self._packet_count + 1) & 0xFFFFFFFF
            self._octet_count = (self._octet_count + size) & 0xFFFFFFFF

    def report(self, now: float) -> bytes | None:
        with self._lock:
            if not self._initialized:
                return None
            elapsed = now - self._last_wall_time
            rtp_time = (self._last_rtp_time + int(elapsed * self._clock_rate)) & 0xFFFFFFFF
            seconds = int(now)
            fraction = int((now - seconds) * (1 << 32)) & 0xFFFFFFFF
            ntp_seconds = (seconds + _NTP_EPOCH_OFFSET) & 0xFFFFFFFF
            return struct.pack(
                ">BBHIIIIII",
                0x80, 200, 6,
                self._ssrc, ntp_seconds, fraction,
                rtp_time, self._packet_count, self._octet_count,
            )


class RTCPSenderSet:
    """Sends an RTCP sender report for every track every ten seconds."""

    def __init__(
        self,
        tracks: Sequence,
        on_frame: Callable[[int, StreamType, bytes], None],
    ) -> None:
        self._on_frame = on_frame
        self._senders = [_RTCPSender(track.clock_rate) for track in tracks]
        self._terminate = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def close(self) -> None:
        """Stop sending reports."""
        self._terminate.set()
        self._thread.join()

    def _run(self) -> None:
        while not self._terminate.wait(_REPORT_PERIOD):
            now = time.time()
            for track_id, sender in enumerate(self._senders):
                report = sender.report(now)
                if report is not None:
                    self._on_frame(track_id, StreamType.RTCP, report)

    def on_frame(self, track_id: int, stream_type: StreamType, payload: bytes) -> None:
        """Account for a frame sent on a track."""
        if not 0 <= track_id < len(self._senders):
            raise IndexError(f"track {track_id} does not exist")
        self._senders[track_id].process_frame(time.time(), stream_type, payload)