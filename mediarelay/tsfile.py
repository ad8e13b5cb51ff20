"""MPEG-TS segments for HLS, holding an H264 and an AAC elementary stream."""

from __future__ import annotations

import struct
import time
from dataclasses import dataclass
from datetime import timedelta

from .annexb import encode_annexb
from .multiaccessbuffer import MultiAccessBuffer, MultiAccessBufferReader
from .nalutype import NALUType

PACKET_SIZE = 188
VIDEO_PID = 256
AUDIO_PID = 257
PMT_PID = 4096

_PAYLOAD_SIZE = PACKET_SIZE - 4
_PROGRAM_NUMBER = 1
_TRANSPORT_STREAM_ID = 1
_STREAM_TYPE_H264 = 0x1B
_STREAM_TYPE_AAC = 0x0F
_STREAM_ID_VIDEO = 224
_STREAM_ID_AUDIO = 192
_TABLES_RETRANSMIT_PERIOD = 40
_CLOCK_RATE = 90000
_MASK33 = (1 << 33) - 1

# prepended to every access unit; required by video.js and iOS
_AUD = bytes([NALUType.ACCESS_UNIT_DELIMITER, 240])

_AAC_SAMPLE_RATE_INDEX = {
    rate: index
    for index, rate in enumerate(
        (96000, 88200, 64000, 48000, 44100, 32000, 24000,
         22050, 16000, 12000, 11025, 8000, 7350)
    )
}
_AAC_PROFILE_LC = 1


def _crc32_mpeg(data: bytes) -> int:
    crc = 0xFFFFFFFF
    for byte in data:
        crc ^= byte << 24
        for _ in range(8):
            crc = ((crc << 1) ^ 0x04C11DB7) if crc & 0x80000000 else crc << 1
            crc &= 0xFFFFFFFF
    return crc


def _ticks(value: timedelta) -> int:
    return int(value.total_seconds() * _CLOCK_RATE)


def _encode_timestamp(prefix: int, value: int) -> bytes:
    value &= _MASK33
    return bytes([
        (prefix << 4) | ((value >> 29) & 0x0E) | 1,
        (value >> 22) & 0xFF,
        ((value >> 14) & 0xFE) | 1,
        (value >> 7) & 0xFF,
        ((value << 1) & 0xFE) | 1,
    ])


def _encode_pcr(base: int) -> bytes:
    return (((base & _MASK33) << 15) | (0x3F << 9)).to_bytes(6, "big")


@dataclass(frozen=True)
class _AdaptationField:
    random_access: bool = False
    pcr: int | None = None


def _encode_adaptation(field: _AdaptationField | None, stuffing: int) -> bytes:
    """Encode an adaptation field followed by the given number of stuffing bytes."""
    if field is None:
        if stuffing == 0:
            return b""
        if stuffing == 1:
            return b"\x00"
        return bytes([stuffing - 1, 0]) + b"\xff" * (stuffing - 2)

    flags = 0
    body = b""
    if field.random_access:
        flags |= 0x40
    if field.pcr is not None:
        flags |= 0x10
        body += _encode_pcr(field.pcr)
    content = bytes([flags]) + body + b"\xff" * stuffing
    return bytes([len(content)]) + content


def _pes_packet(stream_id: int, pts: int, dts: int | None, data: bytes,
                packet_length: int = 0) -> bytes:
    if dts is not None:
        flags = 0xC0
        timestamps = _encode_timestamp(0x3, pts) + _encode_timestamp(0x1, dts)
    else:
        flags = 0x80
        timestamps = _encode_timestamp(0x2, pts)
    if packet_length > 0xFFFF:
        packet_length = 0
    return (
        b"\x00\x00\x01"
        + bytes([stream_id])
        + struct.pack(">H", packet_length)
        + bytes([0x80, flags, len(timestamps)])
        + timestamps
        + data
    )


def _section(table_id: int, table_id_extension: int, body: bytes) -> bytes:
    length = 5 + len(body) + 4
    head = (
        bytes([table_id, 0xB0 | (length >> 8), length & 0xFF])
        + struct.pack(">H", table_id_extension)
        + bytes([0xC1, 0x00, 0x00])
    )
    return head + body + struct.pack(">I", _crc32_mpeg(head + body))


def _encode_adts(sample_rate: int, channel_count: int, frame: bytes) -> bytes:
    try:
        index = _AAC_SAMPLE_RATE_INDEX[sample_rate]
    except KeyError:
        raise ValueError(f"invalid sample rate: {sample_rate}") from None

    if 1 <= channel_count <= 6:
        config = channel_count
    elif channel_count == 8:
        config = 7
    else:
        raise ValueError(f"invalid channel count: {channel_count}")

    length = 7 + len(frame)
    if length > 0x1FFF:
        raise ValueError("AAC frame too big")

    fullness = 0x7FF
    header = bytes([
        0xFF,
        0xF1,
        (_AAC_PROFILE_LC << 6) | (index << 2) | (config >> 2),
        ((config & 0x03) << 6) | (length >> 11),
        (length >> 3) & 0xFF,
        ((length & 0x07) << 5) | (fullness >> 6),
        (fullness & 0x3F) << 2,
    ])
    return header + bytes(frame)


class _TSMuxer:
    """Packs PES packets into transport stream packets, with PAT and PMT."""

    def __init__(self, sink: MultiAccessBuffer) -> None:
        self._sink = sink
        self._streams: list[tuple[int, int]] = []
        self.pcr_pid = 0
        self._counters: dict[int, int] = {}
        self._since_tables: int | None = None

    def add_elementary_stream(self, pid: int, stream_type: int) -> None:
        self._streams.append((pid, stream_type))

    def write_data(self, pid: int, adaptation: _AdaptationField | None, pes: bytes) -> int:
        if all(stream_pid != pid for stream_pid, _ in self._streams):
            raise ValueError(f"PID {pid} not found")

        force_tables = (
            adaptation is not None and adaptation.random_access and pid == self.pcr_pid
        )
        out = bytearray()
        if (force_tables or self._since_tables is None
                or self._since_tables >= _TABLES_RETRANSMIT_PERIOD):
            out += self._tables()
            self._since_tables = 0
        else:
            self._since_tables += 1

        out += self._packetize(pid, adaptation, pes)
        self._sink.write(bytes(out))
        return len(out)

    def _packet(self, pid: int, unit_start: bool, adaptation: bytes, payload: bytes) -> bytes:
        counter = self._counters.get(pid, 0)
        self._counters[pid] = (counter + 1) & 0x0F
        control = 0x30 if adaptation else 0x10
        header = bytes([
            0x47,
            (0x40 if unit_start else 0) | ((pid >> 8) & 0x1F),
            pid & 0xFF,
            control | counter,
        ])
        return header + adaptation + payload

    def _table_packet(self, pid: int, section: bytes) -> bytes:
        payload = b"\x00" + section
        payload += b"\xff" * (_PAYLOAD_SIZE - len(payload))
        return self._packet(pid, True, b"", payload)

    def _tables(self) -> bytes:
        pat = _section(
            0x00,
            _TRANSPORT_STREAM_ID,
            struct.pack(">HH", _PROGRAM_NUMBER, 0xE000 | PMT_PID),
        )
        pmt_body = struct.pack(">HH", 0xE000 | self.pcr_pid, 0xF000) + b"".join(
            bytes([stream_type]) + struct.pack(">HH", 0xE000 | pid, 0xF000)
            for pid, stream_type in self._streams
        )
        pmt = _section(0x02, _PROGRAM_NUMBER, pmt_body)
        return self._table_packet(0, pat) + self._table_packet(PMT_PID, pmt)

    def _packetize(self, pid: int, adaptation: _AdaptationField | None, pes: bytes) -> bytes:
        packets = []
        pos = 0
        first = True
        while first or pos < len(pes):
            field = adaptation if first else None
            minimal = _encode_adaptation(field, 0)
            room = _PAYLOAD_SIZE - len(minimal)
            chunk = pes[pos:pos + room]
            if len(chunk) < room:
                field_bytes = _encode_adaptation(field, room - len(chunk))
            else:
                field_bytes = minimal
            packets.append(self._packet(pid, first, field_bytes, chunk))
            pos += len(chunk)
            first = False
        return b"".join(packets)


class TSFile:
    """One MPEG-TS segment, readable while it is being written."""

    def __init__(self, video_track, audio_track) -> None:
        self._video_track = video_track
        self.name = str(int(time.time()))
        self._buf = MultiAccessBuffer()
        self._mux = _TSMuxer(self._buf)

        if video_track is not None:
            self._mux.add_elementary_stream(VIDEO_PID, _STREAM_TYPE_H264)
        if audio_track is not None:
            self._mux.add_elementary_stream(AUDIO_PID, _STREAM_TYPE_AAC)
        self._mux.pcr_pid = VIDEO_PID if video_track is not None else AUDIO_PID

        self.first_packet_written = False
        self._min_pts = timedelta(0)
        self._max_pts = timedelta(0)
        self._start_pcr = time.monotonic()

    def close(self) -> None:
        """Mark the segment as complete."""
        self._buf.close()

    def duration(self) -> timedelta:
        """Return the span between the lowest and the highest PTS written."""
        return self._max_pts - self._min_pts

    def set_start_pcr(self, start_pcr: float) -> None:
        """Set the monotonic clock reading that PCR values count from."""
        self._start_pcr = start_pcr

    def new_reader(self) -> MultiAccessBufferReader:
        """Return a reader of the segment from its start."""
        return self._buf.new_reader()

    def _update_pts(self, pts: timedelta) -> None:
        if not self.first_packet_written:
            self.first_packet_written = True
            self._min_pts = pts
            self._max_pts = pts
        else:
            self._min_pts = min(self._min_pts, pts)
            self._max_pts = max(self._max_pts, pts)

    def _pcr(self) -> int:
        return int((time.monotonic() - self._start_pcr) * _CLOCK_RATE)

    def write_h264(self, sps: bytes, pps: bytes, dts: timedelta, pts: timedelta,
                   is_idr: bool, nalus) -> None:
        """Write an access unit made of H264 NAL units sharing a PTS."""
        self._update_pts(pts)

        filtered = [_AUD]
        for nalu in nalus:
            typ = nalu[0] & 0x1F
            if typ in (NALUType.SPS, NALUType.PPS, NALUType.ACCESS_UNIT_DELIMITER):
                continue
            if typ == NALUType.IDR:
                filtered.append(bytes(sps))
                filtered.append(bytes(pps))
            filtered.append(bytes(nalu))

        # a PCR goes with every IDR
        adaptation = _AdaptationField(random_access=True, pcr=self._pcr()) if is_idr else None

        pes = _pes_packet(_STREAM_ID_VIDEO, _ticks(pts), _ticks(dts), encode_annexb(filtered))
        self._mux.write_data(VIDEO_PID, adaptation, pes)

    def write_aac(self, sample_rate: int, channel_count: int, pts: timedelta, au: bytes) -> None:
        """Write one AAC access unit, wrapped in ADTS."""
        if self._video_track is None:
            self._update_pts(pts)

        adts = _encode_adts(sample_rate, channel_count, au)

        # when audio is the only track, a PCR goes with every AU
        pcr = self._pcr() if self._video_track is None else None
        adaptation = _AdaptationField(random_access=True, pcr=pcr)

        pes = _pes_packet(_STREAM_ID_AUDIO, _ticks(pts), None, adts, len(adts) + 8)
        self._mux.write_data(AUDIO_PID, adaptation, pes)