"""RTMP connections at the packet level: stream metadata, tracks and AMF0."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Protocol
from urllib.parse import parse_qs, urlsplit

_CODEC_H264 = 7
_CODEC_AAC = 10

_AAC_SAMPLE_RATES = (
    96000, 88200, 64000, 48000, 44100, 32000, 24000,
    22050, 16000, 12000, 11025, 8000, 7350,
)


class PacketType(Enum):
    """Kinds of RTMP media packets."""

    H264 = "h264"
    AAC = "aac"
    METADATA = "metadata"
    H264_DECODER_CONFIG = "h264_decoder_config"
    AAC_DECODER_CONFIG = "aac_decoder_config"


@dataclass(frozen=True)
class Packet:
    """An RTMP media packet; time is the DTS, ctime the PTS-DTS offset."""

    type: PacketType
    data: bytes = b""
    time: timedelta = timedelta(0)
    ctime: timedelta = timedelta(0)


@dataclass(frozen=True)
class H264Track:
    """An H264 video track described by its SPS and PPS."""

    sps: bytes
    pps: bytes
    payload_type: int = 96

    def __post_init__(self) -> None:
        object.__setattr__(self, "sps", bytes(self.sps))
        object.__setattr__(self, "pps", bytes(self.pps))

    @property
    def clock_rate(self) -> int:
        return 90000


def _parse_audio_specific_config(config: bytes) -> tuple[int, int, int]:
    value = int.from_bytes(config, "big")
    total = len(config) * 8
    pos = 0

    def read(n: int) -> int:
        nonlocal pos
        if pos + n > total:
            raise ValueError("invalid AAC config: too short")
        pos += n
        return (value >> (total - pos)) & ((1 << n) - 1)

    object_type = read(5)
    if object_type == 31:
        object_type = 32 + read(6)

    index = read(4)
    if index == 15:
        sample_rate = read(24)
    elif index < len(_AAC_SAMPLE_RATES):
        sample_rate = _AAC_SAMPLE_RATES[index]
    else:
        raise ValueError(f"invalid AAC sample rate index: {index}")

    channel_config = read(4)
    if 1 <= channel_config <= 6:
        channel_count = channel_config
    elif channel_config == 7:
        channel_count = 8
    else:
        raise ValueError(f"unsupported AAC channel configuration: {channel_config}")

    return object_type, sample_rate, channel_count


@dataclass(frozen=True)
class AACTrack:
    """An AAC audio track described by its MPEG-4 AudioSpecificConfig."""

    config: bytes
    payload_type: int = 96
    object_type: int = field(init=False)
    sample_rate: int = field(init=False)
    channel_count: int = field(init=False)

    def __post_init__(self) -> None:
        config = bytes(self.config)
        object_type, sample_rate, channel_count = _parse_audio_specific_config(config)
        object.__setattr__(self, "config", config)
        object.__setattr__(self, "object_type", object_type)
        object.__setattr__(self, "sample_rate", sample_rate)
        object.__setattr__(self, "channel_count", channel_count)

    @property
    def clock_rate(self) -> int:
        return self.sample_rate


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self.pos = 0

    def remaining(self) -> int:
        return len(self._data) - self.pos

    def take(self, n: int) -> bytes:
        if self.pos + n > len(self._data):
            raise ValueError("unexpected end of data")
        chunk = self._data[self.pos:self.pos + n]
        self.pos += n
        return chunk

    def peek(self) -> int:
        if self.pos >= len(self._data):
            raise ValueError("unexpected end of data")
        return self._data[self.pos]

    def u8(self) -> int:
        return self.take(1)[0]

    def u16(self) -> int:
        return struct.unpack(">H", self.take(2))[0]

    def u32(self) -> int:
        return struct.unpack(">I", self.take(4))[0]


def _encode_avc_config(sps: bytes, pps: bytes) -> bytes:
    if len(sps) < 4:
        raise ValueError("SPS too short")
    return (
        bytes([1, sps[1], sps[2], sps[3], 0xFF, 0xE1])
        + struct.pack(">H", len(sps)) + sps
        + b"\x01" + struct.pack(">H", len(pps)) + pps
    )


def _decode_avc_config(data: bytes) -> tuple[list[bytes], list[bytes]]:
    reader = _Reader(data)
    header = reader.take(6)
    if header[0] != 1:
        raise ValueError("unsupported AVC configuration version")
    sps = [reader.take(reader.u16()) for _ in range(header[5] & 0x1F)]
    pps = [reader.take(reader.u16()) for _ in range(reader.u8())]
    if not sps or not pps:
        raise ValueError("AVC configuration lacks SPS or PPS")
    return sps, pps


# --- AMF0 -----------------------------------------------------------------

def _encode_key(key: str) -> bytes:
    raw = key.encode()
    if len(raw) > 0xFFFF:
        raise ValueError("AMF0 key too long")
    return struct.pack(">H", len(raw)) + raw


def encode_amf0(value: Any) -> bytes:
    """Encode one value in AMF0."""
    if isinstance(value, bool):
        return b"\x01" + (b"\x01" if value else b"\x00")
    if isinstance(value, (int, float)):
        return b"\x00" + struct.pack(">d", float(value))
    if isinstance(value, str):
        raw = value.encode()
        if len(raw) > 0xFFFF:
            return b"\x0c" + struct.pack(">I", len(raw)) + raw
        return b"\x02" + struct.pack(">H", len(raw)) + raw
    if value is None:
        return b"\x05"
    if isinstance(value, dict):
        body = b"".join(_encode_key(str(k)) + encode_amf0(v) for k, v in value.items())
        return b"\x03" + body + b"\x00\x00\x09"
    if isinstance(value, (list, tuple)):
        return b"\x0a" + struct.pack(">I", len(value)) + b"".join(map(encode_amf0, value))
    if isinstance(value, datetime):
        millis = value.timestamp() * 1000.0
        return b"\x0b" + struct.pack(">dh", millis, 0)
    raise TypeError(f"cannot encode {type(value).__name__} in AMF0")


def _decode_object_body(reader: _Reader) -> dict[str, Any]:
    result: dict[str, Any] = {}
    while True:
        key_len = reader.u16()
        if key_len == 0 and reader.peek() == 0x09:
            reader.take(1)
            return result
        key = reader.take(key_len).decode()
        result[key] = _decode_value(reader)


def _decode_value(reader: _Reader) -> Any:
    marker = reader.u8()
    if marker == 0x00:
        return struct.unpack(">d", reader.take(8))[0]
    if marker == 0x01:
        return reader.u8() != 0
    if marker == 0x02:
        return reader.take(reader.u16()).decode()
    if marker == 0x03:
        return _decode_object_body(reader)
    if marker in (0x05, 0x06):
        return None
    if marker == 0x08:
        reader.u32()
        return _decode_object_body(reader)
    if marker == 0x0A:
        return [_decode_value(reader) for _ in range(reader.u32())]
    if marker == 0x0B:
        millis, _ = struct.unpack(">dh", reader.take(10))
        return datetime.fromtimestamp(millis / 1000.0, timezone.utc)
    if marker == 0x0C:
        return reader.take(reader.u32()).decode()
    raise ValueError(f"unsupported AMF0 marker 0x{marker:02x}")


def decode_amf0(data: bytes) -> list[Any]:
    """Decode a sequence of AMF0 values."""
    reader = _Reader(data)
    values = []
    while reader.remaining():
        values.append(_decode_value(reader))
    return values


# --- connection -----------------------------------------------------------

def path_name_and_query(url: str) -> tuple[str, dict[str, list[str]]]:
    """Return the path name and query of a URL, without stray slashes."""
    parts = urlsplit(url.rstrip("/"))
    return parts.path.lstrip("/"), parse_qs(parts.query, keep_blank_values=True)


class _PacketTransport(Protocol):
    def read_packet(self) -> Packet: ...

    def write_packet(self, pkt: Packet) -> None: ...

    def flush(self) -> None: ...


def _describe(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


def _has_codec(metadata: dict, key: str, number: int, name: str, kind: str) -> bool:
    if key not in metadata:
        return False
    value = metadata[key]
    if isinstance(value, float):
        if value == 0:
            return False
        if value == number:
            return True
    elif isinstance(value, str) and value == name:
        return True
    raise ValueError(f"unsupported {kind} codec {_describe(value)}")


class Conn:
    """An RTMP connection on top of a packet transport."""

    def __init__(self, transport: _PacketTransport, url: str = "", publishing: bool = False) -> None:
        self.transport = transport
        self.url = url
        self.publishing = publishing

    def read_packet(self) -> Packet:
        """Read the next packet."""
        return self.transport.read_packet()

    def write_packet(self, pkt: Packet) -> None:
        """Write a packet and flush it."""
        self.transport.write_packet(pkt)
        self.transport.flush()

    def _read_metadata_map(self) -> dict:
        pkt = self.read_packet()
        if pkt.type is not PacketType.METADATA:
            raise ValueError("first packet must be metadata")
        values = decode_amf0(pkt.data)
        if len(values) != 1 or not isinstance(values[0], dict):
            raise ValueError("invalid metadata")
        return values[0]

    def read_metadata(self) -> tuple[H264Track | None, AACTrack | None]:
        """Read the tracks announced by a publishing peer."""
        metadata = self._read_metadata_map()
        has_video = _has_codec(metadata, "videocodecid", _CODEC_H264, "avc1", "video")
        has_audio = _has_codec(metadata, "audiocodecid", _CODEC_AAC, "mp4a", "audio")
        if not has_video and not has_audio:
            raise ValueError("stream has no tracks")

        video: H264Track | None = None
        audio: AACTrack | None = None

        while True:
            pkt = self.read_packet()

            if pkt.type is PacketType.H264_DECODER_CONFIG:
                if not has_video:
                    raise ValueError("unexpected video packet")
                if video is not None:
                    raise ValueError("video track setupped twice")
                sps, pps = _decode_avc_config(pkt.data)
                video = H264Track(sps[0], pps[0])

            elif pkt.type is PacketType.AAC_DECODER_CONFIG:
                if not has_audio:
                    raise ValueError("unexpected audio packet")
                if audio is not None:
                    raise ValueError("audio track setupped twice")
                audio = AACTrack(pkt.data)

            if (not has_video or video is not None) and (not has_audio or audio is not None):
                return video, audio

    def write_metadata(self, video_track: H264Track | None, audio_track: AACTrack | None) -> None:
        """Announce tracks to a reading peer."""
        metadata = {
            "videodatarate": 0.0,
            "videocodecid": float(_CODEC_H264) if video_track is not None else 0.0,
            "audiodatarate": 0.0,
            "audiocodecid": float(_CODEC_AAC) if audio_track is not None else 0.0,
        }
        self.write_packet(Packet(PacketType.METADATA, encode_amf0(metadata)))

        if video_track is not None:
            config = _encode_avc_config(video_track.sps, video_track.pps)
            self.write_packet(Packet(PacketType.H264_DECODER_CONFIG, config))

        if audio_track is not None:
            self.write_packet(Packet(PacketType.AAC_DECODER_CONFIG, audio_track.config))