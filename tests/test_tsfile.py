import struct
import time
from datetime import timedelta

import pytest

from mediarelay.annexb import encode_annexb
from mediarelay.rtmp import AACTrack, H264Track
from mediarelay.tsfile import TSFile

SPS = bytes([0x07, 0x01, 0x02, 0x03])
PPS = bytes([0x08])


def _video():
    return H264Track(SPS, PPS)


def _audio():
    return AACTrack(bytes([17, 144]))


def _packets(data):
    return [data[i:i + 188] for i in range(0, len(data), 188)]


def _pid(pkt):
    return ((pkt[1] << 8) | pkt[2]) & 0x1FFF


def _afc(pkt):
    return (pkt[3] >> 4) & 0x03


def _payload(pkt):
    if _afc(pkt) == 3:
        return pkt[5 + pkt[4]:]
    return pkt[4:]


def _decode_timestamp(b):
    return (((b[0] >> 1) & 0x07) << 30) | (b[1] << 22) | ((b[2] >> 1) << 15) | (b[3] << 7) | (b[4] >> 1)


def _finish(ts):
    ts.close()
    return ts.new_reader().read()


def test_tables_then_video_pes():
    ts = TSFile(_video(), _audio())
    ts.write_h264(SPS, PPS, timedelta(seconds=2), timedelta(seconds=2), True,
                  [b"\x05", b"\x09", b"\x08", b"\x07"])
    data = _finish(ts)
    assert len(data) % 188 == 0
    pkts = _packets(data)
    assert [_pid(p) for p in pkts] == [0, 4096, 256]
    assert [_afc(p) for p in pkts] == [1, 1, 3]
    assert all(p[0] == 0x47 for p in pkts)
    pes = _payload(pkts[2])
    assert pes[19:] == encode_annexb([bytes([9, 240]), SPS, PPS, b"\x05"])


def test_pat_bytes():
    ts = TSFile(_video(), None)
    ts.write_h264(SPS, PPS, timedelta(seconds=1), timedelta(seconds=1), True, [b"\x05"])
    pkts = _packets(_finish(ts))
    assert pkts[0][:21] == bytes.fromhex("474000100000b00d0001c100000001f0002ab104b2")


def test_pmt_lists_streams():
    ts = TSFile(_video(), _audio())
    ts.write_h264(SPS, PPS, timedelta(seconds=1), timedelta(seconds=1), True, [b"\x05"])
    pkts = _packets(_finish(ts))
    section = _payload(pkts[1])[1:]
    pcr_pid = ((section[8] & 0x1F) << 8) | section[9]
    assert pcr_pid == 256
    assert section[12] == 0x1B
    assert ((section[13] & 0x1F) << 8) | section[14] == 256
    assert ((section[18] & 0x1F) << 8) | section[19] == 257


def test_pts_dts_encoding():
    ts = TSFile(_video(), None)
    pts = timedelta(seconds=2)
    dts = timedelta(seconds=1.5)
    ts.write_h264(SPS, PPS, dts, pts, True, [b"\x05"])
    pes = _payload(_packets(_finish(ts))[2])
    assert _decode_timestamp(pes[9:14]) / 90000 == pts.total_seconds()
    assert _decode_timestamp(pes[14:19]) / 90000 == dts.total_seconds()


def test_duration_tracks_min_and_max():
    ts = TSFile(_video(), None)
    for seconds in (3, 1, 5):
        pts = timedelta(seconds=seconds)
        ts.write_h264(SPS, PPS, pts, pts, True, [b"\x05"])
    assert ts.duration() == timedelta(seconds=4)
    assert ts.first_packet_written


def test_tables_not_repeated_for_non_idr():
    ts = TSFile(_video(), None)
    ts.write_h264(SPS, PPS, timedelta(seconds=1), timedelta(seconds=1), True, [b"\x05"])
    ts.write_h264(SPS, PPS, timedelta(seconds=2), timedelta(seconds=2), False, [b"\x01"])
    pkts = _packets(_finish(ts))
    assert [_pid(p) for p in pkts] == [0, 4096, 256, 256]


def test_large_payload_spans_packets():
    ts = TSFile(_video(), None)
    idr = b"\x05" + bytes(range(256)) * 4
    ts.write_h264(SPS, PPS, timedelta(seconds=1), timedelta(seconds=1), True, [idr])
    data = _finish(ts)
    pkts = _packets(data)
    assert all(len(p) == 188 for p in pkts)
    video = [p for p in pkts if _pid(p) == 256]
    assert len(video) > 1
    assert [p[3] & 0x0F for p in video] == list(range(len(video)))
    pes = b"".join(_payload(p) for p in video)
    assert pes[19:] == encode_annexb([bytes([9, 240]), SPS, PPS, idr])


def test_audio_only_adts():
    ts = TSFile(None, _audio())
    au = bytes(range(10))
    ts.write_aac(48000, 2, timedelta(seconds=1), au)
    pkts = _packets(_finish(ts))
    assert [_pid(p) for p in pkts] == [0, 4096, 257]
    pes = _payload(pkts[2])
    assert pes[3] == 192
    (packet_length,) = struct.unpack(">H", pes[4:6])
    assert packet_length == len(pes) - 6
    adts = pes[14:]
    assert adts[0] == 0xFF and adts[1] >> 4 == 0xF
    frame_length = ((adts[3] & 0x03) << 11) | (adts[4] << 3) | (adts[5] >> 5)
    assert frame_length == len(adts)
    assert adts[-len(au):] == au


def test_audio_only_updates_duration():
    ts = TSFile(None, _audio())
    ts.write_aac(48000, 2, timedelta(seconds=1), b"\x01")
    ts.write_aac(48000, 2, timedelta(seconds=2), b"\x02")
    assert ts.duration() == timedelta(seconds=1)


def test_audio_with_video_keeps_duration():
    ts = TSFile(_video(), _audio())
    ts.write_h264(SPS, PPS, timedelta(seconds=2), timedelta(seconds=2), True, [b"\x05"])
    ts.write_aac(48000, 2, timedelta(seconds=5), b"\x01")
    assert ts.duration() == timedelta(0)


def test_unsupported_sample_rate():
    ts = TSFile(None, _audio())
    with pytest.raises(ValueError):
        ts.write_aac(12345, 2, timedelta(seconds=1), b"\x01")


def test_write_h264_without_video_track():
    ts = TSFile(None, _audio())
    with pytest.raises(ValueError):
        ts.write_h264(SPS, PPS, timedelta(seconds=1), timedelta(seconds=1), True, [b"\x05"])


def test_pcr_counts_from_start():
    ts = TSFile(_video(), None)
    ts.set_start_pcr(time.monotonic() - 10)
    ts.write_h264(SPS, PPS, timedelta(seconds=1), timedelta(seconds=1), True, [b"\x05"])
    pkt = _packets(_finish(ts))[2]
    base = int.from_bytes(pkt[6:12], "big") >> 15
    assert 10 <= base / 90000 < 11


def test_name_is_unix_time():
    ts = TSFile(_video(), None)
    assert ts.name.isdigit()
    assert abs(int(ts.name) - time.time()) < 5