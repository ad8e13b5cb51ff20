# mediarelay

Building blocks for relaying live video between RTMP peers and HLS clients:
H264 bitstream helpers, an MPEG-TS/HLS muxer, RTMP stream metadata and a few
supporting utilities. It has no third-party dependencies.

## Modules

- `mediarelay.annexb`: `decode_annexb` splits an Annex-B byte stream (3- or
  4-byte start codes) into NAL units, raising `ValueError` on a missing
  initial delimiter or an empty NAL unit; `encode_annexb` joins NAL units
  with 4-byte start codes.
- `mediarelay.avcc`: `decode_avcc` / `encode_avcc` do the same for the
  length-prefixed AVCC format. Decoding raises `ValueError` on a truncated
  length or payload and on empty input.
- `mediarelay.anticompetition`: `anti_competition_add` /
  `anti_competition_remove` insert and strip emulation-prevention bytes.
- `mediarelay.nalutype`: the `NALUType` enumeration, `nalu_type_of` (type of
  a NAL unit from its header byte; unknown types come back as plain ints) and
  `describe_nalu_type` (display name, or `"unknown (N)"`).
- `mediarelay.dtsestimator`: `DTSEstimator.feed(pts)` takes a PTS as a
  `datetime.timedelta` and returns an estimated DTS, handling B-frames.
- `mediarelay.multiaccessbuffer`: `MultiAccessBuffer`, a growing byte buffer
  that several `MultiAccessBufferReader`s follow independently while it is
  written. `read(size)` blocks until data is available and returns `b""`
  once the buffer is closed and fully read.
- `mediarelay.tsfile`: `TSFile`, one MPEG-TS segment holding an H264 stream
  (PID 256) and/or an AAC stream in ADTS (PID 257), readable while written.
- `mediarelay.muxer`: `Muxer` splits H264 and AAC access units into segments
  and serves the primary playlist, the stream playlist and the segments.
- `mediarelay.rtmp`: `encode_amf0` / `decode_amf0`, the `Packet`,
  `PacketType`, `H264Track` and `AACTrack` types, a `Conn` that exchanges
  stream metadata (`read_metadata`, `write_metadata`) over a packet
  transport, and `path_name_and_query` for RTMP URLs.
- `mediarelay.rtcpsenderset`: `RTCPSenderSet` accounts for outgoing RTP
  packets per track and calls back with an RTCP sender report for every
  active track every ten seconds.
- `mediarelay.externalcmd`: `Cmd` runs a command in the background with
  `RTSP_PATH` and `RTSP_PORT` set from an `Environment`, restarting it five
  seconds after it exits when asked; `close()` stops it.
- `mediarelay.logger`: `Logger` writes timestamped lines at or above a
  `Level` to the `Destination`s standard output (coloured), a file or syslog.
  `format_entry` renders a single line.
- `mediarelay.rlimit`: `raise_limit` lifts the soft open-file limit and
  returns the new value (`None` where the platform has no such limit).

## Installing

```
pip install .
```

## Examples

```python
from mediarelay.annexb import decode_annexb, encode_annexb
from mediarelay.avcc import encode_avcc

nalus = decode_annexb(b"\x00\x00\x01\xaa\xbb\x00\x00\x01\xcc\xdd")
assert nalus == [b"\xaa\xbb", b"\xcc\xdd"]
print(encode_avcc(nalus).hex())
print(encode_annexb(nalus).hex())
```

```python
from datetime import timedelta
from mediarelay.dtsestimator import DTSEstimator

est = DTSEstimator()
for ms in (2000, 1800, 1600, 2200):
    print(est.feed(timedelta(milliseconds=ms)))
```

```python
from datetime import timedelta
from mediarelay.muxer import Muxer
from mediarelay.rtmp import AACTrack, H264Track

video = H264Track(sps=b"\x07\x01\x02\x03", pps=b"\x08")
audio = AACTrack(config=bytes([17, 144]))   # AAC LC, 48 kHz, stereo

muxer = Muxer(3, timedelta(seconds=1), video, audio)
muxer.write_h264(timedelta(seconds=2), [b"\x05"])             # IDR starts a segment
muxer.write_aac(timedelta(seconds=2), [b"\x01\x02\x03\x04"])
print(muxer.primary_playlist().decode())
print(muxer.stream_playlist().decode())
muxer.close()
```

`Muxer.ts_file("<name>.ts")` returns a reader of a listed segment, or `None`
when the name is unknown. Timestamps are `datetime.timedelta` values; the
segment duration given to `Muxer` may also be a number of seconds.

## What it does not do

This is a library, not a server. It opens no sockets and has no command-line
program. `rtmp.Conn` works at the packet level on top of a transport object
supplied by the caller (with `read_packet`, `write_packet` and `flush`); the
RTMP handshake and chunk framing are not included. There is no RTSP support,
no RTP packetising or depacketising of H264 and AAC, and no HTTP serving of
the HLS playlists and segments.

## Running the tests

```
pip install .[test]
pytest
```