"""HLS muxer: splits H264 and AAC into MPEG-TS segments and playlists."""

from __future__ import annotations

import math
import threading
import time
from datetime import timedelta
from decimal import Decimal

from .dtsestimator import DTSEstimator
from .multiaccessbuffer import MultiAccessBufferReader
from .nalutype import NALUType
from .tsfile import TSFile

# an offset avoids negative PTS values and PTS < DTS during startup
PTS_OFFSET = timedelta(seconds=2)

SEGMENT_MIN_AU_COUNT = 100


def _format_seconds(value: timedelta) -> str:
    seconds = value.total_seconds()
    if seconds == int(seconds):
        return str(int(seconds))
    return format(Decimal(repr(seconds)), "f")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class Muxer:
    """Builds HLS playlists and MPEG-TS segments from incoming access units."""

    def __init__(self, segment_count: int, segment_duration, video_track, audio_track) -> None:
        if not isinstance(segment_duration, timedelta):
            segment_duration = timedelta(seconds=segment_duration)

        self._segment_count = segment_count
        self._segment_duration = segment_duration
        self._video_track = video_track
        self._audio_track = audio_track

        self._sps = bytes(video_track.sps) if video_track is not None else b""
        self._pps = bytes(video_track.pps) if video_track is not None else b""
        self._sample_rate = audio_track.sample_rate if audio_track is not None else 0
        self._channel_count = audio_track.channel_count if audio_track is not None else 0

        self._dts_estimator = DTSEstimator()
        self._audio_au_count = 0
        self._current = TSFile(video_track, audio_track)
        self._queue: list[TSFile] = [self._current]
        self._by_name: dict[str, TSFile] = {self._current.name: self._current}
        self._delete_count = 0
        self._lock = threading.Lock()
        self._start_pcr = 0.0
        self._start_pts = timedelta(0)

    def close(self) -> None:
        """Close the segment being written."""
        self._current.close()

    def _rotate(self) -> None:
        self._current.close()
        self._current = TSFile(self._video_track, self._audio_track)
        self._current.set_start_pcr(self._start_pcr)
        self._by_name[self._current.name] = self._current
        self._queue.append(self._current)
        if len(self._queue) > self._segment_count:
            oldest = self._queue.pop(0)
            self._by_name.pop(oldest.name, None)
            self._delete_count += 1

    def _start(self, pts: timedelta) -> None:
        self._start_pcr = time.monotonic()
        self._start_pts = pts
        self._current.set_start_pcr(self._start_pcr)

    def write_h264(self, pts: timedelta, nalus) -> None:
        """Write H264 NAL units sharing one PTS."""
        if self._video_track is None:
            raise ValueError("the muxer has no video track")

        idr_present = any((nalu[0] & 0x1F) == NALUType.IDR for nalu in nalus)

        with self._lock:
            # skip groups until one with an IDR arrives
            if not self._current.first_packet_written and not idr_present:
                return

            if (idr_present
                    and self._current.first_packet_written
                    and self._current.duration() >= self._segment_duration):
                self._rotate()
            elif not self._current.first_packet_written:
                self._start(pts)

            pts = pts + PTS_OFFSET - self._start_pts
            self._current.write_h264(
                self._sps,
                self._pps,
                self._dts_estimator.feed(pts),
                pts,
                idr_present,
                nalus,
            )

    def write_aac(self, pts: timedelta, aus) -> None:
        """Write AAC access units that start at one PTS."""
        if self._audio_track is None:
            raise ValueError("the muxer has no audio track")

        with self._lock:
            if self._video_track is None:
                if (self._audio_au_count >= SEGMENT_MIN_AU_COUNT
                        and self._current.first_packet_written
                        and self._current.duration() >= self._segment_duration):
                    self._audio_au_count = 0
                    self._rotate()
                elif not self._current.first_packet_written:
                    self._start(pts)
            elif not self._current.first_packet_written:
                return

            pts = pts + PTS_OFFSET - self._start_pts

            for index, au in enumerate(aus):
                au_pts = pts + timedelta(seconds=index * 1000 / self._sample_rate)
                self._current.write_aac(self._sample_rate, self._channel_count, au_pts, au)
                self._audio_au_count += 1

    def primary_playlist(self) -> bytes:
        """Return the primary playlist."""
        codecs = []
        if self._video_track is not None:
            codecs.append("avc1." + self._sps[1:4].hex())
        if self._audio_track is not None:
            codecs.append("mp4a.40.2")

        content = (
            "#EXTM3U\n"
            '#EXT-X-STREAM-INF:BANDWIDTH=200000,CODECS="' + ",".join(codecs) + '"\n'
            "stream.m3u8\n"
        )
        return content.encode()

    def stream_playlist(self) -> bytes:
        """Return the stream playlist listing the available segments."""
        lines = ["#EXTM3U", "#EXT-X-VERSION:3", "#EXT-X-ALLOW-CACHE:NO"]

        with self._lock:
            # EXTINF, rounded to the nearest integer, must not exceed the target duration
            target = max(
                [math.ceil(self._segment_duration.total_seconds())]
                + [_round_half_up(f.duration().total_seconds()) for f in self._queue]
            )
            lines.append(f"#EXT-X-TARGETDURATION:{target}")
            lines.append(f"#EXT-X-MEDIA-SEQUENCE:{self._delete_count}")

            for segment in self._queue:
                lines.append(f"#EXTINF:{_format_seconds(segment.duration())},")
                lines.append(segment.name + ".ts")

        return ("\n".join(lines) + "\n").encode()

    def ts_file(self, fname: str) -> MultiAccessBufferReader | None:
        """Return a reader of a segment by file name, or None if unknown."""
        name = fname.removesuffix(".ts")
        with self._lock:
            segment = self._by_name.get(name)
        if segment is None:
            return None
        return segment.new_reader()