"""Decode timestamp estimation from presentation timestamps."""

from __future__ import annotations

from datetime import timedelta

_MILLISECOND = timedelta(milliseconds=1)


class DTSEstimator:
    """Estimates decode timestamps of an H264 stream that may hold B-frames."""

    def __init__(self) -> None:
        self._initializing = 2
        self._prev_dts = timedelta(0)
        self._prev_pts = timedelta(0)
        self._prev_prev_pts = timedelta(0)

    def feed(self, pts: timedelta) -> timedelta:
        """Take the next PTS and return the estimated DTS."""
        if self._initializing > 0:
            self._initializing -= 1
            dts = self._prev_dts + _MILLISECOND
        elif pts > self._prev_pts:
            # P or I frame
            if self._prev_pts < self._prev_prev_pts:
                # previous frame was B: reuse its timestamp
                dts = self._prev_pts
            else:
                # previous frame was P or I: stay behind to keep DTS monotonic
                dts = self._prev_prev_pts + _MILLISECOND
        else:
            # B frame
            dts = self._prev_dts + _MILLISECOND

        self._prev_prev_pts = self._prev_pts
        self._prev_pts = pts
        self._prev_dts = dts
        return dts