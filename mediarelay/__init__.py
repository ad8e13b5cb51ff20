"""Building blocks for relaying live video: H264 bitstreams, HLS muxing, RTMP metadata and utilities."""

__version__ = "0.1.0"