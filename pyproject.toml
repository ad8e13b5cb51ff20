[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mediarelay"
version = "0.1.0"
description = "Building blocks for relaying live video: H264 bitstream helpers, HLS muxing, RTMP metadata and supporting utilities"
requires-python = ">=3.10"
dependencies = []
keywords = ["h264", "hls", "rtmp", "mpeg-ts", "amf0", "rtcp", "streaming", "video"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Video",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["mediarelay"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
