"""H264 NAL unit types."""

from __future__ import annotations

from enum import IntEnum


class NALUType(IntEnum):
    """Standard H264 NAL unit types."""

    NON_IDR = 1
    DATA_PARTITION_A = 2
    DATA_PARTITION_B = 3
    DATA_PARTITION_C = 4
    IDR = 5
    SEI = 6
    SPS = 7
    PPS = 8
    ACCESS_UNIT_DELIMITER = 9
    END_OF_SEQUENCE = 10
    END_OF_STREAM = 11
    FILLER_DATA = 12
    SPS_EXTENSION = 13
    PREFIX = 14
    SUBSET_SPS = 15
    RESERVED16 = 16
    RESERVED17 = 17
    RESERVED18 = 18
    SLICE_LAYER_WITHOUT_PARTITIONING = 19
    SLICE_EXTENSION = 20
    SLICE_EXTENSION_DEPTH = 21
    RESERVED22 = 22
    RESERVED23 = 23

    def __str__(self) -> str:
        return _NAMES[self]


_NAMES = {
    NALUType.NON_IDR: "NonIDR",
    NALUType.DATA_PARTITION_A: "DataPartitionA",
    NALUType.DATA_PARTITION_B: "DataPartitionB",
    NALUType.DATA_PARTITION_C: "DataPartitionC",
    NALUType.IDR: "IDR",
    NALUType.SEI: "SEI",
    NALUType.SPS: "SPS",
    NALUType.PPS: "PPS",
    NALUType.ACCESS_UNIT_DELIMITER: "AccessUnitDelimiter",
    NALUType.END_OF_SEQUENCE: "EndOfSequence",
    NALUType.END_OF_STREAM: "EndOfStream",
    NALUType.FILLER_DATA: "FillerData",
    NALUType.SPS_EXTENSION: "SPSExtension",
    NALUType.PREFIX: "Prefix",
    NALUType.SUBSET_SPS: "SubsetSPS",
    NALUType.RESERVED16: "Reserved16",
    NALUType.RESERVED17: "Reserved17",
    NALUType.RESERVED18: "Reserved18",
    NALUType.SLICE_LAYER_WITHOUT_PARTITIONING: "SliceLayerWithoutPartitioning",
    NALUType.SLICE_EXTENSION: "SliceExtension",
    NALUType.SLICE_EXTENSION_DEPTH: "SliceExtensionDepth",
    NALUType.RESERVED22: "Reserved22",
    NALUType.RESERVED23: "Reserved23",
}


def describe_nalu_type(value: int) -> str:
    """Return the display name of a NAL unit type, known or not."""
    try:
        return _NAMES[NALUType(value)]
    except ValueError:
        return f"unknown ({int(value)})"


def nalu_type_of(nalu: bytes) -> NALUType | int:
    """Return the type of a NAL unit from its header byte.

    Types outside the standard table are returned as plain integers.
    """
    if not nalu:
        raise ValueError("empty NALU")
    value = nalu[0] & 0x1F
    try:
        return NALUType(value)
    except ValueError:
        return value