import pytest

from mediarelay.nalutype import NALUType, describe_nalu_type, nalu_type_of


@pytest.mark.parametrize(
    "value, name",
    [
        (NALUType.NON_IDR, "NonIDR"),
        (NALUType.IDR, "IDR"),
        (NALUType.SPS, "SPS"),
        (NALUType.PPS, "PPS"),
        (NALUType.ACCESS_UNIT_DELIMITER, "AccessUnitDelimiter"),
        (NALUType.SLICE_LAYER_WITHOUT_PARTITIONING, "SliceLayerWithoutPartitioning"),
        (NALUType.RESERVED23, "Reserved23"),
    ],
)
def test_describe_known(value, name):
    assert describe_nalu_type(value) == name
    assert str(value) == name


def test_describe_unknown():
    assert describe_nalu_type(30) == "unknown (30)"


def test_every_member_has_a_name():
    for member in NALUType:
        assert not describe_nalu_type(member).startswith("unknown")


def test_nalu_type_of_masks_header_bits():
    assert nalu_type_of(bytes([0x65, 0x01])) is NALUType.IDR
    assert nalu_type_of(bytes([0x07])) is NALUType.SPS


def test_nalu_type_of_unknown_value_is_int():
    result = nalu_type_of(bytes([0x00]))
    assert result == 0
    assert not isinstance(result, NALUType)


def test_nalu_type_of_empty():
    with pytest.raises(ValueError):
        nalu_type_of(b"")