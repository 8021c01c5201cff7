import pytest

from bindec.bits import bit_mask, check_range, extract, range_mask


@pytest.mark.parametrize("start,end,mask", [
    (0, 0, 0x1),
    (0, 7, 0xff),
    (4, 13, 0x3ff0),
    (5, 7, 0xe0),
    (31, 31, 0x80000000),
    (60, 63, 0xf000000000000000),
])
def test_range_mask(start, end, mask):
    assert range_mask(start, end) == mask


def test_extract_shifts_field_down():
    assert extract(0x1a53, range_mask(4, 13), 4) == 0x1a5
    assert extract(0xabcd, range_mask(8, 11), 8) == 0xb
    assert extract(0xabcd, bit_mask(0), 0) == 1


def test_check_range_rejects_bad_ranges():
    check_range(3, 3)
    with pytest.raises(ValueError):
        check_range(5, 4)
    with pytest.raises(ValueError):
        check_range(-1, 4)
