"""
End-to-end check on a temperature status register:
bit 0 TEMP_READY, bit 1 OVERTEMP, bits 4..13 raw temperature.
"""
import pytest

from bindec.decoder import ComputedInteger, DecoderList, Group, Signal


def celsius(v: int) -> str:
    return "%.3g °C" % (v / 1.213 - 273.15)


TEMP_STAT = Group("TEMP_STAT", DecoderList([
    Signal(0, "TEMP_READY"),
    Signal(1, "OVERTEMP"),
    ComputedInteger(4, 13, "TEMP", celsius),
]))


@pytest.mark.parametrize("value,lines", [
    (0x1a53, ["TEMP_STAT", "\tTEMP_READY", "\tOVERTEMP", "\tTEMP: 73.9 °C"]),
    (0x1759, ["TEMP_STAT", "\tTEMP_READY", "\tTEMP: 34.4 °C"]),
    (0x1758, ["TEMP_STAT", "\tTEMP: 34.4 °C"]),
])
def test_temp_stat(value, lines):
    assert TEMP_STAT.decode([], value) == lines


def test_temp_stat_is_idempotent():
    assert TEMP_STAT.decode_value(0x1a53) == TEMP_STAT.decode_value(0x1a53)
