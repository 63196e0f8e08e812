import struct

import pytest

from sunxikit.script import Script
from sunxikit.script_bin import (
    BinFormatError,
    decompile_bin,
    generate_bin,
    script_bin_size,
)


def _sample() -> Script:
    script = Script()
    product = script.add_section("product")
    product.add_string("version", "100")
    product.add_string("machine", "abcd")
    product.add_single("count", 0xFFFFFFFF)
    product.add_null("empty")
    gpio = script.add_section("uart_para")
    gpio.add_gpio("uart_tx", 2, 22, (2, 1, -1, -1))
    gpio.add_gpio("power_pin", 0xFFFF, 3, (1, -1, -1, 0))
    gpio.add_string("label", "héllo")
    return script


def _first_entry_pos(blob: bytes) -> int:
    _, _, offset = struct.unpack_from("<32sii", blob, 16)
    return offset * 4


def test_empty_script_header():
    blob = generate_bin(Script())
    assert blob == struct.pack("<IIII", 0, 16, 1, 2)
    assert script_bin_size(Script()).size == len(blob)


def test_size_matches_generated_length():
    script = _sample()
    size, sections, entries = script_bin_size(script)
    blob = generate_bin(script)
    assert len(blob) == size
    assert sections == 2
    assert entries == 7
    assert len(blob) % 4 == 0


def test_header_fields():
    blob = generate_bin(_sample())
    n_sections, filesize, major, minor = struct.unpack_from("<IIII", blob)
    assert n_sections == 2
    assert filesize == len(blob)
    assert (major, minor) == (1, 2)


def test_round_trip():
    script = _sample()
    assert decompile_bin(generate_bin(script), "sample.bin") == script


def test_round_trip_aligned_string_not_merged():
    script = decompile_bin(generate_bin(_sample()))
    product = script.find_section("product")
    assert product.find_entry("machine").value == "abcd"
    assert product.find_entry("count").value == 0xFFFFFFFF


def test_round_trip_long_names_truncated():
    script = Script()
    section = script.add_section("s" * 40)
    section.add_single("k" * 40, 7)
    result = decompile_bin(generate_bin(script))
    assert result == script
    assert len(result.sections[0].name) == 31


def test_empty_null_entry_is_skipped():
    script = Script()
    script.add_section("sec").add_null("gone")
    blob = bytearray(generate_bin(script))
    pos = _first_entry_pos(blob)
    blob[pos:pos + 32] = bytes(32)
    result = decompile_bin(bytes(blob))
    assert result.find_section("sec").entries == []


def test_single_with_wrong_length_still_read():
    script = Script()
    script.add_section("sec").add_single("value", 42)
    blob = bytearray(generate_bin(script))
    pos = _first_entry_pos(blob)
    struct.pack_into("<i", blob, pos + 36, (1 << 16) | 2)
    result = decompile_bin(bytes(blob))
    assert result.find_section("sec").find_entry("value").value == 42


def test_unknown_type_rejected():
    script = Script()
    script.add_section("sec").add_null("thing")
    blob = bytearray(generate_bin(script))
    pos = _first_entry_pos(blob)
    struct.pack_into("<i", blob, pos + 36, (9 << 16) | 1)
    with pytest.raises(BinFormatError, match="unknown type 9"):
        decompile_bin(bytes(blob))


def test_unknown_gpio_bank_rejected():
    script = Script()
    script.add_section("sec").add_gpio("pin", 20, 1, (-1, -1, -1, -1))
    with pytest.raises(BinFormatError, match="unknown GPIO port bank"):
        decompile_bin(generate_bin(script))


def test_version_limit():
    blob = bytearray(generate_bin(_sample()))
    struct.pack_into("<I", blob, 8, 0x11)
    with pytest.raises(BinFormatError, match="version"):
        decompile_bin(bytes(blob))


def test_too_many_sections():
    blob = bytearray(generate_bin(Script()))
    struct.pack_into("<I", blob, 0, 0x101)
    with pytest.raises(BinFormatError, match="too many sections"):
        decompile_bin(bytes(blob))


def test_invalid_section_offset():
    blob = bytearray(generate_bin(_sample()))
    struct.pack_into("<i", blob, 16 + 36, len(blob) // 4 + 1)
    with pytest.raises(BinFormatError, match="invalid section offset"):
        decompile_bin(bytes(blob))


def test_invalid_section_length():
    blob = bytearray(generate_bin(_sample()))
    struct.pack_into("<i", blob, 16 + 32, -1)
    with pytest.raises(BinFormatError, match="invalid section length"):
        decompile_bin(bytes(blob))


def test_truncated_header():
    with pytest.raises(BinFormatError):
        decompile_bin(bytes(8))