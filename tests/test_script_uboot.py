import io

import pytest

from sunxikit.script import Script
from sunxikit.script_uboot import UbootError, generate_uboot


def _render(script: Script) -> tuple[bool, str]:
    out = io.StringIO()
    ok = generate_uboot(out, script)
    return ok, out.getvalue()


def test_missing_section_raises():
    script = Script()
    script.add_section("other").add_single("dram_clk", 480)
    with pytest.raises(UbootError, match="dram_para"):
        generate_uboot(io.StringIO(), script)


def test_header_and_footer():
    script = Script()
    script.add_section("dram_para")
    ok, text = _render(script)
    assert ok is True
    assert text.startswith("/* this file is generated, don't edit it yourself */\n\n"
                           "#include <common.h>\n#include <asm/arch/dram.h>\n\n")
    assert "static struct dram_para dram_para = {\n};\n" in text
    assert text.endswith("\nunsigned long sunxi_dram_init(void)\n"
                         "{\n\treturn dramc_init(&dram_para);\n}\n")


def test_translation_and_hex_mode():
    script = Script()
    section = script.add_section("dram_para")
    section.add_single("dram_clk", 480)
    section.add_single("dram_tpr0", 0x42D899B7)
    section.add_single("dram_type", 3)
    ok, text = _render(script)
    assert ok is True
    assert "\t.clock = 480,\n" in text
    assert "\t.tpr0 = 0x42d899b7,\n" in text
    assert "\t.type = 3,\n" in text


def test_zero_hex_value_has_no_prefix():
    script = Script()
    script.add_section("dram_para").add_single("dram_emr1", 0)
    _, text = _render(script)
    assert "\t.emr1 = 0,\n" in text


def test_member_table_order_wins():
    script = Script()
    section = script.add_section("dram_para")
    section.add_single("dram_tpr0", 1)
    section.add_single("dram_clk", 2)
    _, text = _render(script)
    assert text.index(".clock") < text.index(".tpr0")


def test_unknown_keys_are_ignored():
    script = Script()
    script.add_section("dram_para").add_single("dram_unknown", 5)
    _, text = _render(script)
    assert "unknown" not in text


def test_null_and_gpio_members():
    script = Script()
    section = script.add_section("dram_para")
    section.add_null("dram_zq")
    section.add_gpio("dram_cas", 2, 22, (2, 1, -1, -1))
    section.add_gpio("dram_size", 0xFFFF, 3, (1, -1, -1, 0))
    ok, text = _render(script)
    assert ok is True
    assert "\t/* zq is NULL */\n" in text
    assert "\t.cas = GPIO_CFG(2, 22, 2, 1, 0xff, 0xff),\n" in text
    assert "\t.size = GPIO_AXP_CFG(3, 1, 0xff, 0xff, 0),\n" in text


def test_string_field_is_invalid():
    script = Script()
    section = script.add_section("dram_para")
    section.add_string("dram_type", "ddr3")
    section.add_single("dram_clk", 480)
    ok, text = _render(script)
    assert ok is False
    assert ".type" not in text
    assert "\t.clock = 480,\n" in text