"""Generate a U-Boot DRAM parameter source file from a script tree."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TextIO

from .script import GPIO_PORT_POWER, Entry, Script, Section, ValueType

log = logging.getLogger(__name__)


class UbootError(Exception):
    """Raised when a script lacks what the generated source needs."""


@dataclass(frozen=True)
class _Member:
    name: str
    translation: str | None = None
    hexa: bool = False

    @property
    def key(self) -> str:
        return self.translation or self.name[len("dram_"):]


_DRAM_MEMBERS = (
    _Member("dram_clock"),
    _Member("dram_clk", "clock"),
    _Member("dram_type"),
    _Member("dram_rank_num"),
    _Member("dram_density"),
    _Member("dram_chip_density", "density"),
    _Member("dram_io_width"),
    _Member("dram_bus_width"),
    _Member("dram_cas"),
    _Member("dram_zq"),
    _Member("dram_odt_en"),
    _Member("dram_size"),
    _Member("dram_tpr0", hexa=True),
    _Member("dram_tpr1", hexa=True),
    _Member("dram_tpr2", hexa=True),
    _Member("dram_tpr3", hexa=True),
    _Member("dram_tpr4", hexa=True),
    _Member("dram_tpr5", hexa=True),
    _Member("dram_emr1", hexa=True),
    _Member("dram_emr2", hexa=True),
    _Member("dram_emr3", hexa=True),
)

_HEADER = (
    "/* this file is generated, don't edit it yourself */\n\n"
    "#include <common.h>\n"
    "#include <asm/arch/dram.h>\n\n"
)

_INIT_FUNCTION = (
    "\nunsigned long sunxi_dram_init(void)\n"
    "{\n\treturn dramc_init(&dram_para);\n}\n"
)


def _format_u32(value: int, hexa: bool) -> str:
    value &= 0xFFFFFFFF
    if hexa:
        return hex(value) if value else "0"
    return str(value)


def _format_member(key: str, hexa: bool, entry: Entry) -> str | None:
    if entry.type is ValueType.SINGLE_WORD:
        return f"\t.{key} = {_format_u32(entry.value, hexa)},\n"  # type: ignore[union-attr]
    if entry.type is ValueType.NULL:
        return f"\t/* {key} is NULL */\n"
    if entry.type is ValueType.GPIO:
        if entry.port == GPIO_PORT_POWER:  # type: ignore[union-attr]
            head = f"GPIO_AXP_CFG({entry.port_num}"  # type: ignore[union-attr]
        else:
            head = f"GPIO_CFG({entry.port & 0xFFFFFFFF}, {entry.port_num}"  # type: ignore[union-attr]
        args = "".join(", 0xff" if v == -1 else f", {v & 0xFFFFFFFF}"
                       for v in entry.data)  # type: ignore[union-attr]
        return f"\t.{key} = {head}{args}),\n"
    return None


def _generate_dram_struct(out: TextIO, section: Section) -> bool:
    ok = True
    out.write("static struct dram_para dram_para = {\n")
    for member in _DRAM_MEMBERS:
        entry = section.find_entry(member.name)
        if entry is None:
            continue
        line = _format_member(member.key, member.hexa, entry)
        if line is None:
            log.error("dram_para: %s: invalid field", entry.name)
            ok = False
        else:
            out.write(line)
    out.write("};\n")
    out.write(_INIT_FUNCTION)
    return ok


def generate_uboot(out: TextIO, script: Script) -> bool:
    """Write the DRAM parameter source to ``out``.

    Returns False if some fields could not be expressed (they are skipped).
    Raises UbootError if the ``dram_para`` section is missing.
    """
    section = script.find_section("dram_para")
    if section is None:
        raise UbootError("dram_para: critical section missing")
    out.write(_HEADER)
    return _generate_dram_struct(out, section)