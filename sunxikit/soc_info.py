"""Per-SoC memory layout and peripheral information used by the FEL tools."""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import Optional

log = logging.getLogger(__name__)

SOC_NAME_MAX = 7
"""Longest SoC name string returned by :func:`get_soc_name_from_id`."""

_FEL_VERSION = struct.Struct("<8sIIHBBI2I")


@dataclass(frozen=True)
class SwapBuffer:
    """A pair of SRAM regions swapped around the execution of the SPL."""

    buf1: int  # BROM buffer
    buf2: int  # backup storage location
    size: int


@dataclass(frozen=True)
class WatchdogInfo:
    """Watchdog register and the value that triggers a reset."""

    reg_mode: int
    reg_mode_value: int


@dataclass(frozen=True)
class SocInfo:
    """Memory layout and quirks of one SoC variant.

    ``swap_buffers`` is sorted by ``buf1``; ``mmu_tt_addr``, when set,
    is 16 KiB aligned.
    """

    soc_id: int = 0
    name: Optional[str] = None
    spl_addr: int = 0
    scratch_addr: int = 0
    thunk_addr: int = 0
    thunk_size: int = 0
    needs_l2en: bool = False
    mmu_tt_addr: int = 0
    sid_base: int = 0
    sid_offset: int = 0
    rvbar_reg: int = 0
    watchdog: Optional[WatchdogInfo] = None
    sid_fix: bool = False
    icache_fix: bool = False
    needs_smc_workaround_if_zero_word_at_addr: int = 0
    sram_size: int = 0
    swap_buffers: tuple[SwapBuffer, ...] = ()


@dataclass(frozen=True)
class FelVersion:
    """SoC version information as returned by the FEL protocol."""

    signature: bytes
    soc_id: int
    unknown_0a: int
    protocol: int
    unknown_12: int
    unknown_13: int
    scratchpad: int
    pad: tuple[int, int]


FEL_VERSION_SIZE = _FEL_VERSION.size


def parse_fel_version(data: bytes) -> FelVersion:
    """Decode the packed little-endian FEL version reply."""
    if len(data) < _FEL_VERSION.size:
        raise ValueError(
            f"FEL version reply needs {_FEL_VERSION.size} bytes, got {len(data)}")
    (signature, soc_id, unknown_0a, protocol, unknown_12, unknown_13,
     scratchpad, pad0, pad1) = _FEL_VERSION.unpack_from(data)
    return FelVersion(signature, soc_id, unknown_0a, protocol, unknown_12,
                      unknown_13, scratchpad, (pad0, pad1))


def _buffers(*triples: tuple[int, int, int]) -> tuple[SwapBuffer, ...]:
    return tuple(SwapBuffer(*triple) for triple in triples)


# FEL code in the A10/A13/A20 BROM keeps its IRQ stack at 0x2000, its regular
# stack at 0x7000 and something important at 0x7D00-0x7FFF; SRAM A3/A4 backs them up.
A10_A13_A20_SRAM_SWAP_BUFFERS = _buffers(
    (0x1C00, 0xA400, 0x0400),
    (0x5C00, 0xA800, 0x1400),
    (0x7C00, 0xBC00, 0x0400),
)

# No SRAM at 0x8000 on A31; SRAM B at 0x20000 is used instead.
A31_SRAM_SWAP_BUFFERS = _buffers(
    (0x1800, 0x20000, 0x800),
    (0x5C00, 0x20800, 0x8000 - 0x5C00),
)

# Same as A10 shifted by 0x10000, backed up towards the end of SRAM C.
A64_SRAM_SWAP_BUFFERS = _buffers(
    (0x11C00, 0x31400, 0x0400),
    (0x15C00, 0x31800, 0x1400),
    (0x17C00, 0x32C00, 0x0400),
)

# Backup in the SRAM normally shared with the OpenRISC core.
AR100_ABUSING_SRAM_SWAP_BUFFERS = _buffers(
    (0x1800, 0x44000, 0x800),
    (0x5C00, 0x44800, 0x8000 - 0x5C00),
)

A80_SRAM_SWAP_BUFFERS = _buffers(
    (0x11800, 0x20000, 0x800),
    (0x15400, 0x20800, 0x18000 - 0x15400),
)

# Same as A10 shifted by 0x20000.
H6_SRAM_SWAP_BUFFERS = _buffers(
    (0x21C00, 0x42400, 0x0400),
    (0x25C00, 0x42800, 0x1400),
    (0x27C00, 0x43C00, 0x0400),
)

V831_SRAM_SWAP_BUFFERS = _buffers(
    (0x21000, 0x38000, 0x1000),
)

H616_SRAM_SWAP_BUFFERS = _buffers(
    (0x21000, 0x52A00, 0x1000),
)

R329_SRAM_SWAP_BUFFERS = _buffers(
    (0x101000, 0x13BC00, 0x0400),
)

F1C100S_SRAM_SWAP_BUFFERS = _buffers(
    (0x1C00, 0x9000, 0x0400),
    (0x5C00, 0x9400, 0x1400),
    (0x7C00, 0xA800, 0x0400),
)

GENERIC_SRAM_SWAP_BUFFERS = _buffers(
    (0x1C00, 0x5800, 0x400),
)

WD_A10_COMPAT = WatchdogInfo(reg_mode=0x01C20C94, reg_mode_value=3)
WD_H3_COMPAT = WatchdogInfo(reg_mode=0x01C20CB8, reg_mode_value=1)
WD_A80 = WatchdogInfo(reg_mode=0x06000CB8, reg_mode_value=1)
WD_H6_COMPAT = WatchdogInfo(reg_mode=0x030090B8, reg_mode_value=1)
WD_V853_COMPAT = WatchdogInfo(reg_mode=0x020500B8, reg_mode_value=0x16AA0001)

SOC_INFO_TABLE: tuple[SocInfo, ...] = (
    SocInfo(  # Allwinner A10
        soc_id=0x1623, name="A10", scratch_addr=0x1000,
        thunk_addr=0xA200, thunk_size=0x200,
        swap_buffers=A10_A13_A20_SRAM_SWAP_BUFFERS, sram_size=48 * 1024,
        needs_l2en=True, sid_base=0x01C23800, watchdog=WD_A10_COMPAT),
    SocInfo(  # Allwinner A10s, A13, R8
        soc_id=0x1625, name="A13", scratch_addr=0x1000,
        thunk_addr=0xA200, thunk_size=0x200,
        swap_buffers=A10_A13_A20_SRAM_SWAP_BUFFERS, sram_size=48 * 1024,
        needs_l2en=True, sid_base=0x01C23800, watchdog=WD_A10_COMPAT),
    SocInfo(  # Allwinner A20
        soc_id=0x1651, name="A20", scratch_addr=0x1000,
        thunk_addr=0xA200, thunk_size=0x200,
        swap_buffers=A10_A13_A20_SRAM_SWAP_BUFFERS, sram_size=48 * 1024,
        sid_base=0x01C23800, watchdog=WD_A10_COMPAT),
    SocInfo(  # Allwinner A23
        soc_id=0x1650, name="A23", scratch_addr=0x1000,
        thunk_addr=0x46E00, thunk_size=0x200,
        swap_buffers=AR100_ABUSING_SRAM_SWAP_BUFFERS, sram_size=64 * 1024,
        sid_base=0x01C23800, watchdog=WD_H3_COMPAT),
    SocInfo(  # Allwinner A31
        soc_id=0x1633, name="A31", scratch_addr=0x1000,
        thunk_addr=0x22E00, thunk_size=0x200,
        swap_buffers=A31_SRAM_SWAP_BUFFERS, sram_size=32 * 1024,
        watchdog=WD_H3_COMPAT),
    SocInfo(  # Allwinner A33, R16
        soc_id=0x1667, name="A33", scratch_addr=0x1000,
        thunk_addr=0x46E00, thunk_size=0x200,
        swap_buffers=AR100_ABUSING_SRAM_SWAP_BUFFERS, sram_size=32 * 1024,
        sid_base=0x01C23800, watchdog=WD_H3_COMPAT),
    SocInfo(  # Allwinner A64
        soc_id=0x1689, name="A64", spl_addr=0x10000, scratch_addr=0x11000,
        thunk_addr=0x31200, thunk_size=0x200,
        swap_buffers=A64_SRAM_SWAP_BUFFERS, sram_size=140 * 1024,
        sid_base=0x01C14000, sid_offset=0x200, rvbar_reg=0x017000A0,
        needs_smc_workaround_if_zero_word_at_addr=0x40004,
        watchdog=WD_H3_COMPAT),
    SocInfo(  # Allwinner A80
        soc_id=0x1639, name="A80", spl_addr=0x10000, scratch_addr=0x11000,
        thunk_addr=0x23400, thunk_size=0x200,
        swap_buffers=A80_SRAM_SWAP_BUFFERS, sram_size=40 * 1024,
        sid_base=0x01C0E000, sid_offset=0x200, watchdog=WD_A80),
    SocInfo(  # Allwinner F1C100s; no SID
        soc_id=0x1663, name="F1C100s", scratch_addr=0x1000,
        thunk_addr=0xB400, thunk_size=0x200,
        swap_buffers=F1C100S_SRAM_SWAP_BUFFERS, sram_size=32 * 1024,
        watchdog=WD_H3_COMPAT),
    SocInfo(  # Allwinner A83T
        soc_id=0x1673, name="A83T", scratch_addr=0x1000, mmu_tt_addr=0x44000,
        thunk_addr=0x46E00, thunk_size=0x200,
        swap_buffers=AR100_ABUSING_SRAM_SWAP_BUFFERS, sram_size=32 * 1024,
        sid_base=0x01C14000, sid_offset=0x200, watchdog=WD_H3_COMPAT),
    SocInfo(  # Allwinner H3, H2+
        soc_id=0x1680, name="H3", scratch_addr=0x1000, mmu_tt_addr=0x8000,
        thunk_addr=0xA200, thunk_size=0x200,
        swap_buffers=A10_A13_A20_SRAM_SWAP_BUFFERS, sram_size=108 * 1024,
        sid_base=0x01C14000, sid_offset=0x200, sid_fix=True,
        needs_smc_workaround_if_zero_word_at_addr=0x40004,
        watchdog=WD_H3_COMPAT),
    SocInfo(  # Allwinner V3s
        soc_id=0x1681, name="V3s", scratch_addr=0x1000, mmu_tt_addr=0x8000,
        thunk_addr=0xA200, thunk_size=0x200,
        swap_buffers=A10_A13_A20_SRAM_SWAP_BUFFERS, sram_size=60 * 1024,
        sid_base=0x01C23800, watchdog=WD_H3_COMPAT),
    SocInfo(  # Allwinner H5
        soc_id=0x1718, name="H5", spl_addr=0x10000, scratch_addr=0x11000,
        thunk_addr=0x31200, thunk_size=0x200,
        swap_buffers=A64_SRAM_SWAP_BUFFERS, sram_size=140 * 1024,
        sid_base=0x01C14000, sid_offset=0x200, rvbar_reg=0x017000A0,
        needs_smc_workaround_if_zero_word_at_addr=0x40004,
        watchdog=WD_H3_COMPAT),
    SocInfo(  # Allwinner R40
        soc_id=0x1701, name="R40", scratch_addr=0x1000,
        thunk_addr=0xA200, thunk_size=0x200,
        swap_buffers=A10_A13_A20_SRAM_SWAP_BUFFERS, sram_size=48 * 1024,
        sid_base=0x01C1B000, sid_offset=0x200, watchdog=WD_A10_COMPAT),
    SocInfo(  # Allwinner A63
        soc_id=0x1719, name="A63", spl_addr=0x20000, scratch_addr=0x21000,
        thunk_addr=0x42200, thunk_size=0x200,
        swap_buffers=H6_SRAM_SWAP_BUFFERS, sram_size=144 * 1024,
        sid_base=0x03006000, sid_offset=0x200, rvbar_reg=0x09010040,
        watchdog=WD_H6_COMPAT),
    SocInfo(  # Allwinner H6
        soc_id=0x1728, name="H6", spl_addr=0x20000, scratch_addr=0x21000,
        thunk_addr=0x42200, thunk_size=0x200,
        swap_buffers=H6_SRAM_SWAP_BUFFERS, sram_size=144 * 1024,
        sid_base=0x03006000, sid_offset=0x200, rvbar_reg=0x09010040,
        needs_smc_workaround_if_zero_word_at_addr=0x100004,
        watchdog=WD_H6_COMPAT),
    SocInfo(  # Allwinner V536
        soc_id=0x1816, name="V536", spl_addr=0x20000, scratch_addr=0x21000,
        thunk_addr=0x2A200, thunk_size=0x200,
        swap_buffers=V831_SRAM_SWAP_BUFFERS, sram_size=228 * 1024,
        sid_base=0x03006000, sid_offset=0x200, watchdog=WD_H6_COMPAT),
    SocInfo(  # Allwinner V831
        soc_id=0x1817, name="V831", spl_addr=0x20000, scratch_addr=0x21000,
        thunk_addr=0x2A200, thunk_size=0x200,
        swap_buffers=V831_SRAM_SWAP_BUFFERS, sram_size=228 * 1024,
        sid_base=0x03006000, sid_offset=0x200, watchdog=WD_H6_COMPAT),
    SocInfo(  # Allwinner H616
        soc_id=0x1823, name="H616", spl_addr=0x20000, scratch_addr=0x21000,
        thunk_addr=0x53A00, thunk_size=0x200,
        swap_buffers=H616_SRAM_SWAP_BUFFERS, sram_size=207 * 1024,
        sid_base=0x03006000, sid_offset=0x200, rvbar_reg=0x09010040,
        watchdog=WD_H6_COMPAT),
    SocInfo(  # Allwinner R329
        soc_id=0x1851, name="R329", spl_addr=0x100000, scratch_addr=0x101000,
        mmu_tt_addr=0x130000, thunk_addr=0x13BA00, thunk_size=0x200,
        swap_buffers=R329_SRAM_SWAP_BUFFERS, sram_size=1856 * 1024,
        sid_base=0x03006000, sid_offset=0x200, rvbar_reg=0x08100040,
        watchdog=WD_H6_COMPAT),
    SocInfo(  # Allwinner V853
        soc_id=0x1886, name="V853", spl_addr=0x20000, scratch_addr=0x21000,
        thunk_addr=0x3A200, thunk_size=0x200,
        swap_buffers=V831_SRAM_SWAP_BUFFERS, sram_size=132 * 1024,
        sid_base=0x03006000, sid_offset=0x200, icache_fix=True,
        watchdog=WD_V853_COMPAT),
    SocInfo(  # Allwinner D1/D1s/R528/T113-S3
        soc_id=0x1859, name="R528", spl_addr=0x20000, scratch_addr=0x21000,
        thunk_addr=0x3A200, thunk_size=0x200,
        swap_buffers=V831_SRAM_SWAP_BUFFERS, sram_size=160 * 1024,
        sid_base=0x03006000, sid_offset=0x200, icache_fix=True,
        watchdog=WD_V853_COMPAT),
    SocInfo(  # Allwinner V5
        soc_id=0x1721, name="V5", spl_addr=0x20000, scratch_addr=0x21000,
        thunk_addr=0x42200, thunk_size=0x200,
        swap_buffers=H6_SRAM_SWAP_BUFFERS, sram_size=136 * 1024,
        sid_base=0x03006000, sid_offset=0x200, watchdog=WD_H6_COMPAT),
)

# Assumes a BROM like A10/A13/A20/A31 but no SRAM beyond 0x8000, and an IRQ
# stack that never exceeds 0x400 bytes.
GENERIC_SOC_INFO = SocInfo(
    scratch_addr=0x1000,
    thunk_addr=0x5680, thunk_size=0x180,
    swap_buffers=GENERIC_SRAM_SWAP_BUFFERS,
)


def _find(soc_id: int) -> Optional[SocInfo]:
    return next((soc for soc in SOC_INFO_TABLE if soc.soc_id == soc_id), None)


def get_soc_info_from_id(soc_id: int) -> SocInfo:
    """Information for ``soc_id``, or the generic record (with a warning) if unknown."""
    soc = _find(soc_id)
    if soc is None:
        log.warning("no 'soc_sram_info' data for your SoC (id=%04X)", soc_id)
        return GENERIC_SOC_INFO
    return soc


def get_soc_info_from_version(version: FelVersion) -> SocInfo:
    """Information for the SoC that sent ``version``."""
    return get_soc_info_from_id(version.soc_id)


def get_soc_name_from_id(soc_id: int) -> str:
    """Human-readable SoC name, or ``0xABCD`` style hexadecimal ID if unknown."""
    soc = next((s for s in SOC_INFO_TABLE
                if s.soc_id == soc_id and s.name is not None), None)
    if soc is not None:
        return soc.name[:SOC_NAME_MAX]  # type: ignore[index]
    return ("0x%04X" % soc_id)[:SOC_NAME_MAX - 1]