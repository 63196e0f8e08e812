"""Inspect and modify a dump (or live mapping) of the PIO controller registers."""

from __future__ import annotations

import getopt
import mmap
import os
import re
import struct
import sys
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass
from typing import Iterator, NamedTuple, Optional, Sequence

PIO_REG_SIZE = 0x228
PIO_PORT_SIZE = 0x24
PIO_NR_PORTS = 9
PIO_BASE = 0x01C20800
_MAP_SPAN = 0x800

_WORD = struct.Struct("<I")
_SPACE = r"[ \t\n\v\f\r]*"
_ATOI = re.compile(_SPACE + r"([+-]?[0-9]+)")
_STRTOL = re.compile(_SPACE + r"([+-]?)(0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*)")
_LONG_MIN = -(1 << 63)
_LONG_MAX = (1 << 63) - 1

_USAGE = """\
usage: {prog} -m|-i input [-o output] pin..
 -m\t\t\t\tmmap - read pin state from system
 -i\t\t\t\tread pin state from file
 -o\t\t\t\tsave pin state data to file
 print\t\t\t\tShow all pins
 Pxx\t\t\t\tShow pin
 Pxx<mode><pull><drive><data>\tConfigure pin
 Pxx=data,drive\t\t\tConfigure GPIO output
 Pxx*count\t\t\tOscillate GPIO output (mmap mode only)
 Pxx?pull\t\t\tConfigure GPIO input
 clean\t\t\t\tClean input pins

\tmode 0-7, 0=input, 1=output, 2-7 I/O function
\tpull 0=none, 1=up, 2=down
\tdrive 0-3, I/O drive level
"""


class PioError(Exception):
    """Raised for an invalid pin or command."""


@dataclass
class PinStatus:
    """State of one pin; -1 in a field means unknown or leave unchanged."""

    mul_sel: int = -1
    pull: int = -1
    drv_level: int = -1
    data: int = -1


class _Layout(NamedTuple):
    cfg: int
    func_shift: int
    pull: int
    dlevel: int
    pull_shift: int
    data: int


def _layout(buf, port: int, port_num: int) -> _Layout:
    if not 0 <= port_num < 32:
        raise PioError(f"pin number {port_num} out of range")
    base = port * PIO_PORT_SIZE
    if port < 0 or base + PIO_PORT_SIZE > len(buf):
        raise PioError(f"port {port} out of range")
    pull_reg = base + ((port_num >> 4) << 2)
    return _Layout(
        cfg=base + ((port_num >> 3) << 2),
        func_shift=(port_num & 0x07) << 2,
        pull=pull_reg + 0x1C,
        dlevel=pull_reg + 0x14,
        pull_shift=(port_num & 0x0F) << 1,
        data=base + 0x10,
    )


def _read(buf, offset: int) -> int:
    return _WORD.unpack_from(buf, offset)[0]


def _write(buf, offset: int, value: int) -> None:
    _WORD.pack_into(buf, offset, value & 0xFFFFFFFF)


def _update(buf, offset: int, mask: int, shift: int, value: int) -> None:
    word = _read(buf, offset) & ~(mask << shift)
    _write(buf, offset, word | ((value & mask) << shift))


def get_pin(buf, port: int, port_num: int) -> PinStatus:
    """Read the state of one pin from the register buffer."""
    regs = _layout(buf, port, port_num)
    mul_sel = (_read(buf, regs.cfg) >> regs.func_shift) & 0x07
    pull = (_read(buf, regs.pull) >> regs.pull_shift) & 0x03
    drv_level = (_read(buf, regs.dlevel) >> regs.pull_shift) & 0x03
    data = -1 if mul_sel > 1 else (_read(buf, regs.data) >> port_num) & 0x01
    return PinStatus(mul_sel, pull, drv_level, data)


def set_pin(buf, port: int, port_num: int, status: PinStatus) -> None:
    """Write the non-negative fields of ``status`` into the register buffer."""
    regs = _layout(buf, port, port_num)
    if status.mul_sel >= 0:
        _update(buf, regs.cfg, 0x07, regs.func_shift, status.mul_sel)
    if status.pull >= 0:
        _update(buf, regs.pull, 0x03, regs.pull_shift, status.pull)
    if status.drv_level >= 0:
        _update(buf, regs.dlevel, 0x03, regs.pull_shift, status.drv_level)
    if status.data >= 0:
        _update(buf, regs.data, 0x01, port_num, 1 if status.data else 0)


def _hex(value: int) -> str:
    return format(value & 0xFFFFFFFF, "x")


def format_pin(port: int, port_num: int, status: PinStatus) -> str:
    """Render a pin as ``Pxn<mode><pull><drive>[<data>]``."""
    text = (f"P{chr((ord('A') + port) & 0xFF)}{port_num}"
            f"<{_hex(status.mul_sel)}><{_hex(status.pull)}><{_hex(status.drv_level)}>")
    if status.data >= 0:
        text += f"<{_hex(status.data)}>"
    return text


def _atoi(text: str) -> int:
    match = _ATOI.match(text)
    return int(match.group(1)) if match else 0


def _parse_int(text: str) -> Optional[int]:
    match = _STRTOL.match(text)
    if match is None:
        return None
    sign, digits = match.groups()
    if digits[:2].lower() == "0x":
        value = int(digits, 16)
    elif len(digits) > 1 and digits[0] == "0":
        value = int(digits, 8)
    else:
        value = int(digits, 10)
    if sign == "-":
        value = -value
    if not _LONG_MIN <= value <= _LONG_MAX:
        return None
    return value


def parse_pin(name: str) -> tuple[int, int]:
    """Split a pin name such as ``PB12`` into (port index, pin number)."""
    rest = name[1:] if name.startswith("P") else name
    if not rest:
        raise PioError(f"invalid pin name {name!r}")
    return ord(rest[0]) - ord("A"), _atoi(rest[1:])


def show_pin(buf, command: str) -> str:
    """Return the formatted state of the pin named by ``command``."""
    port, port_num = parse_pin(command)
    return format_pin(port, port_num, get_pin(buf, port, port_num))


def configure_pin(buf, command: str) -> None:
    """Apply a ``Pxx=...``, ``Pxx?...`` or ``Pxx<..>..`` configuration command."""
    port, port_num = parse_pin(command)
    status = get_pin(buf, port, port_num)
    if "=" in command:
        status.mul_sel = 1
        rest = command[command.index("=") + 1:]
        value = _parse_int(rest)
        if value is not None:
            status.data = value
        if "," in rest:
            value = _parse_int(rest[rest.index(",") + 1:])
            if value is not None:
                status.drv_level = value
    elif "?" in command:
        status.mul_sel = 0
        status.data = 0
        status.drv_level = 0
        value = _parse_int(command[command.index("?") + 1:])
        if value is not None:
            status.pull = value
    elif "<" in command:
        fields = ("mul_sel", "pull", "drv_level", "data")
        for field_name, part in zip(fields, command.split("<")[1:]):
            value = _parse_int(part)
            if value is not None:
                setattr(status, field_name, value)
    set_pin(buf, port, port_num, status)


def oscillate(buf, command: str) -> None:
    """Make the pin an output and toggle its data bit ``count`` times (``Pxx*count``)."""
    if "*" not in command:
        raise PioError(f"missing count in {command!r}")
    port, port_num = parse_pin(command)
    status = get_pin(buf, port, port_num)
    status.mul_sel = 1
    set_pin(buf, port, port_num, status)

    count = _parse_int(command[command.index("*") + 1:]) or 0
    offset = _layout(buf, port, port_num).data
    value = _read(buf, offset)
    for _ in range(count):
        value ^= 1 << port_num
        _write(buf, offset, value)


def _all_pins() -> Iterator[tuple[int, int]]:
    for port in range(PIO_NR_PORTS):
        for port_num in range(32):
            yield port, port_num


def clean(buf) -> None:
    """Clear the data bit of every pin configured as an input."""
    for port, port_num in _all_pins():
        status = get_pin(buf, port, port_num)
        if status.mul_sel == 0:
            status.data = 0
            set_pin(buf, port, port_num, status)


def format_all(buf) -> list[str]:
    """Formatted state of every pin of every port."""
    return [format_pin(port, num, get_pin(buf, port, num)) for port, num in _all_pins()]


def run_command(buf, command: str) -> list[str]:
    """Execute one command and return the lines it prints."""
    if command.startswith("P"):
        if any(mark in command for mark in "<=?"):
            configure_pin(buf, command)
            return []
        if "*" in command:
            oscillate(buf, command)
            return []
        return [show_pin(buf, command)]
    if command == "print":
        return format_all(buf)
    if command == "clean":
        clean(buf)
        return []
    raise PioError(f"unknown command {command!r}")


def _usage() -> None:
    sys.stderr.write(_USAGE.format(prog=os.path.basename(sys.argv[0] or "pio")))


@contextmanager
def _mapped_registers() -> Iterator[memoryview]:
    pagesize = mmap.PAGESIZE
    base = PIO_BASE & ~(pagesize - 1)
    offset = PIO_BASE & (pagesize - 1)
    length = (_MAP_SPAN + pagesize - 1) & ~(pagesize - 1)
    fd = os.open("/dev/mem", os.O_RDWR)
    try:
        mapping = mmap.mmap(fd, length, flags=mmap.MAP_SHARED,
                            prot=mmap.PROT_READ | mmap.PROT_WRITE, offset=base)
    finally:
        os.close(fd)
    view = memoryview(mapping)[offset:offset + PIO_REG_SIZE]
    try:
        yield view
    finally:
        view.release()
        mapping.close()


def _read_input(name: str) -> bytes:
    if name == "-":
        return sys.stdin.buffer.read(PIO_REG_SIZE)
    with open(name, "rb") as handle:
        return handle.read(PIO_REG_SIZE)


def _write_output(name: str, data: bytes) -> None:
    sys.stdout.flush()
    if name == "-":
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()
        return
    with open(name, "wb") as handle:
        handle.write(data)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Command-line entry point; returns the exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    try:
        opts, commands = getopt.gnu_getopt(args, "i:o:m")
    except getopt.GetoptError as exc:
        print(exc, file=sys.stderr)
        _usage()
        return 0

    in_name = out_name = None
    do_mmap = False
    for opt, value in opts:
        if opt == "-m":
            do_mmap = True
        elif opt == "-i":
            in_name = value
        elif opt == "-o":
            out_name = value
    if not in_name and not do_mmap:
        _usage()
        return 1

    with ExitStack() as stack:
        buf = bytearray(PIO_REG_SIZE)
        if do_mmap:
            if not hasattr(mmap, "MAP_SHARED"):
                print("mmap PIO: Function not implemented", file=sys.stderr)
            else:
                try:
                    buf = stack.enter_context(_mapped_registers())
                except OSError as exc:
                    print(f"mmap PIO: {exc}", file=sys.stderr)
                    return 1

        if in_name:
            try:
                data = _read_input(in_name)
            except OSError as exc:
                print(f"open input: {exc}", file=sys.stderr)
                return 1
            if len(data) < PIO_REG_SIZE:
                print("read input: short read", file=sys.stderr)
                return 1
            buf[:PIO_REG_SIZE] = data[:PIO_REG_SIZE]

        for command in commands:
            try:
                lines = run_command(buf, command)
            except PioError as exc:
                print(exc, file=sys.stderr)
                _usage()
                return 1
            for line in lines:
                print(line)

        if out_name:
            try:
                _write_output(out_name, bytes(buf))
            except OSError as exc:
                print(f"write output: {exc}", file=sys.stderr)
                return 1
    return 0