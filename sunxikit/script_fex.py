"""Text (.fex) script format: parser and generator."""

from __future__ import annotations

import logging
import re
from typing import Iterable, TextIO

from .script import GPIO_BANK_MAX, GPIO_PORT_POWER, Script, Section, ValueType

log = logging.getLogger(__name__)

_INT32_MAX = 0x7FFFFFFF
_UINT32_MAX = 0xFFFFFFFF
_LLONG_MIN = -(1 << 63)
_LLONG_MAX = (1 << 63) - 1

_HEXA_ENTRIES = (
    "dram_baseaddr", "dram_zq", "dram_tpr", "dram_emr",
    "g2d_size",
    "rtp_press_threshold", "rtp_sensitive_level",
    "ctp_twi_addr", "csi_twi_addr", "csi_twi_addr_b", "tkey_twi_addr",
    "lcd_gamma_tbl_",
    "gsensor_twi_addr",
)

_SPACE = r"[ \t\n\v\f\r]*"
_DECIMAL = re.compile(_SPACE + r"([+-]?)([0-9]+)")
_ANY_BASE = re.compile(_SPACE + r"([+-]?)(0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*)")


class FexParseError(ValueError):
    """Raised when a line of a .fex file cannot be parsed."""

    def __init__(self, filename: str, line: int, message: str) -> None:
        super().__init__(f"{filename}:{line}: {message}")
        self.filename = filename
        self.line = line
        self.message = message


# ---------------------------------------------------------------- generator

def _is_hexa(name: str) -> bool:
    stripped = name.rstrip("0123456789")
    return any(item.startswith(stripped) for item in _HEXA_ENTRIES)


def _format_entry(entry) -> str:
    kind = entry.type
    if kind is ValueType.SINGLE_WORD:
        if _is_hexa(entry.name):
            return f"{entry.name} = {entry.value:#x}" if entry.value else f"{entry.name} = 0x0"
        return f"{entry.name} = {entry.signed_value}"
    if kind is ValueType.STRING:
        return f'{entry.name} = "{entry.value}"'
    if kind is ValueType.GPIO:
        port_num = entry.port_num & _UINT32_MAX
        if entry.port == GPIO_PORT_POWER:
            head = f"{entry.name} = port:power{port_num}"
        else:
            letter = chr((ord("A") - 1 + entry.port) & 0xFF)
            head = f"{entry.name} = port:P{letter}{port_num:02d}"
        return head + "".join("<default>" if v == -1 else f"<{v}>" for v in entry.data)
    if kind is ValueType.NULL:
        return f"{entry.name} ="
    raise ValueError(f"{entry.name}: unsupported value type {kind!r}")


def generate_fex(out: TextIO, script: Script) -> None:
    """Write ``script`` to ``out`` in .fex text form."""
    for section in script:
        out.write(f"[{section.name}]\n")
        for entry in section:
            out.write(_format_entry(entry) + "\n")
        out.write("\n")


# ---------------------------------------------------------------- parser

def _is_key_char(char: str) -> bool:
    return len(char) == 1 and char.isascii() and (char.isalnum() or char in "_-")


def _skip_blank(text: str, pos: int) -> int:
    while text[pos:pos + 1] in (" ", "\t") and pos < len(text):
        pos += 1
    return pos


def _strtol(text: str, pos: int, any_base: bool) -> tuple[int, int] | None:
    match = (_ANY_BASE if any_base else _DECIMAL).match(text, pos)
    if match is None:
        return None
    sign, digits = match.groups()
    if any_base and digits[:2].lower() == "0x":
        value = int(digits, 16)
    elif any_base and len(digits) > 1 and digits[0] == "0":
        value = int(digits, 8)
    else:
        value = int(digits, 10)
    return (-value if sign == "-" else value), match.end()


class _LineParser:
    def __init__(self, script: Script, filename: str) -> None:
        self.script = script
        self.filename = filename
        self.section: Section | None = None
        self.number = 0

    def error(self, message: str) -> FexParseError:
        return FexParseError(self.filename, self.number, message)

    def add(self, method: str, *args: object) -> None:
        try:
            getattr(self.section, method)(*args)
        except ValueError as exc:
            raise self.error(str(exc)) from exc

    def feed(self, raw: str) -> None:
        self.number += 1
        text = raw
        if text.endswith("\n"):
            text = text[:-2] if text.endswith("\r\n") else text[:-1]
        start = len(text) - len(text.lstrip(" \t"))
        text = text[:max(start, len(text.rstrip(" \t")))]
        if len(text) > start and text.endswith(";"):
            text = text[:-1]

        body = text[start:]
        if not body or body[0] in ";#":
            return
        if body[0] == ":":
            log.warning("%s:%d: invalid line, suspecting typo/malformed comment.",
                        self.filename, self.number)
            return
        if body[0] == "[":
            self.parse_section(text, start)
        else:
            self.parse_entry(text, start)

    def parse_section(self, text: str, start: int) -> None:
        pos = start + 1
        while pos < len(text) and (_is_key_char(text[pos]) or text[pos] == "/"):
            pos += 1
        if text[pos:pos + 1] == "]" and pos + 1 == len(text):
            try:
                self.section = self.script.add_section(text[start + 1:pos])
            except ValueError as exc:
                raise self.error(str(exc)) from exc
            return
        if pos < len(text):
            raise self.error(f"invalid character at {pos + 1}.")
        raise self.error("incomplete section declaration.")

    def parse_entry(self, text: str, start: int) -> None:
        if self.section is None:
            raise self.error("data must follow a section.")
        pos = start
        while _is_key_char(text[pos:pos + 1]):
            pos += 1
        key = text[start:pos]
        pos = _skip_blank(text, pos)
        if text[pos:pos + 1] != "=":
            raise self.error(f"invalid character at {pos + 1}.")
        pos = _skip_blank(text, pos + 1)
        value = text[pos:]

        if not value:
            self.add("add_null", key)
        elif len(value) >= 2 and value[0] == '"' and value[-1] == '"':
            self.add("add_string", key, value[1:-1])
        elif value.startswith("port:"):
            self.parse_gpio(text, pos + 5, key)
        elif value[0] in "0123456789" or (value[0] == "-" and value[1:2].isdigit()
                                           and value[1:2].isascii()):
            self.parse_number(text, pos, key)
        else:
            log.warning("%s:%d: unquoted value '%s', assuming string",
                        self.filename, self.number, value)
            self.add("add_string", key, value)

    def parse_number(self, text: str, pos: int, key: str) -> None:
        parsed = _strtol(text, pos, any_base=True)
        if parsed is None:
            raise self.error(f"invalid character at {pos + 1}.")
        value, end = parsed
        if end != len(text):
            raise self.error(f"invalid character at {end + 1}.")
        value = min(max(value, _LLONG_MIN), _LLONG_MAX)
        if value > _UINT32_MAX:
            raise self.error(f"value out of range {value}.")
        self.add("add_single", key, value)

    def parse_gpio(self, text: str, pos: int, key: str) -> None:
        head = text[pos:pos + 1]
        if head == "P":
            bank = text[pos + 1:pos + 2]
            if not bank or not "A" <= bank <= chr(ord("A") + GPIO_BANK_MAX):
                raise self.error(f"parse error at {pos + 1}.")
            port = ord(bank) - ord("A") + 1
            pos += 2
        elif text.startswith("power", pos):
            port = GPIO_PORT_POWER
            pos += 5
        else:
            raise self.error(f"parse error at {pos + 1}.")

        parsed = _strtol(text, pos, any_base=False)
        if parsed is None:
            raise self.error(f"invalid character at {pos + 1}.")
        port_num, pos = parsed
        if port_num < 0 or port_num > 255:
            raise self.error(f"port out of range at {pos + 1} ({port_num}).")

        data = [-1, -1, -1, -1]
        for index in range(4):
            if pos >= len(text):
                break
            if text.startswith("<default>", pos):
                pos += 9
                continue
            if text[pos] != "<":
                break
            pos += 1
            parsed = _strtol(text, pos, any_base=False)
            if parsed is None:
                break
            value, end = parsed
            if value < 0 or value > _INT32_MAX:
                raise self.error(f"value out of range at {pos + 1} ({value}).")
            if text[end:end + 1] != ">":
                pos = end
                break
            pos = end + 1
            data[index] = value
        if pos < len(text):
            raise self.error(f"invalid character at {pos + 1}.")
        self.add("add_gpio", key, port, port_num, data)


def parse_fex(lines: Iterable[str] | str, filename: str = "<fex>") -> Script:
    """Parse .fex text (a string, or an iterable of lines such as a file) into a script."""
    if isinstance(lines, str):
        lines = lines.splitlines(keepends=True)
    parser = _LineParser(Script(), filename)
    for raw in lines:
        parser.feed(raw)
    return parser.script