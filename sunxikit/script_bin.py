"""Binary script format: size calculation, generation and decompilation."""

from __future__ import annotations

import logging
import string
import struct
from typing import NamedTuple

from .script import (
    GPIO_BANK_MAX,
    GPIO_PORT_POWER,
    NAME_MAX,
    Entry,
    Script,
    Section,
    ValueType,
)

log = logging.getLogger(__name__)

_HEAD = struct.Struct("<IIII")        # sections, filesize, version[2]
_SECTION = struct.Struct("<32sii")    # name, length, offset (in words)
_ENTRY = struct.Struct("<32sii")      # name, offset (in words), pattern
_GPIO = struct.Struct("<6i")          # port, port_num, mul_sel, pull, drv_level, data
_WORD = struct.Struct("<I")

BIN_VERSION = (1, 2)
VERSION_LIMIT = 0x10
SECTION_LIMIT = 0x100

_KEY_CHARS = frozenset((string.ascii_letters + string.digits + "_-").encode())


class BinFormatError(ValueError):
    """Raised when binary script data is malformed or cannot be produced."""


class BinSize(NamedTuple):
    """Size of the binary form of a script and the counts it is made of."""

    size: int
    sections: int
    entries: int


def _encode(text: str) -> bytes:
    return text.encode("utf-8", "surrogateescape")


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", "surrogateescape")


def _cstr(raw: bytes) -> bytes:
    return raw.split(b"\0", 1)[0]


def _words(size: int) -> int:
    return (size + _WORD.size - 1) // _WORD.size


def _payload(entry: Entry) -> bytes:
    kind = entry.type
    if kind is ValueType.NULL:
        return bytes(_WORD.size)
    if kind is ValueType.SINGLE_WORD:
        return _WORD.pack(entry.value)  # type: ignore[union-attr]
    if kind is ValueType.STRING:
        return _encode(entry.value)  # type: ignore[union-attr, arg-type]
    if kind is ValueType.GPIO:
        try:
            return _GPIO.pack(entry.port, entry.port_num,  # type: ignore[union-attr]
                              *entry.data)  # type: ignore[union-attr]
        except struct.error as exc:
            raise BinFormatError(f"{entry.name}: GPIO value out of range: {exc}") from exc
    raise BinFormatError(f"{entry.name}: unsupported value type {kind!r}")


def _payload_size(entry: Entry) -> int:
    if entry.type is ValueType.STRING:
        return len(_encode(entry.value))  # type: ignore[union-attr, arg-type]
    if entry.type is ValueType.GPIO:
        return _GPIO.size
    if entry.type in (ValueType.NULL, ValueType.SINGLE_WORD):
        return _WORD.size
    raise BinFormatError(f"{entry.name}: unsupported value type {entry.type!r}")


def script_bin_size(script: Script) -> BinSize:
    """Compute the size in bytes of the binary form of ``script``."""
    sections = len(script)
    entries = sum(len(section) for section in script)
    words = sum(_words(_payload_size(entry)) for section in script for entry in section)
    size = (_HEAD.size + sections * _SECTION.size + entries * _ENTRY.size
            + words * _WORD.size)
    log.debug("sections:%d entries:%d data:%d/%d -> %d",
              sections, entries, words, words * _WORD.size, size)
    return BinSize(size, sections, entries)


def generate_bin(script: Script) -> bytes:
    """Produce the binary form of ``script``."""
    size, n_sections, n_entries = script_bin_size(script)
    buf = bytearray(size)
    _HEAD.pack_into(buf, 0, n_sections, size, *BIN_VERSION)

    section_pos = _HEAD.size
    entry_pos = section_pos + n_sections * _SECTION.size
    data_pos = entry_pos + n_entries * _ENTRY.size

    for section in script:
        _SECTION.pack_into(buf, section_pos, _encode(section.name)[:NAME_MAX],
                           len(section), entry_pos >> 2)
        section_pos += _SECTION.size
        for entry in section:
            payload = _payload(entry)
            buf[data_pos:data_pos + len(payload)] = payload
            padded = _words(len(payload)) * _WORD.size
            pattern = (int(entry.type) << 16) | (padded >> 2)
            _ENTRY.pack_into(buf, entry_pos, _encode(entry.name)[:NAME_MAX],
                             data_pos >> 2, pattern)
            entry_pos += _ENTRY.size
            data_pos += padded
    return bytes(buf)


def _unpack(layout: struct.Struct, blob: bytes, offset: int, what: str) -> tuple:
    if offset < 0 or offset + layout.size > len(blob):
        raise BinFormatError(f"Malformed data: {what} at offset {offset} is out of bounds")
    return layout.unpack_from(blob, offset)


def _add(section: Section, method: str, name: str, *args: object) -> None:
    try:
        getattr(section, method)(name, *args)
    except ValueError as exc:
        raise BinFormatError(f"Malformed data: {section.name}: {exc}") from exc


def _decompile_section(blob: bytes, filename: str, header_pos: int,
                       script: Script) -> None:
    raw_name, length, offset = _unpack(_SECTION, blob, header_pos, "section header")
    bin_size = len(blob)

    if offset < 0 or offset > bin_size // 4:
        raise BinFormatError(f"Malformed data: invalid section offset: {offset}")
    available = bin_size - 4 * offset
    if length < 0 or length > available // _ENTRY.size:
        raise BinFormatError(f"Malformed data: invalid section length: {length}")

    section_name = _decode(_cstr(raw_name))
    try:
        section = script.add_section(section_name)
    except ValueError as exc:
        raise BinFormatError(f"Malformed data: {exc}") from exc

    for index in range(length):
        raw_key, data_words, pattern = _unpack(
            _ENTRY, blob, (offset << 2) + index * _ENTRY.size, "entry")
        key_bytes = _cstr(raw_key)
        key = _decode(key_bytes)
        data_pos = data_words << 2
        kind = (pattern >> 16) & 0xFFFF
        words = pattern & 0xFFFF
        where = f"{filename}: {section_name}.{key}"

        if any(byte not in _KEY_CHARS for byte in key_bytes):
            log.warning('Malformed entry key "%s"', key)

        if kind == ValueType.SINGLE_WORD:
            if words != 1:
                log.error("%s: invalid length %d (assuming %d)", where, words, 1)
            (value,) = _unpack(_WORD, blob, data_pos, "value")
            _add(section, "add_single", key, value)
        elif kind == ValueType.STRING:
            if data_pos < 0 or data_pos > bin_size:
                raise BinFormatError(
                    f"Malformed data: {where}: string at offset {data_pos} is out of bounds")
            raw = _cstr(blob[data_pos:data_pos + (words << 2)])
            _add(section, "add_string", key, _decode(raw))
        elif kind == ValueType.GPIO:
            port, port_num, *settings = _unpack(_GPIO, blob, data_pos, "GPIO value")
            if words != 6:
                log.error("%s: invalid length %d (assuming %d)", where, words, 6)
            elif port == GPIO_PORT_POWER:
                pass
            elif port < 1 or port > GPIO_BANK_MAX:
                letter = chr(ord("A") + port - 1) if 1 <= port <= 26 else ""
                bank = f"{letter} " if letter else ""
                raise BinFormatError(f"{where}: unknown GPIO port bank {bank}({port})")
            _add(section, "add_gpio", key, port, port_num, settings)
        elif kind == ValueType.NULL:
            if not key:
                log.error("%s: empty entry in section: %s", filename, section_name)
            else:
                _add(section, "add_null", key)
        else:
            raise BinFormatError(f"{where}: unknown type {kind}")


def decompile_bin(data: bytes, filename: str = "<bin>") -> Script:
    """Rebuild a script tree from its binary form."""
    blob = bytes(data)
    n_sections, filesize, major, minor = _unpack(_HEAD, blob, 0, "header")

    if major > VERSION_LIMIT or minor > VERSION_LIMIT:
        raise BinFormatError(f"Malformed data: version {major}.{minor}.")
    if n_sections > SECTION_LIMIT:
        raise BinFormatError(f"Malformed data: too many sections ({n_sections}).")

    log.info("%s: version: %d.%d", filename, major, minor)
    log.info("%s: size: %d (%d sections), header value: %d",
             filename, len(blob), n_sections, filesize)

    script = Script()
    for index in range(n_sections):
        _decompile_section(blob, filename, _HEAD.size + index * _SECTION.size, script)
    return script