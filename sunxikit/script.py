"""In-memory tree of a configuration script: ordered sections holding typed entries."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import ClassVar, Iterator, Sequence, Union

NAME_MAX = 31
"""Longest section or entry name kept; longer names are truncated."""

GPIO_BANK_MAX = 14
"""Number of GPIO banks (A..N, one-based in GPIO entries)."""

GPIO_PORT_POWER = 0xFFFF
"""Port value that marks a GPIO on the power management chip."""

_UINT32_MASK = 0xFFFFFFFF


class ValueType(enum.IntEnum):
    """Kinds of entry values, numbered as in the binary format."""

    SINGLE_WORD = 1
    STRING = 2
    MULTI_WORD = 3
    GPIO = 4
    NULL = 5


def _truncate(name: str) -> str:
    return name[:NAME_MAX]


def _require_name(name: str, what: str) -> None:
    if not name:
        raise ValueError(f"{what} name must not be empty")


@dataclass
class NullEntry:
    """An entry without a value."""

    name: str
    type: ClassVar[ValueType] = ValueType.NULL

    def __post_init__(self) -> None:
        self.name = _truncate(self.name)


@dataclass
class SingleEntry:
    """An entry holding one unsigned 32-bit word."""

    name: str
    value: int
    type: ClassVar[ValueType] = ValueType.SINGLE_WORD

    def __post_init__(self) -> None:
        self.name = _truncate(self.name)
        self.value = int(self.value) & _UINT32_MASK

    @property
    def signed_value(self) -> int:
        """The value read as a signed 32-bit integer."""
        return self.value - (1 << 32) if self.value & 0x80000000 else self.value


@dataclass
class StringEntry:
    """An entry holding a string."""

    name: str
    value: str
    type: ClassVar[ValueType] = ValueType.STRING

    def __post_init__(self) -> None:
        self.name = _truncate(self.name)


@dataclass
class GpioEntry:
    """An entry describing a GPIO pin and its four settings (-1 means default)."""

    name: str
    port: int
    port_num: int
    data: tuple[int, int, int, int]
    type: ClassVar[ValueType] = ValueType.GPIO

    def __post_init__(self) -> None:
        self.name = _truncate(self.name)
        data = tuple(int(v) for v in self.data)
        if len(data) != 4:
            raise ValueError(f"GPIO entry needs 4 data values, got {len(data)}")
        self.data = data  # type: ignore[assignment]


Entry = Union[NullEntry, SingleEntry, StringEntry, GpioEntry]


@dataclass
class Section:
    """A named, ordered collection of entries."""

    name: str
    entries: list[Entry] = field(default_factory=list)

    def __post_init__(self) -> None:
        _require_name(self.name, "section")
        self.name = _truncate(self.name)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def _append(self, entry: Entry) -> Entry:
        self.entries.append(entry)
        return entry

    def add_null(self, name: str) -> NullEntry:
        """Append an entry without a value."""
        _require_name(name, "entry")
        return self._append(NullEntry(name))  # type: ignore[return-value]

    def add_single(self, name: str, value: int) -> SingleEntry:
        """Append a 32-bit word entry; the value is taken modulo 2**32."""
        _require_name(name, "entry")
        return self._append(SingleEntry(name, value))  # type: ignore[return-value]

    def add_string(self, name: str, value: str) -> StringEntry:
        """Append a string entry."""
        return self._append(StringEntry(name, value))  # type: ignore[return-value]

    def add_gpio(self, name: str, port: int, port_num: int,
                 data: Sequence[int]) -> GpioEntry:
        """Append a GPIO entry."""
        _require_name(name, "entry")
        return self._append(  # type: ignore[return-value]
            GpioEntry(name, port, port_num, tuple(data)))  # type: ignore[arg-type]

    def find_entry(self, name: str) -> Entry | None:
        """Return the first entry called ``name``, or None."""
        return next((e for e in self.entries if e.name == name), None)

    def remove_entry(self, entry: Entry) -> None:
        """Remove this very entry from the section."""
        for index, candidate in enumerate(self.entries):
            if candidate is entry:
                del self.entries[index]
                return
        raise ValueError(f"entry {entry.name!r} is not in section {self.name!r}")


@dataclass
class Script:
    """The root of a script tree: an ordered list of sections."""

    sections: list[Section] = field(default_factory=list)

    def __iter__(self) -> Iterator[Section]:
        return iter(self.sections)

    def __len__(self) -> int:
        return len(self.sections)

    def add_section(self, name: str) -> Section:
        """Append a new, empty section."""
        section = Section(name)
        self.sections.append(section)
        return section

    def find_section(self, name: str) -> Section | None:
        """Return the first section called ``name``, or None."""
        return next((s for s in self.sections if s.name == name), None)

    def remove_section(self, section: Section) -> None:
        """Remove this very section from the script."""
        for index, candidate in enumerate(self.sections):
            if candidate is section:
                del self.sections[index]
                return
        raise ValueError(f"section {section.name!r} is not in the script")