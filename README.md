# sunxikit

A small toolkit for working with Allwinner ("sunxi") system-on-chip boards:

- read and write board configuration scripts in the text **FEX** format and
  the binary **script.bin** format, and convert between them;
- emit the U-Boot `dram_para` C structure from a script's `[dram_para]` section;
- inspect and modify dumps of the PIO (GPIO controller) register block;
- look up per-SoC data such as SRAM layout, SID and watchdog addresses;
- track and display transfer progress.

No third-party libraries are required.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Configuration scripts

A script (`sunxikit.script.Script`) is an ordered list of named sections
(`Section`), each holding ordered entries. An entry is a `NullEntry`, a
`SingleEntry` (an unsigned 32-bit word), a `StringEntry` or a `GpioEntry`.
Section and entry names longer than 31 characters are truncated.

```python
from sunxikit.script import Script

script = Script()
section = script.add_section("dram_para")
section.add_single("dram_clock", 480)
section.add_single("dram_tpr0", 0x30926692)
section.add_string("name", "example")
section.add_gpio("led", 8, 10, [1, -1, -1, 0])   # PH10, <1><default><default><0>
section.add_null("unused")

assert script.find_section("dram_para").find_entry("dram_clock").value == 480
```

GPIO ports are numbered from 1 (`A`); port `0xFFFF` denotes a pin on the
power management chip (`port:powerN`). A data value of `-1` means "default".
`Script.remove_section` and `Section.remove_entry` remove items again.

### FEX text

```python
import sys
from sunxikit.script_fex import parse_fex, generate_fex, FexParseError

with open("board.fex") as f:
    script = parse_fex(f, "board.fex")      # raises FexParseError on bad input

generate_fex(sys.stdout, script)
```

`parse_fex` also accepts the whole text as one string. `FexParseError`
carries `filename`, `line` and `message`. Entries whose names belong to a
fixed set of address/timing keys (such as `dram_tpr*` or `ctp_twi_addr`) are
written in hexadecimal; other words are written as signed decimals.

### script.bin

```python
from sunxikit.script_bin import generate_bin, decompile_bin, script_bin_size, BinFormatError

blob = generate_bin(script)                 # bytes, ready to write out
again = decompile_bin(blob, "script.bin")   # raises BinFormatError if malformed
size, sections, entries = script_bin_size(script)
```

Warnings about questionable but readable data (odd entry keys, unexpected
value lengths) are reported through the standard `logging` module.

### U-Boot DRAM parameters

```python
import sys
from sunxikit.script_uboot import generate_uboot, UbootError

ok = generate_uboot(sys.stdout, script)     # needs a [dram_para] section
```

`UbootError` is raised when the `[dram_para]` section is missing. Fields that
cannot be expressed (string values) are skipped, logged, and make the call
return `False`.

## PIO register dumps

The `sunxikit-pio` command reads a dump of the PIO register block (0x228
bytes), applies commands to it and can write the result back:

```
sunxikit-pio -i pio.bin print
sunxikit-pio -i pio.bin PH10
sunxikit-pio -i pio.bin -o pio-new.bin 'PH10<1><0><1><1>'
sunxikit-pio -i pio.bin -o pio-new.bin PH10=1,2
sunxikit-pio -i pio.bin -o pio-new.bin 'PH10?1'
sunxikit-pio -i pio.bin -o pio-new.bin clean
```

Options: `-i FILE` reads the register state from a file, `-o FILE` writes it
out afterwards, `-m` maps the live registers from `/dev/mem` (needs suitable
privileges on the board itself). Use `-` as a file name for standard input or
output.

Commands:

| command                        | effect                                  |
|--------------------------------|-----------------------------------------|
| `print`                        | show all pins                           |
| `Pxx`                          | show one pin                            |
| `Pxx<mode><pull><drive><data>` | configure a pin                         |
| `Pxx=data,drive`               | configure as GPIO output                |
| `Pxx?pull`                     | configure as GPIO input                 |
| `Pxx*count`                    | toggle a GPIO output `count` times      |
| `clean`                        | clear the data bit of all input pins    |

Mode is 0–7 (0 input, 1 output, 2–7 peripheral function), pull is
0 none / 1 up / 2 down, drive level is 0–3. Pins are shown as
`Pxn<mode><pull><drive><data>` in hexadecimal; the data field is left out
for pins in a peripheral function.

The same operations are available from Python in `sunxikit.pio`
(`get_pin`, `set_pin`, `parse_pin`, `show_pin`, `configure_pin`,
`oscillate`, `clean`, `format_all`, `run_command`, `main`), working on a
`bytearray` holding the register block. Pin state is a `PinStatus`; invalid
pins or commands raise `PioError`.

## SoC information

```python
from sunxikit.soc_info import get_soc_info_from_id, get_soc_name_from_id

info = get_soc_info_from_id(0x1651)
print(info.name, hex(info.sram_size))
print(get_soc_name_from_id(0x1728))   # "H6"
print(get_soc_name_from_id(0x1234))   # "0x1234"
```

Each `SocInfo` holds SPL, scratch and thunk addresses, SRAM size, SID base
and offset, the `WatchdogInfo` used for reset and the `SwapBuffer` regions.
For an unknown ID, `get_soc_info_from_id` logs a warning and returns
`GENERIC_SOC_INFO`. A FEL version reply can be decoded with
`parse_fel_version` into a `FelVersion` and passed to
`get_soc_info_from_version`.

## Transfer progress

`sunxikit.progress.Progress` tracks a transfer (`start`, `update`,
`elapsed`) and reports through a callback; `Progress.bar`, `Progress.gauge`
and `Progress.gauge_xxx` are ready-made callbacks for a terminal progress bar
or a `dialog --gauge` style feed. Helpers `rate`, `estimate`, `format_eta`,
`kilo` and `kibi` are available on their own.

## What is not included

- There is no command-line converter between FEX and script.bin; convert
  with `parse_fex`, `generate_bin`, `decompile_bin` and `generate_fex` from
  Python.
- Nothing here talks to a device over USB: the SoC data and progress helpers
  are provided, but there is no FEL client that uses them.