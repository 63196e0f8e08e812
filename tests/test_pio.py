import pytest

from sunxikit.pio import (
    PIO_NR_PORTS,
    PIO_REG_SIZE,
    PinStatus,
    PioError,
    clean,
    configure_pin,
    format_all,
    format_pin,
    get_pin,
    main,
    oscillate,
    parse_pin,
    run_command,
    set_pin,
    show_pin,
)


@pytest.fixture
def buf():
    return bytearray(PIO_REG_SIZE)


def test_zero_buffer_reads_as_input_low(buf):
    assert get_pin(buf, 0, 0) == PinStatus(0, 0, 0, 0)


@pytest.mark.parametrize("port,num,status", [
    (0, 0, PinStatus(1, 2, 3, 1)),
    (1, 17, PinStatus(0, 1, 2, 1)),
    (8, 31, PinStatus(1, 3, 1, 0)),
    (4, 9, PinStatus(0, 2, 0, 1)),
])
def test_set_then_get_round_trip(buf, port, num, status):
    set_pin(buf, port, num, status)
    assert get_pin(buf, port, num) == status


def test_other_pins_are_untouched(buf):
    set_pin(buf, 2, 5, PinStatus(1, 3, 3, 1))
    for num in range(32):
        if num != 5:
            assert get_pin(buf, 2, num) == PinStatus(0, 0, 0, 0)


def test_negative_fields_leave_buffer_unchanged(buf):
    set_pin(buf, 3, 7, PinStatus(1, 2, 3, 1))
    before = bytes(buf)
    set_pin(buf, 3, 7, PinStatus())
    assert bytes(buf) == before


def test_function_pin_has_no_data(buf):
    set_pin(buf, 0, 4, PinStatus(mul_sel=3))
    assert get_pin(buf, 0, 4).data == -1


def test_register_layout_bytes(buf):
    set_pin(buf, 0, 0, PinStatus(mul_sel=1))
    set_pin(buf, 1, 3, PinStatus(data=1))
    assert buf[0] == 1
    assert int.from_bytes(buf[0x34:0x38], "little") == 1 << 3


def test_format_pin():
    assert format_pin(0, 5, PinStatus(1, 2, 3, 0)) == "PA5<1><2><3><0>"
    assert format_pin(2, 7, PinStatus(4, 1, 2, -1)) == "PC7<4><1><2>"


def test_parse_pin():
    assert parse_pin("PB12") == (1, 12)
    assert parse_pin("C3") == (2, 3)


def test_parse_pin_empty():
    with pytest.raises(PioError):
        parse_pin("P")


def test_out_of_range_pins(buf):
    with pytest.raises(PioError):
        get_pin(buf, 15, 0)
    with pytest.raises(PioError):
        get_pin(buf, 0, 32)


def test_configure_angle_brackets(buf):
    configure_pin(buf, "PA3<2><1><3>")
    assert get_pin(buf, 0, 3) == PinStatus(2, 1, 3, -1)


def test_configure_output(buf):
    configure_pin(buf, "PC5=1,2")
    assert get_pin(buf, 2, 5) == PinStatus(1, 0, 2, 1)


def test_configure_input(buf):
    set_pin(buf, 2, 5, PinStatus(1, 0, 3, 1))
    configure_pin(buf, "PC5?1")
    assert get_pin(buf, 2, 5) == PinStatus(0, 1, 0, 0)


def test_oscillate_toggles_count_times(buf):
    oscillate(buf, "PD4*3")
    assert get_pin(buf, 3, 4) == PinStatus(1, 0, 0, 1)
    oscillate(buf, "PD4*4")
    assert get_pin(buf, 3, 4).data == 1
    oscillate(buf, "PD4*1")
    assert get_pin(buf, 3, 4).data == 0


def test_clean_clears_only_inputs(buf):
    set_pin(buf, 0, 0, PinStatus(0, -1, -1, 1))
    set_pin(buf, 0, 1, PinStatus(1, -1, -1, 1))
    clean(buf)
    assert get_pin(buf, 0, 0).data == 0
    assert get_pin(buf, 0, 1).data == 1


def test_format_all_covers_every_pin(buf):
    lines = format_all(buf)
    assert len(lines) == PIO_NR_PORTS * 32
    assert lines[0] == format_pin(0, 0, PinStatus(0, 0, 0, 0))
    assert lines[-1] == format_pin(PIO_NR_PORTS - 1, 31, PinStatus(0, 0, 0, 0))


def test_run_command_dispatch(buf):
    assert run_command(buf, "PB2=1") == []
    assert run_command(buf, "PB2") == [show_pin(buf, "PB2")]
    assert get_pin(buf, 1, 2).data == 1
    assert len(run_command(buf, "print")) == PIO_NR_PORTS * 32


def test_run_command_unknown(buf):
    with pytest.raises(PioError):
        run_command(buf, "bogus")


def test_main_without_source_fails():
    assert main([]) == 1


def test_main_unknown_option_shows_usage(capsys):
    assert main(["-x"]) == 0
    assert "usage" in capsys.readouterr().err


def test_main_file_round_trip(tmp_path):
    source = tmp_path / "in.bin"
    target = tmp_path / "out.bin"
    source.write_bytes(bytes(PIO_REG_SIZE))
    assert main(["-i", str(source), "-o", str(target), "PA1<1><2>"]) == 0
    result = bytearray(target.read_bytes())
    assert len(result) == PIO_REG_SIZE
    assert get_pin(result, 0, 1) == PinStatus(1, 2, 0, 0)


def test_main_prints_pin(tmp_path, capsys):
    source = tmp_path / "in.bin"
    data = bytearray(PIO_REG_SIZE)
    set_pin(data, 1, 2, PinStatus(1, 1, 1, 1))
    source.write_bytes(bytes(data))
    assert main(["-i", str(source), "PB2"]) == 0
    assert capsys.readouterr().out == show_pin(data, "PB2") + "\n"


def test_main_short_input(tmp_path):
    source = tmp_path / "short.bin"
    source.write_bytes(bytes(10))
    assert main(["-i", str(source)]) == 1


def test_main_bad_command(tmp_path):
    source = tmp_path / "in.bin"
    source.write_bytes(bytes(PIO_REG_SIZE))
    assert main(["-i", str(source), "nonsense"]) == 1