import io

import pytest

from sunxikit.progress import (
    Progress,
    estimate,
    format_eta,
    gettime,
    kibi,
    kilo,
    rate,
)


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock(100.0)


@pytest.fixture
def out():
    return io.StringIO()


@pytest.fixture
def progress(out, clock):
    return Progress(out=out, clock=clock)


def test_gettime_advances():
    first = gettime()
    assert gettime() >= first


def test_rate_and_estimate_invert():
    r = rate(1000, 4.0)
    assert r * 4.0 == pytest.approx(1000)
    assert estimate(500, r) * r == pytest.approx(500)


def test_rate_and_estimate_guard_zero():
    assert rate(1000, 0) == 0
    assert rate(1000, -1) == 0
    assert estimate(1000, 0) == 0


def test_kilo_kibi():
    assert kilo(3000) * 1000 == pytest.approx(3000)
    assert kibi(2048) * 1024 == pytest.approx(2048)


def test_format_eta_values():
    assert format_eta(61) == "01:01"
    assert format_eta(5999.4) == "99:59"


def test_format_eta_out_of_range():
    assert format_eta(6000) == "--:--"
    assert format_eta(-100) == "--:--"
    assert format_eta(float("inf")) == "--:--"
    assert format_eta(float("nan")) == "--:--"


def test_format_eta_rounds():
    assert format_eta(60.6) == format_eta(61)
    assert format_eta(60.4) != format_eta(61)


def test_update_accumulates_and_calls_back(progress):
    calls = []
    progress.start(lambda total, done: calls.append((total, done)), 100)
    progress.update(10)
    progress.update(20)
    assert calls == [(100, 10), (100, 30)]
    assert progress.done == 30


def test_start_resets(progress):
    progress.start(None, 50)
    progress.update(40)
    progress.start(None, 80)
    assert (progress.total, progress.done) == (80, 0)


def test_elapsed(progress, clock):
    assert progress.elapsed() == 0
    progress.start(None, 10)
    clock.now += 5.0
    assert progress.elapsed() == pytest.approx(5.0)


def test_bar_partial(progress, out, clock):
    progress.start(None, 1000)
    clock.now += 1.0
    assert progress.elapsed() == pytest.approx(1.0)
    progress.bar(1000, 500)
    text = out.getvalue()
    assert text.startswith("\r")
    inner = text[text.index("[") + 1:text.index("]")]
    assert len(inner) == 48
    assert inner.count("=") == 24
    assert "kB/s, ETA " + format_eta(estimate(500, rate(500, 1.0))) in text
    assert not text.endswith("\n")


def test_bar_complete(progress, out, clock):
    progress.start(None, 1000)
    clock.now += 2.0
    assert progress.elapsed() == pytest.approx(2.0)
    progress.bar(1000, 1000)
    text = out.getvalue()
    inner = text[text.index("[") + 1:text.index("]")]
    assert inner == "=" * 48
    assert text.endswith(" kB/s\n")
    assert " kB, " in text


def test_bar_as_callback(progress, out):
    progress.start(progress.bar, 10)
    progress.update(10)
    assert progress.done == 10
    assert out.getvalue().endswith("\n")


def test_gauge(progress, out):
    progress.start(progress.gauge, 200)
    progress.update(50)
    assert progress.done == 50
    assert out.getvalue() == "25\n"


def test_gauge_zero_total_writes_nothing(progress, out):
    progress.start(progress.gauge, 0)
    progress.update(5)
    progress.gauge_xxx(0, 5)
    assert progress.done == 5
    assert out.getvalue() == ""


def test_gauge_xxx_partial(progress, out, clock):
    progress.start(None, 200)
    clock.now += 1.0
    assert progress.elapsed() == pytest.approx(1.0)
    progress.gauge_xxx(200, 50)
    lines = out.getvalue().splitlines()
    assert lines[0] == "XXX"
    assert lines[1] == "25"
    assert lines[-1] == "XXX"
    assert lines[2].startswith("50 of 200, ")
    assert lines[2].endswith("ETA " + format_eta(estimate(150, rate(50, 1.0))))


def test_gauge_xxx_done(progress, out, clock):
    progress.start(progress.gauge_xxx, 200)
    clock.now += 1.0
    progress.update(200)
    assert progress.done == 200
    lines = out.getvalue().splitlines()
    assert lines[1] == "100"
    assert lines[2].startswith("Done: ")
    assert len(lines) == 4