"""
Shared pytest fixtures for the Ayysee test suite.
"""

import pytest


GREENHOUSE = """\
// Keep a greenhouse between LOW and HIGH degrees.
def d0 as sensor;
def d1 as cooler;
def d2 as heater;

const HIGH = 30;
const LOW = 15;

loop {
    let t = 0;
    read sensor.Temperature into t;
    write t into db.Setting;

    if (t > HIGH) {
        write 1 into cooler.On;
    } else {
        write 0 into cooler.On;
    }

    if (t < LOW) {
        write 1 into heater.On;
    } else {
        write 0 into heater.On;
    }

    yield;
}
"""


@pytest.fixture
def greenhouse_source() -> str:
    """The greenhouse regulator program."""
    return GREENHOUSE


@pytest.fixture
def greenhouse_file(tmp_path):
    """The greenhouse regulator program written to a temporary .ay file."""
    path = tmp_path / "greenhouse.ay"
    path.write_text(GREENHOUSE)
    return path
