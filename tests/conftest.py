"""Shared sample showfiles for the test suite."""

from pathlib import Path

import pytest

SAMPLE = (
    "\\ MagicQ Show File\n"
    "\\ File version 1.9.3.7\n"
    "\n"
    'V,007d,"MagicQ 1",01090307,0000,0002,;\n'
    'T,"Venue","Main Hall",0001,\n'
    '"Designer","",0000,;\n'
    "\n"
    'L,0001,"Dimmer",00ff,1.000000,-nan,\n'
    '0002,"Spot 575",FFFFFFFFFFFFFFFF,0.500000,nan;\n'
    'Z,"not a known code yet";\n'
)


@pytest.fixture
def sample_text() -> str:
    return SAMPLE


@pytest.fixture
def sample_path(tmp_path) -> Path:
    path = tmp_path / "sample.shw"
    path.write_bytes(SAMPLE.encode("latin-1"))
    return path
