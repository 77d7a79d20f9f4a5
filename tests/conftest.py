from __future__ import annotations

import pytest

from apngkit.config import DecoderConfig
from apngkit.decode.compositor import DecodeCompositor

from helpers import reference_decode_png


@pytest.fixture
def png_decoder():
    return reference_decode_png


@pytest.fixture
def compositor():
    return DecodeCompositor(
        DecoderConfig(),
        decode_png=reference_decode_png,
        decode_image=reference_decode_png,
    )


@pytest.fixture(autouse=True)
def isolated_config_home(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
