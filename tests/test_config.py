from __future__ import annotations

import pytest

from apngkit.config import (
    AppConfig,
    CacheConfig,
    DecoderConfig,
    EncoderConfig,
    get_config_dir,
    get_default_config,
    load_config,
)
from apngkit.encode.filters import ScanlineFilter
from apngkit.errors import ConfigurationError


def test_defaults_are_valid():
    config = get_default_config()
    config.validate()
    assert config.encoder.filter is ScanlineFilter.NONE
    assert config.decoder.speed == 1.0


def test_toml_round_trip(tmp_path):
    config = AppConfig(
        decoder=DecoderConfig(speed=1.5, decode_cover_frame=True),
        encoder=EncoderConfig(compression_level=9, filter=ScanlineFilter.UP,
                              optimise=False, num_plays=3, default_delay_ms=80.0),
        cache=CacheConfig(max_mb=64),
    )
    path = tmp_path / "apngkit.toml"
    config.to_toml(path)

    loaded = AppConfig.from_toml(path)
    assert loaded.config_path == path
    assert loaded.decoder == config.decoder
    assert loaded.encoder == config.encoder
    assert loaded.cache == config.cache


def test_partial_file_uses_defaults(tmp_path):
    path = tmp_path / "partial.toml"
    path.write_text('[encoder]\nfilter = "sub"\n')
    loaded = load_config(path)
    assert loaded.encoder.filter is ScanlineFilter.SUB
    assert loaded.encoder.compression_level == EncoderConfig().compression_level
    assert loaded.decoder == DecoderConfig()


@pytest.mark.parametrize("body", [
    "[encoder]\ncompression_level = 12\n",
    '[encoder]\nfilter = "average"\n',
    "[encoder]\nencode_alpha = false\n",
    "[decoder]\nspeed = -1.0\n",
    "[cache]\nmax_mb = 0\n",
])
def test_invalid_files_rejected(tmp_path, body):
    path = tmp_path / "bad.toml"
    path.write_text(body)
    with pytest.raises(ConfigurationError):
        AppConfig.from_toml(path)


def test_config_dir_follows_xdg(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    assert get_config_dir() == tmp_path / "apngkit"
    assert (tmp_path / "apngkit").is_dir()


def test_load_config_without_file_gives_defaults(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    assert load_config() == get_default_config()
