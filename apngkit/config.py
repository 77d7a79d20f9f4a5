"""TOML configuration loading and saving for decoder, encoder and cache."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

import tomli_w

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from apngkit.constants import (
    DEFAULT_CACHE_MAX_MB,
    DEFAULT_COMPRESSION_LEVEL,
    DEFAULT_DECODE_COVER_FRAME,
    DEFAULT_DELAY_MS,
    DEFAULT_FILTER,
    DEFAULT_NUM_PLAYS,
    DEFAULT_SPEED,
    MAX_COMPRESSION_LEVEL,
    MAX_DELAY_MS,
    MIN_COMPRESSION_LEVEL,
)
from apngkit.encode.filters import ScanlineFilter
from apngkit.errors import ConfigurationError


@dataclass
class DecoderConfig:
    """Decoding options.

    ``speed`` divides every frame duration (2.0 plays twice as fast).
    ``decode_cover_frame`` keeps the pre-animation default image instead
    of skipping its image data.
    """

    speed: float = DEFAULT_SPEED
    decode_cover_frame: bool = DEFAULT_DECODE_COVER_FRAME

    def validate(self) -> None:
        if not self.speed > 0:
            raise ConfigurationError(f"Playback speed must be positive, got {self.speed}")


@dataclass
class EncoderConfig:
    """Encoding options."""

    compression_level: int = DEFAULT_COMPRESSION_LEVEL
    filter: ScanlineFilter = ScanlineFilter.NONE
    encode_alpha: bool = True
    optimise: bool = True
    num_plays: int = DEFAULT_NUM_PLAYS
    first_frame_in_animation: bool = True  # False makes frame 0 a hidden cover image
    default_delay_ms: float = DEFAULT_DELAY_MS

    def validate(self) -> None:
        """Reject bad or conflicting options before any byte is written."""
        if not MIN_COMPRESSION_LEVEL <= self.compression_level <= MAX_COMPRESSION_LEVEL:
            raise ConfigurationError(
                f"Invalid compression level: {self.compression_level}, expected a "
                f"number in range {MIN_COMPRESSION_LEVEL}..{MAX_COMPRESSION_LEVEL}"
            )
        self.filter = ScanlineFilter.parse(self.filter)
        if self.optimise and not self.encode_alpha:
            raise ConfigurationError(
                "Frame optimisation needs alpha: set encode_alpha or disable optimise"
            )
        if self.num_plays < 0:
            raise ConfigurationError(f"num_plays must be >= 0, got {self.num_plays}")
        if not 0 <= self.default_delay_ms <= MAX_DELAY_MS:
            raise ConfigurationError(
                f"default_delay_ms must be within 0..{MAX_DELAY_MS}, got {self.default_delay_ms}"
            )


@dataclass
class CacheConfig:
    """Decoded-animation cache settings."""

    max_mb: int = DEFAULT_CACHE_MAX_MB

    def validate(self) -> None:
        if self.max_mb <= 0:
            raise ConfigurationError(f"Cache size must be positive, got {self.max_mb} MB")


@dataclass
class AppConfig:
    """Top-level configuration."""

    decoder: DecoderConfig = field(default_factory=DecoderConfig)
    encoder: EncoderConfig = field(default_factory=EncoderConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    config_path: Path | None = None

    def validate(self) -> None:
        self.decoder.validate()
        self.encoder.validate()
        self.cache.validate()

    @classmethod
    def from_toml(cls, path: Path) -> AppConfig:
        """Load configuration from a TOML file."""
        with open(path, "rb") as f:
            data = tomllib.load(f)
        return cls._from_dict(data, config_path=path)

    @classmethod
    def _from_dict(cls, data: dict[str, Any], config_path: Path | None = None) -> AppConfig:
        """Build config from a parsed TOML dict."""
        dec_data = data.get("decoder", {})
        decoder = DecoderConfig(
            speed=float(dec_data.get("speed", DEFAULT_SPEED)),
            decode_cover_frame=dec_data.get("decode_cover_frame", DEFAULT_DECODE_COVER_FRAME),
        )

        enc_data = data.get("encoder", {})
        encoder = EncoderConfig(
            compression_level=enc_data.get("compression_level", DEFAULT_COMPRESSION_LEVEL),
            filter=ScanlineFilter.parse(enc_data.get("filter", DEFAULT_FILTER)),
            encode_alpha=enc_data.get("encode_alpha", True),
            optimise=enc_data.get("optimise", True),
            num_plays=enc_data.get("num_plays", DEFAULT_NUM_PLAYS),
            first_frame_in_animation=enc_data.get("first_frame_in_animation", True),
            default_delay_ms=float(enc_data.get("default_delay_ms", DEFAULT_DELAY_MS)),
        )

        cache_data = data.get("cache", {})
        cache = CacheConfig(
            max_mb=cache_data.get("max_mb", DEFAULT_CACHE_MAX_MB),
        )

        config = cls(decoder=decoder, encoder=encoder, cache=cache, config_path=config_path)
        config.validate()
        return config

    def to_toml(self, path: Path) -> None:
        """Save configuration to a TOML file."""
        data = self._to_dict()
        with open(path, "wb") as f:
            tomli_w.dump(data, f)

    def _to_dict(self) -> dict[str, Any]:
        """Convert config to a TOML-compatible dict."""
        return {
            "decoder": {
                "speed": self.decoder.speed,
                "decode_cover_frame": self.decoder.decode_cover_frame,
            },
            "encoder": {
                "compression_level": self.encoder.compression_level,
                "filter": ScanlineFilter.parse(self.encoder.filter).name.lower(),
                "encode_alpha": self.encoder.encode_alpha,
                "optimise": self.encoder.optimise,
                "num_plays": self.encoder.num_plays,
                "first_frame_in_animation": self.encoder.first_frame_in_animation,
                "default_delay_ms": self.encoder.default_delay_ms,
            },
            "cache": {
                "max_mb": self.cache.max_mb,
            },
        }


def get_config_dir() -> Path:
    """Return the XDG config directory for apngkit.

    Uses $XDG_CONFIG_HOME/apngkit if set, otherwise ~/.config/apngkit.
    Creates the directory if it doesn't exist.
    """
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        base = Path(xdg) / "apngkit"
    else:
        base = Path.home() / ".config" / "apngkit"
    base.mkdir(parents=True, exist_ok=True)
    return base


def get_default_config_path() -> Path:
    return get_config_dir() / "config.toml"


def load_config(path: Path | None = None) -> AppConfig:
    """Load a config file, falling back to the user's default location.

    Returns defaults when no path is given and no default file exists.
    """
    if path is None:
        default = get_default_config_path()
        if not default.exists():
            return get_default_config()
        path = default
    logger.info("Loading config: %s", path)
    return AppConfig.from_toml(Path(path))


def get_default_config() -> AppConfig:
    """Return a default configuration."""
    return AppConfig()
