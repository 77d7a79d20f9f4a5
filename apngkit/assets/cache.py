"""Memory-bounded cache of decoded animations."""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import NamedTuple

from apngkit.assets.loader import load_apng
from apngkit.config import AppConfig, DecoderConfig
from apngkit.constants import DEFAULT_CACHE_MAX_MB
from apngkit.decode.animation import AnimatedImage

logger = logging.getLogger(__name__)

_MB = 1024 * 1024


class CacheKey(NamedTuple):
    """Identifies one decode: the file as it is now, and the options used."""

    path: str
    mtime_ns: int
    size: int
    speed: float
    decode_cover_frame: bool


@dataclass
class _Entry:
    animation: AnimatedImage
    nbytes: int


class AnimationCache:
    """Decoded animations, evicted least-recently-used past ``max_mb``.

    Entries are keyed on the resolved path, the file's mtime and size, and
    the decoder options, so a rewritten file or a different playback speed
    is decoded afresh instead of served stale.

    Args:
        max_mb: Budget for pixel data held by all entries.
        config: Decoder options used for every load.
    """

    def __init__(self, max_mb: int = DEFAULT_CACHE_MAX_MB,
                 config: DecoderConfig | None = None) -> None:
        self._budget = max_mb * _MB
        self._config = config or DecoderConfig()
        self._entries: OrderedDict[CacheKey, _Entry] = OrderedDict()
        self._held = 0

    @classmethod
    def from_config(cls, config: AppConfig) -> AnimationCache:
        config.cache.validate()
        return cls(config.cache.max_mb, config.decoder)

    @property
    def current_mb(self) -> float:
        return self._held / _MB

    @property
    def max_mb(self) -> int:
        return self._budget // _MB

    @property
    def entry_count(self) -> int:
        return len(self._entries)

    def key_for(self, path: str | Path) -> CacheKey:
        resolved = Path(path).resolve()
        st = resolved.stat()
        return CacheKey(
            str(resolved), st.st_mtime_ns, st.st_size,
            self._config.speed, self._config.decode_cover_frame,
        )

    def __contains__(self, path: str | Path) -> bool:
        try:
            return self.key_for(path) in self._entries
        except FileNotFoundError:
            return False

    def get(self, path: str | Path) -> AnimatedImage | None:
        """Return the cached decode of ``path`` if it is still current."""
        key = self.key_for(path)
        entry = self._entries.get(key)
        if entry is None:
            return None
        self._entries.move_to_end(key)
        return entry.animation

    def get_or_load(self, path: str | Path) -> AnimatedImage:
        """Return the cached decode of ``path``, decoding it on a miss.

        An animation larger than the whole budget is returned but not kept.
        """
        key = self.key_for(path)
        entry = self._entries.get(key)
        if entry is not None:
            self._entries.move_to_end(key)
            logger.debug("Cache hit: %s", key.path)
            return entry.animation

        animation = load_apng(path, self._config)
        nbytes = animation.nbytes
        if nbytes > self._budget:
            logger.info(
                "Not caching %s: %.1f MB exceeds the %d MB budget",
                Path(path).name, nbytes / _MB, self.max_mb,
            )
            return animation

        self._drop_stale(key.path)
        while self._entries and self._held + nbytes > self._budget:
            self._evict_oldest()
        self._entries[key] = _Entry(animation, nbytes)
        self._held += nbytes
        logger.info(
            "Cached %s: %d frames, %.1f MB (%.1f of %d MB used)",
            Path(path).name, animation.frame_count, nbytes / _MB,
            self.current_mb, self.max_mb,
        )
        return animation

    def evict(self, path: str | Path) -> None:
        """Drop every cached decode of ``path``, whatever its options."""
        self._drop_stale(str(Path(path).resolve()))

    def clear(self) -> None:
        self._entries.clear()
        self._held = 0

    def _remove(self, key: CacheKey) -> None:
        self._held -= self._entries.pop(key).nbytes

    def _drop_stale(self, resolved: str) -> None:
        for key in [k for k in self._entries if k.path == resolved]:
            self._remove(key)

    def _evict_oldest(self) -> None:
        key = next(iter(self._entries))
        freed = self._entries[key].nbytes
        self._remove(key)
        logger.info("Evicted %s (%.1f MB)", Path(key.path).name, freed / _MB)
