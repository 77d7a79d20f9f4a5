"""Chunk reader: pulls length-prefixed, CRC-checked chunks off a byte stream."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import BinaryIO, Iterator

from apngkit.chunks.primitives import chunk_crc, pack_u32, read_u32
from apngkit.constants import MAX_CHUNK_LENGTH, PNG_SIGNATURE, READ_BLOCK_SIZE
from apngkit.errors import ChecksumError, StructuralError, TruncatedStreamError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Chunk:
    """A single validated chunk."""

    chunk_type: bytes
    payload: bytes
    crc: int

    @property
    def length(self) -> int:
        return len(self.payload)

    @property
    def name(self) -> str:
        return self.chunk_type.decode("latin-1")

    def to_bytes(self) -> bytes:
        """Re-serialize exactly as it appeared in the stream."""
        return pack_u32(self.length) + self.chunk_type + self.payload + pack_u32(self.crc)


class ChunkReader:
    """Reads chunks one at a time from a binary stream.

    The stream is owned by the caller; the reader never closes it. Every
    chunk's CRC is checked before it is returned, and a mismatch is fatal
    since the following chunk boundaries can no longer be trusted.
    """

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        self._chunks_read = 0

    @property
    def chunks_read(self) -> int:
        return self._chunks_read

    def read_signature(self) -> bool:
        """Consume 8 bytes and report whether they are the PNG signature."""
        return self._stream.read(len(PNG_SIGNATURE)) == PNG_SIGNATURE

    def _read_exact(self, size: int, what: str) -> bytes:
        # No single read asks for more than READ_BLOCK_SIZE bytes.
        parts: list[bytes] = []
        remaining = size
        while remaining:
            part = self._stream.read(min(remaining, READ_BLOCK_SIZE))
            if not part:
                got = size - remaining
                raise TruncatedStreamError(
                    f"Stream ended inside {what}: wanted {size} bytes, got {got}"
                )
            parts.append(part)
            remaining -= len(part)
        return b"".join(parts)

    def next(self) -> Chunk | None:
        """Return the next chunk, or None at a clean end of stream."""
        head = self._stream.read(4)
        if not head:
            return None
        if len(head) != 4:
            raise TruncatedStreamError(
                f"Stream ended inside a chunk length ({len(head)} of 4 bytes)"
            )

        length = read_u32(head)
        if length > MAX_CHUNK_LENGTH:
            raise StructuralError(f"Chunk length {length} exceeds {MAX_CHUNK_LENGTH}")

        body = self._read_exact(length + 8, "a chunk body")
        chunk_type = body[:4]
        payload = body[4:4 + length]
        stored = read_u32(body, 4 + length)
        computed = chunk_crc(chunk_type, payload)
        if stored != computed:
            raise ChecksumError(chunk_type, stored, computed)

        self._chunks_read += 1
        logger.debug("Chunk %r (%d bytes)", chunk_type, length)
        return Chunk(chunk_type=chunk_type, payload=payload, crc=stored)

    def __iter__(self) -> Iterator[Chunk]:
        while True:
            chunk = self.next()
            if chunk is None:
                return
            yield chunk
