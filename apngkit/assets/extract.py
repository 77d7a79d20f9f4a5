"""Raw frame extraction. Splits an APNG into standalone PNGs without decoding."""

from __future__ import annotations

import io
import logging
from pathlib import Path

from apngkit.chunks.primitives import FrameControl, ImageHeader, make_chunk
from apngkit.chunks.reader import ChunkReader
from apngkit.constants import ACTL, FCTL, FDAT, IDAT, IEND, IHDR, PNG_SIGNATURE
from apngkit.errors import StructuralError

logger = logging.getLogger(__name__)


def split_frames(data: bytes) -> list[bytes]:
    """Split an APNG into one standalone PNG per fcTL.

    Each output PNG gets an IHDR sized to its fcTL region plus every
    ancillary chunk (PLTE, tRNS, gAMA...) that preceded the first image
    data. Frames are not composited: each file holds only its own region.
    """
    reader = ChunkReader(io.BytesIO(data))
    if not reader.read_signature():
        raise StructuralError("Not a PNG stream")

    header: ImageHeader | None = None
    preamble: list[bytes] = []
    in_preamble = True
    current: bytearray | None = None
    frames: list[bytes] = []

    for chunk in reader:
        ctype = chunk.chunk_type
        if ctype == IHDR:
            header = ImageHeader.parse(chunk.payload)
            continue
        if header is None:
            raise StructuralError(f"{chunk.name} chunk before IHDR")

        if ctype == FCTL:
            in_preamble = False
            if current is not None:
                frames.append(bytes(current + make_chunk(IEND)))
            control = FrameControl.parse(chunk.payload)
            current = bytearray(PNG_SIGNATURE)
            current += make_chunk(IHDR, header.with_size(control.width, control.height))
            for raw in preamble:
                current += raw
        elif ctype == IDAT:
            in_preamble = False
            if current is not None:
                current += chunk.to_bytes()
        elif ctype == FDAT:
            if current is None:
                raise StructuralError("fdAT before the first fcTL")
            if chunk.length < 4:
                raise StructuralError(f"fdAT payload is {chunk.length} bytes, need at least 4")
            current += make_chunk(IDAT, chunk.payload[4:])
        elif ctype == IEND:
            break
        elif in_preamble and ctype != ACTL:
            preamble.append(chunk.to_bytes())

    if current is not None:
        frames.append(bytes(current + make_chunk(IEND)))
    return frames


def frame_file_name(source: Path, index: int) -> str:
    """``anim.png`` frame 3 -> ``anim_003.png``."""
    return f"{source.stem}_{index:03d}{source.suffix}"


def extract_frames(path: str | Path, output_dir: str | Path | None = None) -> int:
    """Write each raw frame of an APNG as its own PNG file.

    Args:
        path: Source APNG.
        output_dir: Destination directory; defaults to the source's directory.

    Returns:
        Number of frames written.
    """
    path = Path(path)
    out = Path(output_dir) if output_dir is not None else path.parent
    out.mkdir(parents=True, exist_ok=True)

    frames = split_frames(path.read_bytes())
    for index, png in enumerate(frames):
        (out / frame_file_name(path, index)).write_bytes(png)

    logger.info("Extracted %d frames from %s into %s", len(frames), path.name, out)
    return len(frames)
