"""apngkit: Animated PNG decoding, compositing and encoding."""

__version__ = "0.1.0"

from apngkit.assets.loader import decode_apng, load_apng, load_apng_async
from apngkit.chunks.primitives import BlendOp, DisposeOp
from apngkit.decode.animation import AnimatedImage, Frame
from apngkit.encode.encoder import ApngEncoder, encode_frames, save_animation
from apngkit.errors import (
    ApngError,
    ChecksumError,
    ConfigurationError,
    StructuralError,
    TruncatedStreamError,
)

__all__ = [
    "AnimatedImage",
    "ApngEncoder",
    "ApngError",
    "BlendOp",
    "ChecksumError",
    "ConfigurationError",
    "DisposeOp",
    "Frame",
    "StructuralError",
    "TruncatedStreamError",
    "decode_apng",
    "encode_frames",
    "load_apng",
    "load_apng_async",
    "save_animation",
]
