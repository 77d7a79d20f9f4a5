"""Default constants and configuration values."""

# PNG stream framing
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
MAX_CHUNK_LENGTH = 2**31 - 1
READ_BLOCK_SIZE = 1 << 20

# Chunk types
IHDR = b"IHDR"
PLTE = b"PLTE"
TRNS = b"tRNS"
ACTL = b"acTL"
FCTL = b"fcTL"
IDAT = b"IDAT"
FDAT = b"fdAT"
IEND = b"IEND"

# Payload sizes
IHDR_LENGTH = 13
ACTL_LENGTH = 8
FCTL_LENGTH = 26

# IHDR tail written by the encoder: bit depth, color type, compression, filter, interlace
BIT_DEPTH = 8
COLOR_TYPE_RGB = 2
COLOR_TYPE_RGBA = 6

# Timing
DEFAULT_DELAY_DEN = 100   # fcTL delay_den of 0 means 1/100 s
ENCODER_DELAY_DEN = 1000  # Encoder writes delays in milliseconds
DEFAULT_DELAY_MS = 1000.0
MAX_DELAY_MS = 0xFFFF

# Decoding
DEFAULT_SPEED = 1.0
DEFAULT_DECODE_COVER_FRAME = False

# Encoding
DEFAULT_COMPRESSION_LEVEL = 6
MIN_COMPRESSION_LEVEL = 0
MAX_COMPRESSION_LEVEL = 9
DEFAULT_FILTER = "none"
DEFAULT_NUM_PLAYS = 0  # 0 = loop forever

# Animation cache
DEFAULT_CACHE_MAX_MB = 256
