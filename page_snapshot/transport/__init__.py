"""Wire encoding for snapshot uploads."""

from .codec import (
    CodecError,
    ContentTooLargeError,
    compress,
    compression_summary,
    decode,
    decompress,
    encode,
    pack,
    unpack,
)

__all__ = [
    'CodecError',
    'ContentTooLargeError',
    'compress',
    'compression_summary',
    'decode',
    'decompress',
    'encode',
    'pack',
    'unpack',
]
