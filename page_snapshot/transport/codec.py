"""Transport codec for snapshot documents.

Documents travel as gzip-compressed UTF-8, base64-encoded so they fit in a
JSON string field. Encoding works in chunks so multi-megabyte documents
never need one giant intermediate string, and decompression enforces a
size ceiling while streaming.
"""

import base64
import binascii
import gzip
import io
import logging
import zlib
from typing import Optional


logger = logging.getLogger(__name__)

# Multiple of 3 so chunk encodings concatenate without padding in between
ENCODE_CHUNK_SIZE = 3 * 32 * 1024

# Multiple of 4 so chunk decodings line up with base64 quanta
DECODE_CHUNK_SIZE = 4 * 32 * 1024

READ_CHUNK_SIZE = 64 * 1024


class CodecError(ValueError):
    """Raised when a payload cannot be encoded or decoded."""
    pass


class ContentTooLargeError(CodecError):
    """Raised when decompressed content exceeds the allowed size."""
    pass


def compress(text: str) -> bytes:
    """Gzip-compress text encoded as UTF-8."""
    return gzip.compress(text.encode('utf-8'))


def decompress(data: bytes, max_size: Optional[int] = None) -> str:
    """Decompress gzip data into text.

    Args:
        data: Gzip stream
        max_size: Maximum decompressed size in bytes

    Raises:
        CodecError: If the stream is not valid gzip, is not UTF-8, or
            exceeds ``max_size`` once decompressed
    """
    buffer = bytearray()
    try:
        with gzip.GzipFile(fileobj=io.BytesIO(data), mode='rb') as stream:
            while True:
                chunk = stream.read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                buffer.extend(chunk)
                if max_size is not None and len(buffer) > max_size:
                    raise ContentTooLargeError(f"Decompressed content exceeds {max_size} bytes")
    except (OSError, EOFError, zlib.error) as e:
        raise CodecError(f"Invalid gzip data: {e}")

    try:
        return buffer.decode('utf-8')
    except UnicodeDecodeError as e:
        raise CodecError(f"Decompressed content is not UTF-8: {e}")


def encode(data: bytes) -> str:
    """Base64-encode bytes chunk by chunk."""
    return ''.join(
        base64.b64encode(data[offset:offset + ENCODE_CHUNK_SIZE]).decode('ascii')
        for offset in range(0, len(data), ENCODE_CHUNK_SIZE)
    )


def decode(text: str) -> bytes:
    """Decode strict base64 text.

    Raises:
        CodecError: If ``text`` is not valid base64
    """
    text = ''.join(text.split())
    if len(text) % 4:
        raise CodecError("Invalid base64 data: length is not a multiple of 4")

    output = bytearray()
    try:
        for offset in range(0, len(text), DECODE_CHUNK_SIZE):
            output.extend(base64.b64decode(text[offset:offset + DECODE_CHUNK_SIZE], validate=True))
    except (binascii.Error, ValueError) as e:
        raise CodecError(f"Invalid base64 data: {e}")
    return bytes(output)


def pack(text: str) -> str:
    """Compress and encode a document for upload."""
    return encode(compress(text))


def unpack(text: str, max_size: Optional[int] = None) -> str:
    """Decode and decompress an uploaded document."""
    return decompress(decode(text), max_size=max_size)


def compression_summary(original: str, packed: str) -> str:
    """Human-readable size change from ``original`` to its packed form."""
    original_size = len(original.encode('utf-8'))
    packed_size = len(packed)
    reduction = round((1 - packed_size / original_size) * 100) if original_size else 0
    return (
        f"Compression: {original_size / 1024 / 1024:.2f}MB -> "
        f"{packed_size / 1024 / 1024:.2f}MB ({reduction}% reduction)"
    )
