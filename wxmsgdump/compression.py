"""Decompression of LZ4 blocks stored in message records."""

import lz4.block

# The decompressed size is bounded by this multiple of the compressed size.
_EXPANSION_SHIFT = 8


def decompress_lz4(data: bytes) -> bytes:
    """Decompress a raw LZ4 block that carries no size header.

    Raises ValueError if the data is empty or is not a valid LZ4 block
    fitting in 256 times its own size.
    """
    data = bytes(data)
    if not data:
        raise ValueError("no compressed data")
    try:
        return lz4.block.decompress(data, uncompressed_size=len(data) << _EXPANSION_SHIFT)
    except lz4.block.LZ4BlockError as exc:
        raise ValueError(f"invalid LZ4 block: {exc}") from exc