"""Helpers for interpreting account data read from a running client."""

from __future__ import annotations

from typing import Optional

_WXID_PREFIX = "wxid_"
_KEY_BUFFER_SIZE = 64
_MSG_MARKER = "\\Msg"


def is_wxid_format(wxid: str) -> bool:
    """Return True if the text is "wxid_" followed by ASCII letters, digits or underscores."""
    if len(wxid) < len(_WXID_PREFIX) or not wxid.startswith(_WXID_PREFIX):
        return False
    return all(
        ch == "_" or ("0" <= ch <= "9") or ("A" <= ch <= "Z") or ("a" <= ch <= "z")
        for ch in wxid[len(_WXID_PREFIX):]
    )


def key_to_hex(raw: bytes) -> str:
    """Render a raw key buffer as upper-case hex, stopping at the first NUL byte.

    At most the first 64 bytes of the buffer are used.
    """
    key = bytes(raw)[:_KEY_BUFFER_SIZE].split(b"\0", 1)[0]
    return key.hex().upper()


def bytes_to_address(raw: bytes) -> int:
    """Combine a pointer-sized buffer into an address.

    Byte k is shifted left by len(raw) * k bits, which for an eight byte
    buffer is a little-endian read.
    """
    width = len(raw)
    address = 0
    for index, byte in enumerate(bytes(raw)):
        address |= byte << (width * index)
    return address


def extract_wxid(text: str) -> Optional[str]:
    """Pull the account id out of a path fragment such as "...\\wxid_x\\Msg\\...".

    Returns None when the directory before "\\Msg" is not a wxid.
    """
    text = text.split("\0", 1)[0]
    candidate = text.split(_MSG_MARKER)[0].split("\\")[-1]
    return candidate if is_wxid_format(candidate) else None