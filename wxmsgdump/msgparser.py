"""Parsing of rows from the MSG table into typed messages."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Mapping
from typing import Any, Optional

from .compression import decompress_lz4
from .constants import (
    STR_BYTESEXTRA,
    STR_BYTESTRANS,
    STR_COMPRESSCONTENT,
    STR_CREATETIME,
    STR_DISPLAYCONTENT,
    STR_FLAGEX,
    STR_ISSENDER,
    STR_LOCALID,
    STR_MSGSEQUENCE,
    STR_MSGSERVERSEQ,
    STR_MSGSVRID,
    STR_SEQUENCE,
    STR_STATUS,
    STR_STATUSEX,
    STR_STRCONTENT,
    STR_STRTALKER,
    STR_SUBTYPE,
    STR_TALKERID,
    STR_TYPE,
    MsgType,
)

_APPMSG_TITLE = "appmsg/title"

_TYPE_TABLE = {
    (1, 0): MsgType.PLAIN_TEXT,
    (3, 0): MsgType.IMAGE,
    (34, 0): MsgType.VOICE,
    (43, 0): MsgType.VIDEO,
    (47, 0): MsgType.STICKER,
    (48, 0): MsgType.MAP_INFO,
    (49, 5): MsgType.SHARED_CARD_LINK,
    (49, 19): MsgType.MERGED_CHAT_RECORD,
    (49, 57): MsgType.TEXT_WITH_QUOTE,
    (49, 2000): MsgType.TRANSFER,
    (50, 0): MsgType.VOICE_OR_VIDEO_CALL,
    (49, 0): MsgType.FILE,
    (49, 6): MsgType.FILE,
    (10000, 0): MsgType.SYSTEM_NOTICE,
    (10000, 8000): MsgType.SYSTEM_NOTICE,
    (10000, 4): MsgType.TICKLE,
}

_FIXED_LABELS = {
    MsgType.UNKNOWN: "[Unknown msg]",
    MsgType.IMAGE: "[Image]",
    MsgType.VOICE: "[Voice]",
    MsgType.VIDEO: "[Video]",
    MsgType.STICKER: "[Sticker]",
    MsgType.MERGED_CHAT_RECORD: "[Chat History]",
    MsgType.TRANSFER: "[Transfer]",
    MsgType.VOICE_OR_VIDEO_CALL: "[Voice/Video Call]",
    MsgType.FILE: "[File]",
}


def classify_msg_type(type_: int, sub_type: int) -> MsgType:
    """Map a record's Type and SubType columns to a message category."""
    return _TYPE_TABLE.get((type_, sub_type), MsgType.UNKNOWN)


def _to_int(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _to_bool(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() not in ("", "0", "false")
    return bool(_to_int(value))


def _to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def _to_bytes(value: Any) -> bytes:
    if value is None:
        return b""
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    return str(value).encode("utf-8")


def _parse_compressed_xml(compressed: bytes) -> Optional[ET.Element]:
    try:
        text = decompress_lz4(compressed).decode("utf-8", errors="replace")
        return ET.fromstring(text)
    except (ValueError, ET.ParseError):
        return None


class MsgParser:
    """A single message row with its category and decoded XML content."""

    def __init__(self, record: Mapping[str, Any]) -> None:
        self.local_id = _to_int(record.get(STR_LOCALID))
        self.talker_id = _to_int(record.get(STR_TALKERID))
        self.msg_svr_id = _to_int(record.get(STR_MSGSVRID))
        self.type = _to_int(record.get(STR_TYPE))
        self.sub_type = _to_int(record.get(STR_SUBTYPE))
        self.is_sender = _to_bool(record.get(STR_ISSENDER))
        self.create_time = _to_int(record.get(STR_CREATETIME))
        self.sequence = _to_int(record.get(STR_SEQUENCE))
        self.status_ex = _to_int(record.get(STR_STATUSEX))
        self.flag_ex = _to_int(record.get(STR_FLAGEX))
        self.status = _to_int(record.get(STR_STATUS))
        self.msg_server_seq = _to_int(record.get(STR_MSGSERVERSEQ))
        self.msg_sequence = _to_int(record.get(STR_MSGSEQUENCE))
        self.str_talker = _to_str(record.get(STR_STRTALKER))
        self.str_content = _to_str(record.get(STR_STRCONTENT))
        self.display_content = _to_str(record.get(STR_DISPLAYCONTENT))
        self.bytes_extra = _to_bytes(record.get(STR_BYTESEXTRA))
        self.bytes_trans = _to_bytes(record.get(STR_BYTESTRANS))

        compressed = _to_bytes(record.get(STR_COMPRESSCONTENT))
        self.xml: Optional[ET.Element] = (
            _parse_compressed_xml(compressed) if compressed else None
        )
        self.msg_type = classify_msg_type(self.type, self.sub_type)

    def content_by_xpath(self, xpath: str) -> str:
        """Return the text under a slash-separated path below the XML root.

        Each step picks the first child element with that tag; an empty step
        picks the first child element of any tag. A missing node gives "".
        """
        node = self.xml
        for step in xpath.split("/"):
            if node is None:
                break
            node = next((child for child in node if not step or child.tag == step), None)
        if node is None:
            return ""
        return "".join(node.itertext())

    def session_display(self) -> str:
        """Return the short text shown for this message in a session list."""
        msg_type = self.msg_type
        if msg_type in (MsgType.SYSTEM_NOTICE, MsgType.TICKLE, MsgType.PLAIN_TEXT):
            return self.str_content
        if msg_type in _FIXED_LABELS:
            return _FIXED_LABELS[msg_type]
        if msg_type is MsgType.TEXT_WITH_QUOTE:
            return self.content_by_xpath(_APPMSG_TITLE)
        if msg_type is MsgType.MAP_INFO:
            return f"[Location] {self.content_by_xpath(_APPMSG_TITLE)}"
        if msg_type is MsgType.SHARED_CARD_LINK:
            return f"[Link] {self.content_by_xpath(_APPMSG_TITLE)}"
        return ""