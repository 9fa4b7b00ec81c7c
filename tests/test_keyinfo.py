import pytest

from wxmsgdump.keyinfo import bytes_to_address, extract_wxid, is_wxid_format, key_to_hex


@pytest.mark.parametrize(
    "wxid",
    ["wxid_", "wxid_abc123", "wxid_ABC_def_09"],
)
def test_valid_wxids(wxid):
    assert is_wxid_format(wxid) is True


@pytest.mark.parametrize(
    "wxid",
    ["", "wxid", "WXID_abc", "wxid_abc-1", "wxid_ab c", "wxid_\u00e9", "abc_wxid_x"],
)
def test_invalid_wxids(wxid):
    assert is_wxid_format(wxid) is False


def test_key_to_hex_stops_at_nul():
    assert key_to_hex(b"\x0a\xff\x00\x11") == "0AFF"


def test_key_to_hex_matches_upper_hex_without_nul():
    raw = bytes(range(1, 33))
    result = key_to_hex(raw)
    assert result == raw.hex().upper()
    assert len(result) == 64


def test_key_to_hex_limits_to_64_bytes():
    raw = bytes([0x11]) * 100
    assert len(key_to_hex(raw)) == 128


def test_key_to_hex_empty_buffer():
    assert key_to_hex(b"\x00\x01") == ""


def test_bytes_to_address_eight_bytes_is_little_endian():
    raw = bytes([0x10, 0x32, 0x54, 0x76, 0x98, 0xBA, 0xDC, 0x7E])
    assert bytes_to_address(raw) == int.from_bytes(raw, "little")


def test_bytes_to_address_empty():
    assert bytes_to_address(b"") == 0


def test_extract_wxid_from_path():
    text = "C:\\Users\\someone\\Documents\\WeChat Files\\wxid_abc123\\Msg\\FTSContact"
    assert extract_wxid(text) == "wxid_abc123"


def test_extract_wxid_ignores_text_after_nul():
    text = "D:\\data\\wxid_q9\\Msg\\FTSContact\0garbage\\wxid_other\\Msg"
    assert extract_wxid(text) == "wxid_q9"


def test_extract_wxid_rejects_non_wxid():
    assert extract_wxid("C:\\Files\\customname\\Msg\\FTSContact") is None