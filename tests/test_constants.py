import pytest

from wxmsgdump.constants import MsgType, WeChatDbType, WechatPage


def test_unknown_msg_type_is_negative_one():
    assert MsgType(-1) is MsgType.UNKNOWN


def test_msg_type_values_follow_declaration_order():
    looked_up = [MsgType(value) for value in range(-1, 14)]
    assert looked_up == list(MsgType)


@pytest.mark.parametrize("member", list(MsgType))
def test_msg_type_round_trips_through_int(member):
    assert MsgType(int(member)) is member


def test_db_type_values_are_consecutive_from_zero():
    looked_up = [WeChatDbType(value) for value in range(6)]
    assert looked_up == list(WeChatDbType)


def test_db_type_lookup_by_value():
    assert WeChatDbType(0) is WeChatDbType.MSG
    assert WeChatDbType(5) is WeChatDbType.OPEN_IM_MSG


def test_wechat_page_lookup_by_value():
    assert WechatPage(0) is WechatPage.CHAT
    assert WechatPage(1) is WechatPage.FRIEND


def test_invalid_msg_type_value_raises():
    with pytest.raises(ValueError):
        MsgType(len(MsgType))