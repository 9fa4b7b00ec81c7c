import sqlite3

import pytest

from wxmsgdump.constants import STR_CREATETIME, STR_FORWARD, STR_LIMIT, STR_USERNAME
from wxmsgdump.dbreader import WechatDbReader

TIMEOUT = 10


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "merged_db.db"
    connection = sqlite3.connect(path)
    connection.execute(
        "create table MSG (localId integer, StrTalker text, CreateTime integer, StrContent text)"
    )
    connection.executemany(
        "insert into MSG values (?, ?, ?, ?)",
        [
            (1, "wxid_a", 100, "first"),
            (2, "wxid_a", 200, "second"),
            (3, "wxid_a", 300, "third"),
            (4, "wxid_b", 150, "hello"),
            (5, "o'brien", 120, "quoted"),
        ],
    )
    connection.execute(
        "create table Contact (UserName text, Alias text, NickName text, Remark text)"
    )
    connection.executemany(
        "insert into Contact values (?, ?, ?, ?)",
        [
            ("wxid_a", "alias_a", "Alice", "Al"),
            ("wxid_b", "alias_b", "Bob", ""),
        ],
    )
    connection.execute(
        "create table ContactHeadImgUrl (usrName text, bigHeadImgUrl text, smallHeadImgUrl text)"
    )
    connection.execute(
        "insert into ContactHeadImgUrl values (?, ?, ?)",
        ("wxid_a", "http://img.example.com/big.png", "http://img.example.com/small.png"),
    )
    connection.commit()
    connection.close()
    return str(path)


@pytest.fixture
def reader(db_path):
    with WechatDbReader(db_path, 2) as db_reader:
        yield db_reader


def test_all_str_talker_ordered_by_count(reader):
    rows = reader.select_all_str_talker().result(TIMEOUT)
    assert rows[0] == {"strTalker": "wxid_a", "total": 3}
    assert sorted(row["strTalker"] for row in rows) == ["o'brien", "wxid_a", "wxid_b"]
    totals = [row["total"] for row in rows]
    assert totals == sorted(totals, reverse=True)


def test_head_image_by_user_name(reader):
    rows = reader.select_head_image_by_user_name(params={STR_USERNAME: "wxid_a"}).result(TIMEOUT)
    assert rows == [
        {
            "usrName": "wxid_a",
            "bigHeadImgUrl": "http://img.example.com/big.png",
            "smallHeadImgUrl": "http://img.example.com/small.png",
        }
    ]


def test_head_image_missing_user(reader):
    rows = reader.select_head_image_by_user_name(params={STR_USERNAME: "wxid_b"}).result(TIMEOUT)
    assert rows == []


def test_contact_by_user_name(reader):
    rows = reader.select_contact_by_user_name(params={STR_USERNAME: "wxid_b"}).result(TIMEOUT)
    assert rows == [{"UserName": "wxid_b", "Alias": "alias_b", "NickName": "Bob", "Remark": ""}]


def test_contact_without_params_finds_nothing(reader):
    assert reader.select_contact_by_user_name().result(TIMEOUT) == []


def test_all_session_info_joins_contacts(reader):
    rows = reader.select_all_session_info().result(TIMEOUT)
    assert [row["strTalker"] for row in rows] == ["wxid_a", "wxid_b"]
    assert rows[0]["chatCount"] == 3
    assert rows[0]["Remark"] == "Al"
    assert rows[1]["NickName"] == "Bob"


def test_chat_count_by_user_name(reader):
    rows = reader.select_chat_count_by_user_name(params={STR_USERNAME: "wxid_a"}).result(TIMEOUT)
    assert rows == [{"chatCount": 3}]


def test_chat_count_with_quote_in_name(reader):
    rows = reader.select_chat_count_by_user_name(params={STR_USERNAME: "o'brien"}).result(TIMEOUT)
    assert rows == [{"chatCount": 1}]


def test_chat_history_forward(reader):
    params = {STR_USERNAME: "wxid_a", STR_CREATETIME: 200, STR_FORWARD: True, STR_LIMIT: 10}
    rows = reader.select_chat_history_by_user_name(params=params).result(TIMEOUT)
    assert [row["CreateTime"] for row in rows] == [200, 300]


def test_chat_history_backward(reader):
    params = {STR_USERNAME: "wxid_a", STR_CREATETIME: 200, STR_FORWARD: False, STR_LIMIT: 10}
    rows = reader.select_chat_history_by_user_name(params=params).result(TIMEOUT)
    assert [row["CreateTime"] for row in rows] == [200, 100]


def test_chat_history_last_message(reader):
    params = {STR_USERNAME: "wxid_a", STR_CREATETIME: 10**10, STR_FORWARD: False, STR_LIMIT: 1}
    rows = reader.select_chat_history_by_user_name(params=params).result(TIMEOUT)
    assert len(rows) == 1
    assert rows[0]["StrContent"] == "third"
    assert rows[0]["localId"] == 3


def test_chat_history_zero_limit_is_empty(reader):
    params = {STR_USERNAME: "wxid_a", STR_CREATETIME: 300, STR_FORWARD: False}
    assert reader.select_chat_history_by_user_name(params=params).result(TIMEOUT) == []


def test_callback_receives_context(reader):
    received = []
    future = reader.select_chat_count_by_user_name(
        lambda result, context: received.append((result, context)),
        {STR_USERNAME: "wxid_b"},
        "card",
    )
    rows = future.result(TIMEOUT)
    assert received == [(rows, "card")]
    assert rows == [{"chatCount": 1}]


def test_closed_reader_rejects_queries(db_path):
    db_reader = WechatDbReader(db_path, 1)
    db_reader.close()
    with pytest.raises(RuntimeError):
        db_reader.select_all_str_talker()