"""Canned queries against a merged WeChat message database."""

from __future__ import annotations

from collections.abc import Mapping
from concurrent.futures import Future
from typing import Any, Optional

from .constants import STR_CREATETIME, STR_FORWARD, STR_LIMIT, STR_USERNAME
from .dbpool import DbThreadPool, QueryCallback, Row


def _literal(value: Any) -> str:
    return "'" + str(value).replace("'", "''") + "'"


def _user_name(params: Optional[Mapping[str, Any]]) -> str:
    value = (params or {}).get(STR_USERNAME)
    return "" if value is None else str(value)


def _non_negative_int(value: Any) -> int:
    if value is None:
        return 0
    try:
        number = int(value)
    except (TypeError, ValueError):
        return 0
    return max(number, 0)


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in ("", "0", "false")
    return bool(value)


class WechatDbReader:
    """Issues the viewer's queries on a thread pool over one database file."""

    def __init__(self, db_name: str, max_count: int = -1) -> None:
        self.db_name = str(db_name)
        self._pool = DbThreadPool(self.db_name, max_count)

    def _run(self, sql: str, callback: Optional[QueryCallback], context: Any) -> "Future[list[Row]]":
        return self._pool.execute_query(sql, callback, context)

    def select_all_str_talker(
        self,
        callback: Optional[QueryCallback] = None,
        params: Optional[Mapping[str, Any]] = None,
        context: Any = None,
    ) -> "Future[list[Row]]":
        """Every talker with messages, with its message count, busiest first."""
        sql = (
            "select strTalker, count(strTalker) as total from MSG "
            "group by strTalker order by total desc;"
        )
        return self._run(sql, callback, context)

    def select_head_image_by_user_name(
        self,
        callback: Optional[QueryCallback] = None,
        params: Optional[Mapping[str, Any]] = None,
        context: Any = None,
    ) -> "Future[list[Row]]":
        """The head image URLs of one user."""
        sql = (
            "select usrName, bigHeadImgUrl, smallHeadImgUrl from ContactHeadImgUrl "
            f"where usrName = {_literal(_user_name(params))};"
        )
        return self._run(sql, callback, context)

    def select_contact_by_user_name(
        self,
        callback: Optional[QueryCallback] = None,
        params: Optional[Mapping[str, Any]] = None,
        context: Any = None,
    ) -> "Future[list[Row]]":
        """The contact entry of one user."""
        sql = (
            "select UserName, Alias, NickName, Remark from Contact "
            f"where UserName = {_literal(_user_name(params))};"
        )
        return self._run(sql, callback, context)

    def select_all_session_info(
        self,
        callback: Optional[QueryCallback] = None,
        params: Optional[Mapping[str, Any]] = None,
        context: Any = None,
    ) -> "Future[list[Row]]":
        """Sessions joined with their contacts, with message counts, busiest first."""
        sql = (
            "select Contact.Remark, Contact.NickName, Contact.Alias, MSG.strTalker, "
            "count(MSG.strTalker) as chatCount "
            "from MSG "
            "join Contact on MSG.strTalker = Contact.UserName "
            "group by strTalker "
            "order by chatCount desc;"
        )
        return self._run(sql, callback, context)

    def select_chat_count_by_user_name(
        self,
        callback: Optional[QueryCallback] = None,
        params: Optional[Mapping[str, Any]] = None,
        context: Any = None,
    ) -> "Future[list[Row]]":
        """The number of messages exchanged with one user."""
        sql = (
            "select count(*) as chatCount from MSG "
            f"where strTalker = {_literal(_user_name(params))}"
        )
        return self._run(sql, callback, context)

    def select_chat_history_by_user_name(
        self,
        callback: Optional[QueryCallback] = None,
        params: Optional[Mapping[str, Any]] = None,
        context: Any = None,
    ) -> "Future[list[Row]]":
        """A page of messages with one user starting at a creation time.

        Forward pages go from the time onwards in ascending order, backward
        pages go from the time back in descending order.
        """
        params = params or {}
        forward = _flag(params.get(STR_FORWARD))
        create_time = _non_negative_int(params.get(STR_CREATETIME))
        limit = _non_negative_int(params.get(STR_LIMIT))
        sql = (
            "select * from MSG "
            f"where strTalker = {_literal(_user_name(params))} "
            f"and CreateTime {'>=' if forward else '<='} '{create_time}' "
            f"order by CreateTime {'asc' if forward else 'desc'} "
            f"limit {limit};"
        )
        return self._run(sql, callback, context)

    def close(self) -> None:
        """Finish pending queries and release the connections."""
        self._pool.close()

    def __enter__(self) -> "WechatDbReader":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()