"""A small pool of threads, each holding its own SQLite connection."""

from __future__ import annotations

import logging
import os
import queue
import sqlite3
import threading
from collections.abc import Callable
from concurrent.futures import Future
from typing import Any, Optional

logger = logging.getLogger(__name__)

Row = dict[str, Any]
QueryCallback = Callable[[list[Row], Any], None]

_CONNECTION_NAME = "{}-thread-connection"


def run_query(connection: sqlite3.Connection, sql: str) -> list[Row]:
    """Run a statement and return its rows as column-name keyed dicts.

    A statement that fails yields an empty list.
    """
    try:
        cursor = connection.execute(sql)
        rows = cursor.fetchall()
    except sqlite3.Error as exc:
        logger.debug("query failed: %s (%s)", exc, sql)
        return []
    if cursor.description is None:
        return []
    names = [column[0] for column in cursor.description]
    return [dict(zip(names, row)) for row in rows]


class DbThreadPool:
    """Runs queries against one database on a fixed set of worker threads.

    Each worker opens its own connection; results are handed to a callback
    on the worker thread and also delivered through the returned Future.
    """

    def __init__(self, db_name: str, max_count: int = -1) -> None:
        self.db_name = str(db_name)
        count = max_count if max_count > 0 else (os.cpu_count() or 1)
        self._tasks: queue.SimpleQueue = queue.SimpleQueue()
        self._lock = threading.Lock()
        self._closed = False
        self._threads = [
            threading.Thread(
                target=self._work, name=_CONNECTION_NAME.format(number), daemon=True
            )
            for number in range(1, count + 1)
        ]
        for thread in self._threads:
            thread.start()

    @property
    def size(self) -> int:
        """Number of worker threads."""
        return len(self._threads)

    @property
    def closed(self) -> bool:
        """True once close() has been called."""
        return self._closed

    def _connect(self) -> Optional[sqlite3.Connection]:
        try:
            return sqlite3.connect(self.db_name)
        except sqlite3.Error as exc:
            logger.warning(
                "thread %s cannot open %s: %s",
                threading.current_thread().name,
                self.db_name,
                exc,
            )
            return None

    def _work(self) -> None:
        connection = self._connect()
        try:
            while True:
                task = self._tasks.get()
                if task is None:
                    break
                sql, callback, context, future = task
                if not future.set_running_or_notify_cancel():
                    continue
                result = run_query(connection, sql) if connection is not None else []
                try:
                    if callback is not None:
                        callback(result, context)
                except Exception as exc:  # the caller's callback failed
                    future.set_exception(exc)
                else:
                    future.set_result(result)
        finally:
            if connection is not None:
                connection.close()

    def execute_query(
        self,
        sql: str,
        callback: Optional[QueryCallback] = None,
        context: Any = None,
    ) -> "Future[list[Row]]":
        """Queue a query; callback(result, context) is called when it has run.

        Raises RuntimeError if the pool has been closed.
        """
        future: Future = Future()
        with self._lock:
            if self._closed:
                raise RuntimeError("the pool is closed")
            self._tasks.put((sql, callback, context, future))
        return future

    def close(self) -> None:
        """Finish the queued queries, then stop the workers and close their connections."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            for _ in self._threads:
                self._tasks.put(None)
        for thread in self._threads:
            thread.join()

    def __enter__(self) -> "DbThreadPool":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()