"""Merging of several decrypted SQLite databases into one file."""

from __future__ import annotations

import logging
import re
import sqlite3
from collections.abc import Callable, Iterable
from contextlib import closing
from os import PathLike
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

PathType = Union[str, "PathLike[str]"]
ProgressCallback = Callable[[int, int], None]

_TABLES_SQL = (
    "select tbl_name, sql from sqlite_master "
    "where type='table' and tbl_name!='sqlite_sequence'"
)
_CREATE_TABLE = re.compile(re.escape("CREATE TABLE "), re.IGNORECASE)
_CREATE_TABLE_IF_NOT_EXISTS = "CREATE TABLE IF NOT EXISTS "
_PRIMARY_KEY = "PRIMARY KEY"
_UNIQUE_INDEX_SUFFIX = "_unique_index"


class CombineError(Exception):
    """The merged database could not be created."""


def _quote(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _relaxed_create_sql(sql: str) -> str:
    """Make the statement idempotent and drop the first PRIMARY KEY clause up to the next comma."""
    sql = _CREATE_TABLE.sub(lambda _: _CREATE_TABLE_IF_NOT_EXISTS, sql)
    start = sql.find(_PRIMARY_KEY)
    if start >= 0:
        end = sql.find(",", start)
        if end > start:
            sql = sql[:start] + sql[end:]
    return sql


def _open_read_only(path: PathType) -> sqlite3.Connection:
    uri = Path(path).resolve().as_uri() + "?mode=ro"
    return sqlite3.connect(uri, uri=True)


def _merge_table(
    connection: sqlite3.Connection,
    source: sqlite3.Connection,
    table_name: str,
    create_sql: Optional[str],
) -> bool:
    if not create_sql:
        return False
    try:
        connection.execute(_relaxed_create_sql(create_sql))
        columns = [row[1] for row in source.execute(f"PRAGMA table_info({_quote(table_name)})")]
        coalesced = ",".join(f"COALESCE({_quote(column)}, '')" for column in columns)
        connection.execute(
            f"CREATE UNIQUE INDEX IF NOT EXISTS {_quote(table_name + _UNIQUE_INDEX_SUFFIX)} "
            f"ON {_quote(table_name)} ({coalesced})"
        )
        rows = source.execute(f"SELECT * FROM {_quote(table_name)}").fetchall()
    except sqlite3.Error as exc:
        logger.debug("skipping table %s: %s", table_name, exc)
        return False
    if rows:
        insert_sql = "INSERT OR IGNORE INTO {} ({}) VALUES ({})".format(
            _quote(table_name),
            ", ".join(_quote(column) for column in columns),
            ", ".join("?" for _ in columns),
        )
        try:
            connection.executemany(insert_sql, rows)
        except sqlite3.Error as exc:
            logger.debug("inserting into %s failed: %s", table_name, exc)
            return False
    return True


def combine_file(connection: sqlite3.Connection, path: PathType) -> bool:
    """Copy every table of the database at path into connection.

    Rows already present, with NULL compared equal to '', are skipped.
    Returns True if at least one table was merged.
    """
    try:
        source = _open_read_only(path)
    except (sqlite3.Error, OSError) as exc:
        logger.debug("cannot open %s: %s", path, exc)
        return False
    with closing(source):
        try:
            tables = source.execute(_TABLES_SQL).fetchall()
        except sqlite3.Error as exc:
            logger.debug("cannot list tables of %s: %s", path, exc)
            return False
        merged = False
        for table_name, create_sql in tables:
            if _merge_table(connection, source, table_name, create_sql):
                merged = True
        return merged


class DbCombiner:
    """Builds one merged database from a list of decrypted ones."""

    def __init__(
        self,
        decrypted_paths: Iterable[PathType],
        output_path: PathType,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        self.decrypted_paths = [Path(path) for path in decrypted_paths]
        self.output_path = Path(output_path)
        self._on_progress = on_progress

    def _report(self, current: int, total: int) -> None:
        if self._on_progress is not None:
            self._on_progress(current, total)

    def combine(self) -> Path:
        """Replace the output file with the merge of all inputs and return its path.

        Raises CombineError if the output database cannot be opened.
        """
        try:
            self.output_path.unlink()
        except OSError:
            pass
        try:
            connection = sqlite3.connect(self.output_path)
        except sqlite3.Error as exc:
            raise CombineError(f"cannot open {self.output_path}: {exc}") from exc
        total = len(self.decrypted_paths)
        self._report(0, total)
        with closing(connection):
            for index, path in enumerate(self.decrypted_paths, start=1):
                combine_file(connection, path)
                connection.commit()
                self._report(index, total)
        return self.output_path