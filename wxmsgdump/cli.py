"""Command line entry point: decrypt an account's databases or list its sessions."""

from __future__ import annotations

import argparse
import sys
import time
from collections.abc import Mapping, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from .constants import STR_CHATCOUNT, STR_NICKNAME, STR_REMARK, STR_STRTALKER
from .databus import DataBus
from .msgparser import MsgParser
from .pipeline import DecryptPipeline, PipelineError

_MERGED_DB_NAME = "merged_db.db"
_TIME_FORMAT = "%Y/%m/%d %H:%M:%S"


def format_timestamp(seconds: int) -> str:
    """Render seconds since the epoch as local "yyyy/MM/dd hh:mm:ss"."""
    return datetime.fromtimestamp(seconds).strftime(_TIME_FORMAT)


def _field(row: Mapping[str, Any], name: str) -> Any:
    lowered = name.lower()
    return next((value for key, value in row.items() if key.lower() == lowered), None)


def _print_progress(current: int, total: int) -> None:
    print(f"{current}/{total}", file=sys.stderr)


def _describe_session(bus: DataBus, wxid: str, now: int) -> str:
    contacts = bus.request_contact_info(wxid).result()
    if len(contacts) == 1:
        remark = str(_field(contacts[0], STR_REMARK) or "")
        name = remark or str(_field(contacts[0], STR_NICKNAME) or "")
    else:
        name = wxid

    counts = bus.request_chat_count(wxid).result()
    count = str(_field(counts[0], STR_CHATCOUNT)) if len(counts) == 1 else ""

    last = bus.request_chat_history(wxid, now, False, 1).result()
    if len(last) == 1:
        parser = MsgParser(last[0])
        when, text = format_timestamp(parser.create_time), parser.session_display()
    else:
        when, text = "", ""
    return "\t".join((name, count, when, text))


def _run_sessions(args: argparse.Namespace) -> int:
    bus = DataBus()
    bus.merged_db_file_path = Path(args.database)
    if not bus.create_db_reader():
        print(f"error: result doesn't exist: {args.database}", file=sys.stderr)
        return 1
    try:
        now = int(time.time())
        for row in bus.request_all_str_talker().result():
            wxid = _field(row, STR_STRTALKER)
            if wxid:
                print(_describe_session(bus, str(wxid), now))
    finally:
        if bus.db_reader is not None:
            bus.db_reader.close()
    return 0


def _run_decrypt(args: argparse.Namespace) -> int:
    output = Path(args.output)
    merged = (
        Path(args.merged)
        if args.merged
        else output / Path(args.data_path).name / _MERGED_DB_NAME
    )
    pipeline = DecryptPipeline(args.data_path, output, merged, args.key, _print_progress)
    try:
        result = pipeline.run()
    except PipelineError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    print(result)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wxmsgdump", description="Decrypt and browse WeChat message databases."
    )
    commands = parser.add_subparsers(dest="command", required=True)

    decrypt = commands.add_parser("decrypt", help="decrypt and merge an account's databases")
    decrypt.add_argument("--data-path", required=True, help="the account's data directory")
    decrypt.add_argument("--key", required=True, help="the 64 character hex database key")
    decrypt.add_argument("--output", required=True, help="directory for decrypted files")
    decrypt.add_argument("--merged", help="path of the merged database")
    decrypt.set_defaults(handler=_run_decrypt)

    sessions = commands.add_parser("sessions", help="list the sessions in a merged database")
    sessions.add_argument("database", help="path of the merged database")
    sessions.set_defaults(handler=_run_sessions)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the command line tool and return its exit status."""
    args = _build_parser().parse_args(argv)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())