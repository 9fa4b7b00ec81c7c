# wxmsgdump

Tools for the encrypted SQLite message databases that a desktop chat client
keeps on disk: decrypt them with a known key, merge them into one database,
and list sessions, contacts and chat history from the result.

## Installation

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Command line

The package installs the `wxmsgdump` command, which has two subcommands.

### `wxmsgdump decrypt`

```
wxmsgdump decrypt --data-path /data/chat/wxid_example --key placeholder --output /tmp/decrypted
```

- `--data-path` (required): the account's data directory. Database files are
  looked for under its `Msg` directory (`MSG<n>.db` and `MediaMSG<n>.db` in
  `Msg/Multi`, and `MicroMsg.db`, `OpenIMContact.db`, `OpenIMMedia.db`,
  `OpenIMMsg.db` in `Msg`).
- `--key` (required): the database key as 64 hex characters. Any other value
  makes every file fail to decrypt.
- `--output` (required): directory for the decrypted files. Each file keeps the
  part of its path from the `wxid_...` directory onwards.
- `--merged`: path of the merged database. Defaults to
  `<output>/<name of data path>/merged_db.db`.

Progress is printed to standard error as `current/total`; on success the path
of the merged database is printed. On failure an error is printed and the exit
status is 1.

### `wxmsgdump sessions`

```
wxmsgdump sessions /tmp/decrypted/wxid_example/merged_db.db
```

Prints one line per talker, busiest first, with four tab-separated fields: the
contact's remark (or nickname, or the id when there is no contact entry), the
message count, the local time of the last message as `yyyy/MM/dd hh:mm:ss`,
and the short text of that message. Exits with status 1 if the database file
does not exist.

## Library use

### Decrypt and merge in one step

`DecryptPipeline` (in `wxmsgdump.pipeline`) finds every kind of database under
a data directory, decrypts all it can in parallel, and merges the results.
`run()` returns the merged database path and raises `PipelineError` if nothing
was found, nothing could be decrypted, or the merged file cannot be written.

```python
from wxmsgdump.pipeline import DecryptPipeline, PipelineError

def show(current, total):
    print(f"{current}/{total}")

secret_key = "placeholder"
pipeline = DecryptPipeline(
    "/data/chat/wxid_example",
    "/tmp/decrypted",
    "/tmp/decrypted/merged_db.db",
    secret_key,
    show,
)
try:
    pipeline.run()
except PipelineError as exc:
    print("failed:", exc)
```

The steps are also available on their own:

- `wxmsgdump.decryptor`: `find_db_files`, `derive_keys`, `decrypt_file` (one
  file; raises `DecryptError` on a missing or malformed file, bad key or key
  mismatch) and `DbDecryptor` (`prepare()`, then `decrypt()`, with an optional
  progress callback).
- `wxmsgdump.combiner`: `combine_file` copies every table of one database into
  an open connection, skipping rows already present; `DbCombiner.combine()`
  replaces the output file with the merge of all inputs and raises
  `CombineError` if it cannot be opened.

### Querying a merged database

`WechatDbReader` (in `wxmsgdump.dbreader`) runs its queries on a
`DbThreadPool` (in `wxmsgdump.dbpool`) whose worker threads each hold their own
SQLite connection. Each `select_*` method takes an optional callback, called as
`callback(rows, context)` with rows as dictionaries, and returns a
`concurrent.futures.Future` of the same rows.

```python
from wxmsgdump.dbreader import WechatDbReader

with WechatDbReader("/tmp/decrypted/merged_db.db", 2) as reader:
    rows = reader.select_all_session_info().result()
    history = reader.select_chat_history_by_user_name(
        params={"userName": "wxid_example", "CreateTime": 0, "forward": True, "limit": 20}
    ).result()
```

The queries are `select_all_str_talker`, `select_head_image_by_user_name`,
`select_contact_by_user_name`, `select_all_session_info`,
`select_chat_count_by_user_name` and `select_chat_history_by_user_name`.
`run_query` in `wxmsgdump.dbpool` runs one statement on a connection and
returns its rows, or an empty list if the statement fails.

### Reading a message row

`MsgParser` (in `wxmsgdump.msgparser`) takes one row of the `MSG` table,
decompresses its LZ4-compressed XML content, classifies it as a `MsgType`, and
gives the short text for a session list with `session_display()`;
`content_by_xpath("appmsg/title")` reads text from the XML.
`classify_msg_type(type_, sub_type)` maps raw column values to a `MsgType`, and
`decompress_lz4` in `wxmsgdump.compression` decodes raw LZ4 blocks.

### Shared state

`DataBus` (in `wxmsgdump.databus`) holds the account details as a `WxInfo`,
the decrypt output and merged database paths (`auto_set_decrypt_path`), the
database reader (`create_db_reader`), and a head image cache with
`HeadImageObserver` subscribers. Its `request_*` methods forward to the
reader. Head images are looked up in the merged database and downloaded from
the stored URL.

### Account data helpers

`wxmsgdump.keyinfo` interprets raw data about an account: `is_wxid_format`,
`key_to_hex`, `bytes_to_address` and `extract_wxid`.

## What it does not do

- It does not find the key or the account details itself; it does not read
  them from a running client. The key and the data directory must be supplied.
- It has no graphical message viewer; browsing is done through the
  `sessions` command or the library.