"""Decryption of encrypted SQLite database files from a WeChat data directory."""

from __future__ import annotations

import hashlib
import hmac
import logging
import re
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from os import PathLike
from pathlib import Path
from typing import Optional, Union

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .constants import WeChatDbType

logger = logging.getLogger(__name__)

_KEY_SIZE = 32
_PAGE_SIZE = 4096
_SALT_SIZE = 16
_RESERVE_SIZE = 48
_IV_SIZE = 16
_HMAC_SIZE = 20
_KDF_ITERATIONS = 64000
_MAC_KDF_ITERATIONS = 2
_MAC_SALT_MASK = 58
_SECRET_KEY_HEX_LENGTH = 64
_FIRST_PAGE_MAC_TAIL = b"\x01\x00\x00\x00"
_AES_BLOCK = 16

SQLITE_HEADER = bytes.fromhex("53514c69746520666f726d6174203300")

PathType = Union[str, "PathLike[str]"]
ProgressCallback = Callable[[int, int], None]

# (sub directory below Msg, pattern, pattern is a regular expression)
_DB_LOCATIONS = {
    WeChatDbType.MSG: ("Multi", r"^MSG\d+\.db$", True),
    WeChatDbType.MEDIA_MSG: ("Multi", r"^MediaMSG\d+\.db$", True),
    WeChatDbType.MICRO_MSG: ("", "MicroMsg.db", False),
    WeChatDbType.OPEN_IM_CONTACT: ("", "OpenIMContact.db", False),
    WeChatDbType.OPEN_IM_MEDIA: ("", "OpenIMMedia.db", False),
    WeChatDbType.OPEN_IM_MSG: ("", "OpenIMMsg.db", False),
}


class DecryptError(Exception):
    """A database file could not be decrypted."""


def derive_keys(password: bytes, salt: bytes) -> tuple[bytes, bytes]:
    """Derive the page encryption key and the HMAC key from the raw key and salt."""
    key = hashlib.pbkdf2_hmac("sha1", bytes(password), bytes(salt), _KDF_ITERATIONS, _KEY_SIZE)
    mac_salt = bytes(byte ^ _MAC_SALT_MASK for byte in salt)
    mac_key = hashlib.pbkdf2_hmac("sha1", key, mac_salt, _MAC_KDF_ITERATIONS, _KEY_SIZE)
    return key, mac_key


def _list_matching(directory: Path, pattern: str, is_regular: bool) -> list[Path]:
    regex = re.compile(pattern) if is_regular else None
    names = sorted(entry.name for entry in directory.iterdir() if entry.is_file())
    return [
        (directory / name).absolute()
        for name in names
        if (regex.search(name) if regex is not None else name == pattern)
    ]


def find_db_files(input_path: PathType, types: Iterable[WeChatDbType]) -> list[Path]:
    """List the database files of the given kinds under input_path/Msg.

    Files are grouped by kind in the order given, sorted by name within a kind.
    """
    msg_dir = Path(input_path) / "Msg"
    if not msg_dir.is_dir():
        return []
    found: list[Path] = []
    for db_type in types:
        sub_dir, pattern, is_regular = _DB_LOCATIONS[WeChatDbType(db_type)]
        directory = msg_dir
        if sub_dir and (msg_dir / sub_dir).is_dir():
            directory = msg_dir / sub_dir
        found.extend(_list_matching(directory, pattern, is_regular))
    return found


def _aes_cbc_decrypt(key: bytes, iv: bytes, cipher_text: bytes) -> bytes:
    if not cipher_text:
        return b""
    if len(cipher_text) % _AES_BLOCK:
        raise DecryptError("page data is not a whole number of AES blocks")
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    return decryptor.update(cipher_text) + decryptor.finalize()


def _decrypt_page(key: bytes, page: bytes) -> bytes:
    if len(page) < _RESERVE_SIZE:
        raise DecryptError("page is shorter than its reserved area")
    body, reserve = page[:-_RESERVE_SIZE], page[-_RESERVE_SIZE:]
    return _aes_cbc_decrypt(key, reserve[:_IV_SIZE], body) + reserve


def decrypt_file(input_path: PathType, output_path: PathType, secret_key: str) -> Path:
    """Decrypt one database file with a 64 character hex key and write it to output_path.

    Raises DecryptError if the input is missing or malformed, the key is not
    valid hex of the right length, or the key does not match the file.
    """
    source = Path(input_path)
    target = Path(output_path)
    if not source.is_file():
        raise DecryptError(f"input file does not exist: {source}")
    if len(secret_key) != _SECRET_KEY_HEX_LENGTH:
        raise DecryptError("key must be 64 hex characters")
    try:
        raw_key = bytes.fromhex(secret_key)
    except ValueError as exc:
        raise DecryptError("key is not valid hex") from exc
    try:
        blob = source.read_bytes()
    except OSError as exc:
        raise DecryptError(f"cannot read {source}: {exc}") from exc
    if len(blob) < _PAGE_SIZE:
        raise DecryptError(f"{source} is shorter than one page")

    salt = blob[:_SALT_SIZE]
    first = blob[_SALT_SIZE:_PAGE_SIZE]
    key, mac_key = derive_keys(raw_key, salt)

    mac = hmac.new(mac_key, first[: len(first) - _RESERVE_SIZE + _IV_SIZE], hashlib.sha1)
    mac.update(_FIRST_PAGE_MAC_TAIL)
    stored = first[len(first) - 32 : len(first) - 32 + _HMAC_SIZE]
    if not hmac.compare_digest(mac.digest(), stored):
        raise DecryptError(f"key does not match {source}")

    parts = [SQLITE_HEADER, _decrypt_page(key, first)]
    for offset in range(_PAGE_SIZE, len(blob), _PAGE_SIZE):
        parts.append(_decrypt_page(key, blob[offset : offset + _PAGE_SIZE]))

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(b"".join(parts))
    except OSError as exc:
        raise DecryptError(f"cannot write {target}: {exc}") from exc
    return target


class DbDecryptor:
    """Finds and decrypts all database files of the chosen kinds, in parallel."""

    def __init__(
        self,
        types: Iterable[WeChatDbType],
        input_path: PathType,
        output_path: PathType,
        secret_key: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        self.types = list(types)
        self.input_path = Path(input_path)
        self.output_path = str(output_path)
        self._secret_key = secret_key
        self._on_progress = on_progress
        self.input_files: list[Path] = []
        self.output_files: list[Path] = []
        self._progress = 0
        self._lock = threading.Lock()

    @property
    def total(self) -> int:
        """Number of database files found by prepare()."""
        return len(self.input_files)

    def prepare(self) -> bool:
        """Collect the input files; return True if there is anything to decrypt."""
        self.input_files = find_db_files(self.input_path, self.types)
        return bool(self.input_files)

    def _output_for(self, source: Path) -> Path:
        text = source.as_posix()
        index = text.rfind("/wxid_")
        suffix = text[index:] if index >= 0 else text
        return Path(self.output_path + suffix)

    def _report(self, current: int) -> None:
        if self._on_progress is not None:
            self._on_progress(current, self.total)

    def _decrypt_one(self, source: Path) -> Optional[Path]:
        try:
            result: Optional[Path] = decrypt_file(source, self._output_for(source), self._secret_key)
        except DecryptError as exc:
            logger.debug("decrypting %s failed: %s", source, exc)
            result = None
        with self._lock:
            self._progress += 1
            self._report(self._progress)
        return result

    def decrypt(self) -> list[Path]:
        """Decrypt every prepared file and return the paths written.

        Raises DecryptError if no file could be decrypted.
        """
        with self._lock:
            self._progress = 0
            self._report(0)
        self.output_files = []
        with ThreadPoolExecutor() as pool:
            results = list(pool.map(self._decrypt_one, self.input_files))
        self.output_files = [path for path in results if path is not None]
        if not self.output_files:
            raise DecryptError("no database file could be decrypted")
        return list(self.output_files)