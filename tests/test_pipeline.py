import hashlib
import hmac

import pytest
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from wxmsgdump.decryptor import SQLITE_HEADER, derive_keys
from wxmsgdump.pipeline import DecryptPipeline, PipelineError

KEY_HEX = bytes(range(32)).hex()
SALT = bytes(range(100, 116))
FIRST_PLAIN = bytes(range(256)) * 15 + bytes(192)
SECOND_PLAIN = bytes(range(256)) * 15 + bytes(208)


def _encrypt(key, iv, data):
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    return encryptor.update(data) + encryptor.finalize()


def _write_encrypted(path, key_hex):
    """Write a two page encrypted file; return the expected decrypted bytes."""
    key, mac_key = derive_keys(bytes.fromhex(key_hex), SALT)
    first_iv, second_iv = bytes([1]) * 16, bytes([2]) * 16
    first_body = _encrypt(key, first_iv, FIRST_PLAIN)
    digest = hmac.new(mac_key, first_body + first_iv + b"\x01\x00\x00\x00", hashlib.sha1).digest()
    first_tail = digest + bytes(12)
    second_tail = bytes(32)
    blob = SALT + first_body + first_iv + first_tail
    blob += _encrypt(key, second_iv, SECOND_PLAIN) + second_iv + second_tail
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(blob)
    return SQLITE_HEADER + FIRST_PLAIN + first_iv + first_tail + SECOND_PLAIN + second_iv + second_tail


@pytest.fixture
def account(tmp_path):
    data_path = tmp_path / "wxid_test"
    expected = _write_encrypted(data_path / "Msg" / "MicroMsg.db", KEY_HEX)
    return data_path, expected


def test_run_decrypts_and_merges(tmp_path, account):
    data_path, expected = account
    output = tmp_path / "out"
    merged = output / "wxid_test" / "merged_db.db"
    pipeline = DecryptPipeline(data_path, output, merged, KEY_HEX)
    assert pipeline.run() == merged
    assert merged.is_file()
    decrypted = output / "wxid_test" / "Msg" / "MicroMsg.db"
    assert pipeline.decrypted_files == [decrypted]
    assert decrypted.read_bytes() == expected


def test_run_reports_progress(tmp_path, account):
    data_path, _ = account
    calls = []
    pipeline = DecryptPipeline(
        data_path, tmp_path / "out", tmp_path / "merged.db", KEY_HEX,
        lambda current, total: calls.append((current, total)),
    )
    pipeline.run()
    assert calls == [(0, 1), (1, 1), (0, 1), (1, 1)]


def test_run_without_databases(tmp_path):
    (tmp_path / "empty" / "Msg").mkdir(parents=True)
    pipeline = DecryptPipeline(tmp_path / "empty", tmp_path / "out", tmp_path / "m.db", KEY_HEX)
    with pytest.raises(PipelineError):
        pipeline.run()


def test_run_with_wrong_key(tmp_path, account):
    data_path, _ = account
    other_key = bytes(range(1, 33)).hex()
    pipeline = DecryptPipeline(data_path, tmp_path / "out", tmp_path / "m.db", other_key)
    with pytest.raises(PipelineError):
        pipeline.run()
    assert not (tmp_path / "m.db").exists()


def test_run_with_unwritable_merge_target(tmp_path, account):
    data_path, _ = account
    merged = tmp_path / "missing_dir" / "m.db"
    pipeline = DecryptPipeline(data_path, tmp_path / "out", merged, KEY_HEX)
    with pytest.raises(PipelineError):
        pipeline.run()
    assert len(pipeline.decrypted_files) == 1