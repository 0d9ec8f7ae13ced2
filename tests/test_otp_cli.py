"""Tests for the admin CLI."""

import json

import pytest

from core.otp_cli import main
from database.db_manager import get_setting

SECRET = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"


def _run(db_path, *argv):
    main(["--db", db_path, *argv])


def test_set_key_and_code(db_path, capsys):
    _run(db_path, "set-key", f"otpauth://totp/M-Log?secret={SECRET}&digits=8")
    assert get_setting("totp_secret", path=db_path).startswith("otpauth://")
    assert "8 digits, 30s, SHA-1" in capsys.readouterr().out

    _run(db_path, "code", "--at", "59")
    assert "TOTP (8d): 94287082  (valid ~ 1s)" in capsys.readouterr().out


def test_verify(db_path, capsys):
    _run(db_path, "set-key", SECRET)
    capsys.readouterr()

    with pytest.raises(SystemExit) as exc:
        _run(db_path, "verify", "--code", "94287082", "--at", "59")
    assert exc.value.code == 2

    from core.otp_core import generate_totp
    code = generate_totp(SECRET, timestamp=59)
    _run(db_path, "verify", "--code", code, "--at", "59")
    assert "VALID" in capsys.readouterr().out

    with pytest.raises(SystemExit) as exc:
        _run(db_path, "verify", "--code", code, "--at", "159")
    assert exc.value.code == 1
    assert "INVALID" in capsys.readouterr().out


def test_code_without_key_exits(db_path, capsys):
    with pytest.raises(SystemExit) as exc:
        _run(db_path, "code")
    assert exc.value.code == 1
    assert "verification key not found" in capsys.readouterr().err


def test_import_and_export(db_path, tmp_path, capsys):
    source = tmp_path / "transfers.json"
    source.write_text(json.dumps([
        {"uuid": "a", "createdAt": "2025-01-01T10:00:00+09:00", "flag": "finish", "kyash": True},
        {"uuid": "b", "createdAt": "2025-01-01T11:00:00+09:00", "flag": "error"},
        {"uuid": "c", "createdAt": "2025-01-03T11:00:00+09:00", "flag": "finish"},
    ]), encoding="utf-8")
    _run(db_path, "import", str(source))
    assert "Imported 3" in capsys.readouterr().out

    out = tmp_path / "out.csv"
    _run(db_path, "export", "--start", "2025-01-01T00:00:00", "--end", "2025-01-01T23:59:59",
         "--order", "desc", "--out", str(out))
    assert "Wrote 2 rows" in capsys.readouterr().out

    lines = out.read_text(encoding="utf-8-sig").split("\n")
    assert len(lines) == 3
    assert lines[1].startswith("2025/01/01 11:00:00,,b,,エラー,")
    assert ",Kyash," in lines[2]


def test_export_bad_range(db_path, capsys):
    with pytest.raises(SystemExit) as exc:
        _run(db_path, "export", "--start", "2025-01-02T00:00:00", "--end", "2025-01-01T00:00:00")
    assert exc.value.code == 2
    assert "終了日時は開始より後にしてください" in capsys.readouterr().err
