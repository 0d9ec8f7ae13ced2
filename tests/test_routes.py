"""Tests for the Flask web shell (TOTP gate, transfer API, CSV download)."""

import os
import time

from backend import create_app
from core.otp_core import generate_totp
from database.db_manager import set_setting

RANGE = {"start": "2025-01-01T00:00:00", "end": "2025-01-01T23:59:59"}


def _current_code(secret):
    return generate_totp(secret, timestamp=time.time())


def test_health(client):
    assert client.get("/health").get_json() == {"status": "ok"}


def test_index_shows_login_when_not_authenticated(client):
    res = client.get("/")
    assert res.status_code == 200
    assert "認証コード" in res.get_data(as_text=True)


def test_verify_success_sets_session_flag(client, totp_secret):
    res = client.post("/verify_totp", json={"code": _current_code(totp_secret)})
    assert res.status_code == 200
    assert res.get_json() == {"valid": True}
    with client.session_transaction() as sess:
        assert sess["authenticated"] is True
    assert client.get("/api/transfers", query_string=RANGE).status_code == 200


def test_verify_wrong_code(client, totp_secret):
    code = _current_code(totp_secret)
    wrong = str((int(code) + 1) % 1000000).zfill(6)
    res = client.post("/verify_totp", json={"code": wrong})
    assert res.status_code == 401
    assert res.get_json()["valid"] is False
    with client.session_transaction() as sess:
        assert "authenticated" not in sess


def test_verify_requires_code(client, totp_secret):
    res = client.post("/verify_totp", json={})
    assert res.status_code == 400
    assert res.get_json()["error"] == "Code is required"


def test_verify_rejects_malformed_code(client, totp_secret):
    for bad in ("12345", "1234567", "12a456"):
        res = client.post("/verify_totp", json={"code": bad})
        assert res.status_code == 400
        assert res.get_json()["error"] == "Code must be 6 digits"


def test_verify_uses_digits_from_otpauth_config(client, store):
    secret = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"
    set_setting("totp_secret", f"otpauth://totp/M-Log?secret={secret}&digits=8", path=store)
    code = generate_totp(secret, digits=8, timestamp=time.time())
    assert client.post("/verify_totp", json={"code": code[:6]}).status_code == 400
    assert client.post("/verify_totp", json={"code": code}).status_code == 200


def test_verify_without_key_in_store(client):
    res = client.post("/verify_totp", json={"code": "123456"})
    assert res.status_code == 500
    assert res.get_json()["error"] == "verification key not found"


def test_verify_form_post_redirects(client, totp_secret):
    res = client.post("/verify_totp", data={"code": "000000x"})
    assert res.status_code == 302
    page = client.get("/").get_data(as_text=True)
    assert "Code must be 6 digits" in page

    res = client.post("/verify_totp", data={"code": _current_code(totp_secret)},
                      follow_redirects=True)
    assert res.status_code == 200
    assert "検索条件" in res.get_data(as_text=True)


def test_logout_clears_flag(authed_client):
    assert authed_client.post("/logout", json={}).get_json() == {"success": True}
    assert authed_client.get("/api/transfers", query_string=RANGE).status_code == 401


def test_api_requires_authentication(client):
    assert client.get("/api/transfers").status_code == 401
    res = client.get("/api/transfers.csv")
    assert res.status_code == 401
    assert res.get_json()["error"] == "Authentication required"


def test_list_transfers(authed_client, sample_transfers):
    res = authed_client.get("/api/transfers", query_string=RANGE)
    body = res.get_json()
    assert body["total"] == 3
    assert [row["uuid"] for row in body["rows"]] == ["u-1", "u-3", "u-2"]
    assert body["counts"] == {"normal": 2, "error": 1, "kyash": 1, "gmo": 2}
    assert body["rows"][0]["createdAt"] == "2025/01/01 10:00:00"
    assert body["rows"][0]["kyash"] == "Kyash"


def test_list_transfers_sorted_desc(authed_client, sample_transfers):
    res = authed_client.get("/api/transfers",
                            query_string={**RANGE, "sort": "transferPrice", "order": "desc"})
    assert [row["transferPrice"] for row in res.get_json()["rows"]] == ["12000", "9800", "500"]


def test_list_transfers_bad_range(authed_client):
    res = authed_client.get("/api/transfers",
                            query_string={"start": "2025-01-02T00:00:00", "end": "2025-01-01T00:00:00"})
    assert res.status_code == 400
    assert res.get_json()["error"] == "終了日時は開始より後にしてください"

    res = authed_client.get("/api/transfers", query_string={"start": "x", "end": "y"})
    assert res.status_code == 400
    assert res.get_json()["error"] == "開始・終了日時の形式が不正です"


def test_download_csv(authed_client, sample_transfers):
    res = authed_client.get("/api/transfers.csv", query_string=RANGE)
    assert res.status_code == 200
    assert res.mimetype == "text/csv"
    disposition = res.headers["Content-Disposition"]
    assert disposition.startswith('attachment; filename="transfer_createdAt_')
    text = res.get_data(as_text=True)
    assert text.startswith("\ufeff振込処理開始日時,")
    lines = text.split("\n")
    assert len(lines) == 4
    assert "u-1" in lines[1]
    assert '"timeout, retry"' in lines[3]


def test_exporter_page_renders_table(authed_client, sample_transfers):
    res = authed_client.get("/", query_string={**RANGE, "sort": "createdAt", "order": "desc"})
    page = res.get_data(as_text=True)
    assert res.status_code == 200
    assert page.index("u-2") < page.index("u-3") < page.index("u-1")
    assert "合計 | 3件" in page
    assert "CSVダウンロード" in page


def test_exporter_page_shows_range_error(authed_client):
    res = authed_client.get("/", query_string={"start": "2025-01-02T00:00:00",
                                               "end": "2025-01-01T00:00:00"})
    assert "終了日時は開始より後にしてください" in res.get_data(as_text=True)


def test_exporter_page_without_search_has_default_range(authed_client):
    page = authed_client.get("/").get_data(as_text=True)
    assert 'name="start"' in page
    assert "T00:00:00" in page
    assert "合計" not in page


def test_verify_non_object_json_body(client, totp_secret):
    for body in (["123456"], "123456", 123456):
        res = client.post("/verify_totp", json=body)
        assert res.status_code == 400
        assert res.get_json()["error"] == "Code is required"


def test_display_timezone_defaults_to_tokyo(app):
    assert app.config["DISPLAY_TIMEZONE_OFFSET_HOURS"] == 9


def test_display_timezone_from_environment(monkeypatch, store, sample_transfers):
    monkeypatch.setenv("MLOG_DISPLAY_TIMEZONE_OFFSET_HOURS", "0")
    app = create_app({"TESTING": True, "SECRET_KEY": "test", "DATABASE_FILE": store})
    assert app.config["DISPLAY_TIMEZONE_OFFSET_HOURS"] == 0

    client = app.test_client()
    with client.session_transaction() as sess:
        sess["authenticated"] = True
    body = client.get("/api/transfers", query_string=RANGE).get_json()
    assert [row["uuid"] for row in body["rows"]] == ["u-1", "u-3", "u-2"]
    assert body["rows"][0]["createdAt"] == "2025/01/01 01:00:00"

    body = client.get("/api/transfers", query_string={"start": "2025-01-01T01:00:00",
                                                      "end": "2025-01-01T01:59:59"}).get_json()
    assert [row["uuid"] for row in body["rows"]] == ["u-1"]


def test_templates_ship_inside_backend_package(app):
    import backend

    package_dir = os.path.dirname(backend.__file__)
    assert os.path.commonpath([package_dir, os.path.abspath(app.template_folder)]) == package_dir
    for name in ("login.html", "exporter.html", "styles.css"):
        assert os.path.isfile(os.path.join(app.template_folder, name))
