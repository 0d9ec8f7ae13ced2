from datetime import datetime, timezone

import pytest

from backend import create_app
from database.db_manager import add_transfer, set_setting
from database.setup_database import setup_database

# RFC 6238 secret "12345678901234567890" (ASCII) in Base32
RFC_SECRET = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"


@pytest.fixture()
def db_path(tmp_path):
    return str(tmp_path / "mlog-test.db")


@pytest.fixture()
def store(db_path):
    setup_database(db_path)
    return db_path


@pytest.fixture()
def app(store):
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test",
        "DATABASE_FILE": store,
    })
    yield app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def totp_secret(store):
    set_setting("totp_secret", RFC_SECRET, path=store)
    return RFC_SECRET


@pytest.fixture()
def authed_client(client):
    with client.session_transaction() as sess:
        sess["authenticated"] = True
    return client


@pytest.fixture()
def sample_transfers(store):
    docs = [
        {
            "uuid": "u-1",
            "createdAt": datetime(2025, 1, 1, 1, 0, 0, tzinfo=timezone.utc),
            "finishedAt": datetime(2025, 1, 1, 1, 5, 0, tzinfo=timezone.utc),
            "flag": "finish",
            "kyash": True,
            "transferPrice": 9800,
            "userName": "ヤマダ タロウ",
            "accountNumber": "0012345",
        },
        {
            "uuid": "u-2",
            "createdAt": datetime(2025, 1, 1, 3, 0, 0, tzinfo=timezone.utc),
            "flag": "error",
            "kyash": False,
            "transferPrice": 12000,
            "errorInfo": "timeout, retry",
        },
        {
            "uuid": "u-3",
            "createdAt": datetime(2025, 1, 1, 2, 0, 0, tzinfo=timezone.utc),
            "flag": "finish",
            "transferPrice": 500,
        },
        {
            # outside the range used by the tests
            "uuid": "u-old",
            "createdAt": datetime(2024, 12, 30, 0, 0, 0, tzinfo=timezone.utc),
            "flag": "finish",
        },
    ]
    for doc in docs:
        add_transfer(doc, path=store)
    return docs
