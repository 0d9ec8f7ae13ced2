import logging
import sqlite3
from datetime import datetime, timezone

from core.transfers import FIELDS
from database.setup_database import (
    BOOLEAN_COLUMNS,
    DATABASE_FILE,
    TIMESTAMP_COLUMNS,
)

logger = logging.getLogger(__name__)


def get_db_connection(path: str = DATABASE_FILE):
    """Kết nối đến database"""
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row  # Trả về kết quả dạng dictionary
    return conn


# --- Settings (key/value) --------------------------------------------------
def get_setting(key: str, path: str = DATABASE_FILE) -> str | None:
    """Lấy giá trị setting theo key, không có -> None"""
    conn = get_db_connection(path)
    try:
        result = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
    finally:
        conn.close()

    if result:
        return result['value']

    logger.warning("Setting '%s' not found in the database.", key)
    return None


def set_setting(key: str, value: str, path: str = DATABASE_FILE) -> None:
    """Ghi (hoặc ghi đè) một setting"""
    conn = get_db_connection(path)
    try:
        conn.execute(
            "INSERT INTO settings (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, value)
        )
        conn.commit()
    finally:
        conn.close()


# --- Transfers -------------------------------------------------------------
def _to_epoch(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    if isinstance(value, str):
        return _to_epoch(datetime.fromisoformat(value))
    return float(value)


def _from_row(row: sqlite3.Row) -> dict:
    """Dòng sqlite -> raw document (timestamp -> datetime UTC, kyash -> bool)"""
    record = {}
    for field in FIELDS:
        value = row[field]
        if value is not None and field in TIMESTAMP_COLUMNS:
            value = datetime.fromtimestamp(value, tz=timezone.utc)
        elif value is not None and field in BOOLEAN_COLUMNS:
            value = bool(value)
        record[field] = value
    return record


def add_transfer(record: dict, path: str = DATABASE_FILE) -> int:
    """
    Thêm 1 document chuyển khoản.

    - Chỉ lấy các key thuộc FIELDS, key khác bị bỏ qua.
    - createdAt / finishedAt nhận datetime, chuỗi ISO 8601 hoặc epoch seconds.

    Trả về:
        int: id của dòng vừa thêm
    """
    values = {}
    for field in FIELDS:
        value = record.get(field)
        if field in TIMESTAMP_COLUMNS:
            value = _to_epoch(value)
        elif field in BOOLEAN_COLUMNS and value is not None:
            value = int(bool(value))
        values[field] = value

    columns = ", ".join(f'"{field}"' for field in FIELDS)
    placeholders = ", ".join("?" for _ in FIELDS)
    conn = get_db_connection(path)
    try:
        cursor = conn.execute(
            f"INSERT INTO transfers ({columns}) VALUES ({placeholders})",
            tuple(values[field] for field in FIELDS)
        )
        conn.commit()
        return cursor.lastrowid
    finally:
        conn.close()


def query_transfers(start: datetime, end: datetime, path: str = DATABASE_FILE) -> list[dict]:
    """Lấy các document có start <= createdAt <= end, sắp xếp createdAt tăng dần"""
    conn = get_db_connection(path)
    try:
        rows = conn.execute(
            'SELECT * FROM transfers WHERE "createdAt" >= ? AND "createdAt" <= ? '
            'ORDER BY "createdAt" ASC, id ASC',
            (_to_epoch(start), _to_epoch(end))
        ).fetchall()
    finally:
        conn.close()

    logger.info("Fetched %d transfers between %s and %s", len(rows), start, end)
    return [_from_row(row) for row in rows]
