import sqlite3
import os

from core.transfers import FIELDS

DATABASE_FILE = 'database/mlog_database.db'

# Cột kiểu thời gian lưu epoch seconds (REAL) để so sánh khoảng được
TIMESTAMP_COLUMNS = ('createdAt', 'finishedAt')
NUMERIC_COLUMNS = ('purchaseAmount', 'purchasePercent', 'transferFee', 'transferPrice')
BOOLEAN_COLUMNS = ('kyash',)


def _column_type(field: str) -> str:
    if field in TIMESTAMP_COLUMNS:
        return 'REAL'
    if field in NUMERIC_COLUMNS:
        return 'NUMERIC'
    if field in BOOLEAN_COLUMNS:
        return 'INTEGER'
    return 'TEXT'


def setup_database(path: str = DATABASE_FILE):
    """Thiết lập database với đầy đủ các bảng (chạy lại nhiều lần không sao)"""

    # Đảm bảo thư mục tồn tại
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    conn = sqlite3.connect(path)
    cursor = conn.cursor()

    # Bảng settings: key/value, chứa chuỗi cấu hình TOTP (Base32 hoặc otpauth://)
    cursor.execute('''
    CREATE TABLE IF NOT EXISTS settings (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL
    )
    ''')

    # Bảng transfers: mỗi dòng là 1 document của collection `transfer`
    columns = ',\n        '.join(f'"{field}" {_column_type(field)}' for field in FIELDS)
    cursor.execute(f'''
    CREATE TABLE IF NOT EXISTS transfers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        {columns}
    )
    ''')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_transfers_created_at ON transfers ("createdAt")')

    conn.commit()
    conn.close()


if __name__ == "__main__":
    setup_database()
    print("Database setup completed successfully!")
