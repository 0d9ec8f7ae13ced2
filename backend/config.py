"""
CẤU HÌNH MẶC ĐỊNH CHO FLASK APP

Mọi giá trị đều có thể ghi đè bằng biến môi trường có prefix MLOG_, ví dụ:
  MLOG_SECRET_KEY=...            khóa ký cookie session
  MLOG_DATABASE_FILE=/data/x.db  đường dẫn file sqlite
  MLOG_TOTP_WINDOW=2             số bước lệch giờ cho phép khi verify
  MLOG_DISPLAY_TIMEZONE_OFFSET_HOURS=7  múi giờ hiển thị / nhập khoảng thời gian
(Flask tự parse giá trị dạng JSON nên số nguyên giữ nguyên kiểu int.)
"""

from core.otp_core import DEFAULT_WINDOW
from core.transfers import TOKYO_OFFSET_HOURS
from database.setup_database import DATABASE_FILE


class DefaultConfig:
    SECRET_KEY = 'mlog_exporter_dev_secret_key'

    # Document store (sqlite)
    DATABASE_FILE = DATABASE_FILE

    # Key trong bảng settings chứa chuỗi cấu hình TOTP (Base32 hoặc otpauth://)
    TOTP_SETTING_KEY = 'totp_secret'
    TOTP_WINDOW = DEFAULT_WINDOW

    # Giờ hiển thị trong bảng / CSV, và giờ của input datetime-local (mặc định Tokyo, UTC+9)
    DISPLAY_TIMEZONE_OFFSET_HOURS = TOKYO_OFFSET_HOURS

    # Cờ đăng nhập chỉ sống theo phiên trình duyệt
    SESSION_PERMANENT = False
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    CORS_ORIGINS = '*'
    LOG_LEVEL = 'INFO'
