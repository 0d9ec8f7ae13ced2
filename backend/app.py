"""
FLASK APP MAIN ENTRY POINT - M-LOG CSV EXPORTER
==================================================

File này thiết lập Flask app, cấu hình CORS, logging và đăng ký tất cả routes.

CÁC TÍNH NĂNG CHÍNH
- Trang đăng nhập bằng mã TOTP (không có tài khoản, chỉ 1 secret dùng chung)
- Trang tìm kiếm dữ liệu chuyển khoản theo khoảng thời gian, bảng sort được
- Tải CSV (có BOM cho Excel)
- CORS enabled cho frontend chạy ở domain/port khác
"""
import logging
import os

from flask import Flask
from flask_cors import CORS

from backend.config import DefaultConfig
from database.setup_database import setup_database

FRONTEND_DIR = os.path.join(os.path.dirname(__file__), 'frontend')

logger = logging.getLogger(__name__)


def configure_logging(level: str = 'INFO') -> None:
    """Log dạng "[INFO] module: message" ra stderr."""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format='[%(levelname)s] %(name)s: %(message)s',
    )


def create_app(config: dict | None = None) -> Flask:
    """
    Tạo Flask app.

    Thứ tự cấu hình: DefaultConfig -> biến môi trường MLOG_* -> `config` truyền vào
    (dùng trong test).
    """
    app = Flask(__name__,
                template_folder=FRONTEND_DIR,
                static_folder=FRONTEND_DIR,
                static_url_path='/static')
    app.config.from_object(DefaultConfig)
    app.config.from_prefixed_env('MLOG')
    if config:
        app.config.update(config)

    configure_logging(app.config['LOG_LEVEL'])

    # BẬT CORS (Cross-Origin Resource Sharing)
    CORS(app, origins=app.config['CORS_ORIGINS'])

    # Tạo bảng nếu chưa có
    setup_database(app.config['DATABASE_FILE'])

    # IMPORT VÀ ĐĂNG KÝ ROUTES
    from backend.routes import auth_bp
    from backend.api_transfers import transfers_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(transfers_bp)

    logger.info("App ready (database=%s)", app.config['DATABASE_FILE'])
    return app


# KHỞI CHẠY SERVER
# Chỉ chạy khi file được execute trực tiếp (không phải import)
if __name__ == '__main__':
    create_app().run(debug=True, host='0.0.0.0', port=5000)
