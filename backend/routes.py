"""
AUTH ROUTES - FLASK BLUEPRINT

Trang chính + xác thực TOTP cho M-Log CSV Exporter.

CÁCH SỬ DỤNG:
- Server chạy tại: http://localhost:5000
- Chưa xác thực: GET / trả về form nhập mã TOTP
- Đã xác thực: GET / trả về trang tìm kiếm + bảng + nút tải CSV

VÍ DỤ:
curl -c cookie.txt -X POST http://localhost:5000/verify_totp -H "Content-Type: application/json" -d "{\"code\": \"123456\"}"
curl -b cookie.txt "http://localhost:5000/api/transfers?start=2025-01-01T00:00:00&end=2025-01-01T23:59:59"
"""

import logging

from flask import (
    Blueprint,
    current_app,
    flash,
    jsonify,
    redirect,
    render_template,
    request,
    url_for,
)

from core.otp_core import (
    is_well_formed_code,     # Kiểm tra mã đúng số chữ số
    parse_totp_config,       # Base32 / otpauth:// -> TotpConfig
    verify_with_config,      # Xác minh mã TOTP
)
from core.transfers import DISPLAY_FIELDS, HEADER_LABELS, default_range
from database.db_manager import get_setting
from backend.session_state import (
    clear_authentication,
    is_authenticated,
    mark_authenticated,
)
from backend.api_transfers import current_timezone, load_report

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)

ERROR_KEY_NOT_FOUND = "verification key not found"
ERROR_INCORRECT_CODE = "incorrect code"


class VerificationError(Exception):
    """Lỗi phía caller trước khi gọi core verify (thiếu mã, sai định dạng, thiếu key)."""

    def __init__(self, message: str, status: int):
        super().__init__(message)
        self.message = message
        self.status = status


def _load_totp_config():
    """Đọc chuỗi cấu hình TOTP từ store và parse. Không có key / secret rỗng -> 500."""
    key = current_app.config['TOTP_SETTING_KEY']
    raw = get_setting(key, path=current_app.config['DATABASE_FILE'])
    config = parse_totp_config(raw)
    if not config.secret:
        logger.error("TOTP key '%s' missing or empty", key)
        raise VerificationError(ERROR_KEY_NOT_FOUND, 500)
    return config


def _check_code(code) -> bool:
    """
    Kiểm tra hình thức mã rồi gọi core verify.

    Raises:
        VerificationError: thiếu mã (400), thiếu key (500), sai định dạng (400)
    """
    if code is None or str(code).strip() == "":
        raise VerificationError("Code is required", 400)

    config = _load_totp_config()
    if not is_well_formed_code(code, config.digits):
        raise VerificationError(f"Code must be {config.digits} digits", 400)

    valid = verify_with_config(config, code, window=current_app.config['TOTP_WINDOW'])
    logger.info("TOTP verification %s (secret=%s...)",
                "succeeded" if valid else "failed", config.secret[:4])
    return valid


@auth_bp.route('/', methods=['GET'])
def index():
    """
    TRANG CHÍNH

    Query params (chỉ khi đã xác thực):
      start, end: datetime-local (mặc định: cả ngày hôm qua)
      sort: tên field để sort (mặc định createdAt)
      order: asc | desc
    """
    if not is_authenticated():
        return render_template('login.html')

    default_start, default_end = default_range(tz=current_timezone())
    start = request.args.get('start', default_start)
    end = request.args.get('end', default_end)
    sort = request.args.get('sort', 'createdAt')
    order = request.args.get('order', 'asc')

    report, error = None, None
    if 'start' in request.args or 'end' in request.args:
        try:
            report = load_report(start, end, sort, order)
        except ValueError as e:
            error = str(e)

    return render_template(
        'exporter.html',
        start=start,
        end=end,
        sort=sort,
        order=order,
        report=report,
        error=error,
        fields=DISPLAY_FIELDS,
        labels=HEADER_LABELS,
    )


@auth_bp.route('/verify_totp', methods=['POST'])
def verify_totp_route():
    """
    XÁC MINH MÃ TOTP VÀ MỞ KHÓA PHIÊN

      curl -X POST http://localhost:5000/verify_totp -H "Content-Type: application/json" -d "{\"code\": \"123456\"}"

    Input: JSON {"code": "123456"} hoặc form field `code`

    Output (JSON):
      200 {"valid": true}     -> phiên được đánh dấu đã xác thực
      401 {"valid": false, "error": "incorrect code"}
      400 {"error": "..."}    -> thiếu mã / sai số chữ số
      500 {"error": "verification key not found"}

    Form post: redirect về "/" (kèm flash message khi lỗi).
    """
    as_json = request.is_json
    data = (request.get_json(silent=True) if as_json else request.form) or {}
    if not isinstance(data, dict):
        # body JSON là list / chuỗi / số -> coi như thiếu mã
        data = {}

    try:
        valid = _check_code(data.get('code'))
    except VerificationError as e:
        if as_json:
            return jsonify({"error": e.message}), e.status
        flash(e.message, 'error')
        return redirect(url_for('auth.index'))

    if valid:
        mark_authenticated()
    elif not as_json:
        flash(ERROR_INCORRECT_CODE, 'error')

    if not as_json:
        return redirect(url_for('auth.index'))
    if valid:
        return jsonify({"valid": True})
    return jsonify({"valid": False, "error": ERROR_INCORRECT_CODE}), 401


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """Xóa cờ xác thực của phiên hiện tại."""
    clear_authentication()
    if request.is_json:
        return jsonify({"success": True})
    return redirect(url_for('auth.index'))


@auth_bp.route('/health', methods=['GET'])
def health():
    return jsonify({"status": "ok"})
