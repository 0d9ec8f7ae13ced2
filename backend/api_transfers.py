"""
TRANSFER API ROUTES

Các endpoint đọc collection `transfer` (yêu cầu đã xác thực TOTP).

Ví dụ:
- GET /api/transfers?start=2025-01-01T00:00:00&end=2025-01-01T23:59:59&sort=transferPrice&order=desc
- GET /api/transfers.csv?start=...&end=...
"""

from flask import Blueprint, Response, current_app, jsonify, request

from core.transfers import (
    DEFAULT_SORT_KEY,
    build_report,
    csv_filename,
    default_range,
    display_timezone,
    parse_range,
    to_csv,
)
from database.db_manager import query_transfers
from backend.session_state import login_required

transfers_bp = Blueprint('transfers', __name__, url_prefix='/api')


def current_timezone():
    """Timezone hiển thị + nhập liệu, lấy từ DISPLAY_TIMEZONE_OFFSET_HOURS."""
    return display_timezone(current_app.config["DISPLAY_TIMEZONE_OFFSET_HOURS"])


def load_report(start, end, sort=DEFAULT_SORT_KEY, order='asc') -> dict:
    """
    Parse khoảng thời gian, query store, sort + chuẩn hóa.

    Raises:
        ValueError: khoảng thời gian không hợp lệ (message tiếng Nhật hiển thị cho user)
    """
    tz = current_timezone()
    start_dt, end_dt = parse_range(start, end, tz)
    raw_rows = query_transfers(start_dt, end_dt, path=current_app.config['DATABASE_FILE'])
    return build_report(raw_rows, sort, order, tz)


def _report_from_args() -> dict:
    default_start, default_end = default_range(tz=current_timezone())
    return load_report(
        request.args.get('start', default_start),
        request.args.get('end', default_end),
        request.args.get('sort', DEFAULT_SORT_KEY),
        request.args.get('order', 'asc'),
    )


@transfers_bp.route('/transfers', methods=['GET'])
@login_required
def list_transfers():
    """
    DANH SÁCH CHUYỂN KHOẢN

    Output:
      {"rows": [...], "counts": {"normal", "error", "kyash", "gmo"}, "total": n}
    """
    try:
        report = _report_from_args()
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(report)


@transfers_bp.route('/transfers.csv', methods=['GET'])
@login_required
def download_transfers_csv():
    """TẢI CSV (UTF-8 có BOM, cột theo thứ tự hiển thị)"""
    try:
        report = _report_from_args()
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    return Response(
        to_csv(report["rows"]),
        content_type='text/csv; charset=utf-8',
        headers={"Content-Disposition": f'attachment; filename="{csv_filename()}"'},
    )
