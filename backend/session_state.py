"""
Cờ "đã xác thực" của phiên hiện tại.

Đây là state duy nhất của hệ thống: app shell giữ nó trong session (cookie ký
bởi SECRET_KEY), core TOTP không bao giờ đọc/ghi. Ghi 1 lần khi verify thành
công, đọc mỗi request vào trang được bảo vệ, xóa khi logout.
"""

from functools import wraps

from flask import jsonify, session

SESSION_FLAG = 'authenticated'


def is_authenticated() -> bool:
    return bool(session.get(SESSION_FLAG))


def mark_authenticated() -> None:
    session.permanent = False
    session[SESSION_FLAG] = True


def clear_authentication() -> None:
    session.pop(SESSION_FLAG, None)


def login_required(view):
    """Decorator cho API: chưa verify TOTP -> 401 JSON."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        if not is_authenticated():
            return jsonify({"error": "Authentication required"}), 401
        return view(*args, **kwargs)
    return wrapper
