"""
BACKEND PACKAGE INITIALIZATION FILE

Flask web shell cho M-Log CSV Exporter: giữ cờ xác thực trong session,
gọi core TOTP để verify và phục vụ trang tìm kiếm / tải CSV.
"""

from .app import create_app

__all__ = ['create_app']
