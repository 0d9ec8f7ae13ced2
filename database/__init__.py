"""
DATABASE PACKAGE

Document store dạng sqlite: bảng `settings` (chuỗi cấu hình TOTP) và
bảng `transfers` (collection `transfer`).
"""
