"""
core package
============

Logic thuần của M-Log CSV Exporter: TOTP (RFC 6238) và chuẩn hóa dữ liệu chuyển khoản.

──────────────────────────────────────────────
Giải thuật cốt lõi
──────────────────────────────────────────────
- Decode secret:
  Base32 không phân biệt hoa/thường, bỏ qua ký tự lạ, dừng ở '='.

- TOTP:
  counter = floor(floor(timestamp) / period)
  code = Truncate(HMAC-<algo>(key=secret, msg=counter 8 byte big-endian)) mod 10^digits
  → Mặc định period = 30 giây, 6 chữ số, SHA-1.

- Verify:
  Sinh mã cho counter-window .. counter+window (mặc định window = 1 → 3 mã)
  và so với mã user nhập.

──────────────────────────────────────────────
Ví dụ sử dụng nhanh
──────────────────────────────────────────────
>>> from core import parse_totp_config, generate_totp, verify_with_config
>>> cfg = parse_totp_config("otpauth://totp/M-Log?secret=GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ&digits=8")
>>> generate_totp(cfg.secret, digits=cfg.digits, timestamp=59)
'94287082'
>>> verify_with_config(cfg, "94287082", timestamp=59)
True
"""
from core.otp_core import (
    TotpConfig,
    base32_to_bytes,
    generate_totp,
    verify_totp,
    verify_with_config,
    is_well_formed_code,
    parse_totp_config,
)

__all__ = [
    'TotpConfig',
    'base32_to_bytes',
    'generate_totp',
    'verify_totp',
    'verify_with_config',
    'is_well_formed_code',
    'parse_totp_config',
]
